from decimal import Decimal
from typing import NamedTuple

from .errors import InvalidInputError
from .models import TierResult, TrustLevel


class FeeTier(NamedTuple):
    min_score: int
    level: TrustLevel
    fee: Decimal
    discount: str


# Highest first; the first matching row wins.
FEE_TIERS = (
    FeeTier(200, TrustLevel.GUARDIAN, Decimal("0"), "100% off (0% fee)"),
    FeeTier(50, TrustLevel.VERIFIED, Decimal("0.1"), "80% off (0.1% fee)"),
    FeeTier(10, TrustLevel.TRUSTED, Decimal("0.3"), "40% off (0.3% fee)"),
)
DEFAULT_TIER = FeeTier(0, TrustLevel.NEW, Decimal("0.5"), "Standard (0.5% fee)")

SCARAB_PER_REPUTATION_POINT = 10


def combined_score(reputation_score: int, scarab_balance: int) -> int:
    return reputation_score + scarab_balance // SCARAB_PER_REPUTATION_POINT


def compute_tier(reputation_score: int, scarab_balance: int) -> TierResult:
    if scarab_balance < 0:
        raise InvalidInputError("scarab_balance must not be negative")
    score = combined_score(reputation_score, scarab_balance)
    tier = next((t for t in FEE_TIERS if score >= t.min_score), DEFAULT_TIER)
    return TierResult(
        combined_score=score,
        trust_level=tier.level,
        fee_tier=tier.fee,
        fee_discount=tier.discount,
    )
