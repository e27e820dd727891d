import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .balances import BalanceStore
from .config import ScarabSettings
from .errors import AlreadyClaimedTodayError
from .models import Account, ClaimResult, EntryKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimPlan:
    amount: int
    streak: int
    streak_bonus: int
    is_first_claim: bool
    kind: EntryKind

    def describe(self, settings: ScarabSettings, boosted: bool) -> str:
        boost = f" ({settings.boost_multiplier}x boost!)" if boosted else ""
        if self.is_first_claim:
            return f"Welcome bonus: {self.amount} Scarab{boost}"
        bonus = f" + {self.streak_bonus} streak bonus" if self.streak_bonus else ""
        return f"Daily claim: {settings.daily_claim}{bonus}{boost}"


def utc_day_difference(earlier: datetime, later: datetime) -> int:
    """Whole UTC calendar days between two instants; 23:59 -> 00:01 is one day."""
    return (later.astimezone(timezone.utc).date() - earlier.astimezone(timezone.utc).date()).days


def plan_claim(account: Account, now: datetime, boosted: bool, settings: ScarabSettings) -> ClaimPlan:
    multiplier = settings.boost_multiplier if boosted else 1

    if account.last_claim_at is None:
        return ClaimPlan(
            amount=settings.initial_claim * multiplier,
            streak=1,
            streak_bonus=0,
            is_first_claim=True,
            kind=EntryKind.CLAIM_INITIAL,
        )

    days = utc_day_difference(account.last_claim_at, now)
    # Negative means the stored claim is ahead of our clock; treat as today.
    if days <= 0:
        raise AlreadyClaimedTodayError("Already claimed today. Come back tomorrow!")

    streak = account.streak + 1 if days == 1 else 1
    bonus = settings.streak_bonus(streak)
    return ClaimPlan(
        amount=(settings.daily_claim + bonus) * multiplier,
        streak=streak,
        streak_bonus=bonus,
        is_first_claim=False,
        kind=EntryKind.CLAIM_DAILY,
    )


class ClaimEngine:
    def __init__(self, balances: BalanceStore, settings: ScarabSettings):
        self.balances = balances
        self.settings = settings

    def claim_daily(self, address: str, boosted: bool = False) -> ClaimResult:
        # Eligibility is checked under the same lock that applies the credit.
        with self.balances.transaction(address) as txn:
            try:
                plan = plan_claim(txn.account, txn.now, boosted, self.settings)
            except AlreadyClaimedTodayError:
                logger.debug("%s already claimed on %s", txn.address, txn.now.date())
                raise
            txn.apply_delta(plan.amount, plan.kind, description=plan.describe(self.settings, boosted))
            txn.update(last_claim_at=txn.now, streak=plan.streak)
            account = txn.account

        return ClaimResult(
            amount=plan.amount,
            balance=account.balance,
            streak=plan.streak,
            streak_bonus=plan.streak_bonus,
            is_first_claim=plan.is_first_claim,
            boosted=boosted,
        )
