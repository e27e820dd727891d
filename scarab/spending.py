import logging
from typing import Optional

from .balances import BalanceStore
from .errors import InsufficientBalanceError, InvalidInputError
from .models import EntryKind, SpendResult

logger = logging.getLogger(__name__)


class SpendAuthorizer:
    """Debits the fixed price of a gated action, or nothing at all."""

    def __init__(self, balances: BalanceStore, prices: dict[str, int]):
        self.balances = balances
        self.prices = dict(prices)

    def price_of(self, purpose: str) -> int:
        try:
            return self.prices[purpose]
        except KeyError:
            raise InvalidInputError(
                f"Unknown purpose {purpose!r}; expected one of {sorted(self.prices)}"
            ) from None

    def spend(self, address: str, purpose: str, related_id: Optional[str] = None) -> SpendResult:
        cost = self.price_of(purpose)
        try:
            account = self.balances.apply_delta(
                address, -cost, EntryKind.SPEND, related_id, description=f"{purpose.capitalize()} (-{cost})"
            )
        except InsufficientBalanceError as e:
            logger.info("Rejected %s spend for %s: need %d, have %d", purpose, address, e.required, e.available)
            raise
        return SpendResult(cost=cost, balance=account.balance)
