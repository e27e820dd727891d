from typing import Optional
from uuid import UUID

from .balances import BalanceStore, Clock, normalize_address, utcnow
from .claims import ClaimEngine
from .config import ScarabSettings
from .errors import InvalidInputError
from .models import (
    Account,
    ClaimResult,
    ConfirmPurchaseResult,
    EntryKind,
    Purchase,
    PurchaseTierInfo,
    SpendResult,
    TierResult,
    TransactionHistory,
    UserReputation,
)
from .purchases import PaymentVerifier, PurchaseManager
from .spending import SpendAuthorizer
from .storage import InMemoryStorage
from .tiers import compute_tier


class ScarabService:
    """
    Caller-facing operations of the Scarab ledger.

    Components share one storage, one clock and one settings object, all
    passed in explicitly so tests and multiple apps never share state.
    """

    def __init__(
        self,
        settings: Optional[ScarabSettings] = None,
        storage: Optional[InMemoryStorage] = None,
        clock: Clock = utcnow,
        verifier: Optional[PaymentVerifier] = None,
    ):
        self.settings = settings or ScarabSettings()
        self.storage = storage or InMemoryStorage(lock_timeout=self.settings.lock_timeout_seconds)
        self.balances = BalanceStore(self.storage, clock, max_history_limit=self.settings.history_max_limit)
        self.claims = ClaimEngine(self.balances, self.settings)
        self.spender = SpendAuthorizer(self.balances, self.settings.spend_prices)
        self.purchases = PurchaseManager(self.balances, self.settings.purchase_tiers, verifier)

    def get_balance(self, address: str) -> Account:
        return self.balances.peek_account(address)

    def get_transaction_history(
        self, address: str, limit: Optional[int] = None, offset: int = 0
    ) -> TransactionHistory:
        if limit is None:
            limit = self.settings.history_default_limit
        return self.balances.get_transaction_history(address, limit, offset)

    def claim_daily(self, address: str, boosted: bool = False) -> ClaimResult:
        return self.claims.claim_daily(address, boosted)

    def spend(self, address: str, purpose: str, related_id: Optional[str] = None) -> SpendResult:
        return self.spender.spend(address, purpose, related_id)

    def reward(self, address: str, amount: int, description: str, related_id: Optional[str] = None) -> Account:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidInputError("reward amount must be a positive integer")
        return self.balances.apply_delta(address, amount, EntryKind.REWARD, related_id, description)

    def list_purchase_tiers(self) -> list[PurchaseTierInfo]:
        return self.purchases.list_tiers()

    def create_purchase(self, address: str, tier: str) -> Purchase:
        return self.purchases.create_purchase(address, tier)

    def get_purchase(self, purchase_id: UUID) -> Purchase:
        return self.purchases.get_purchase(purchase_id)

    def list_purchases(self, address: str) -> list[Purchase]:
        return self.purchases.list_purchases(address)

    def confirm_purchase(self, purchase_id: UUID, tx_hash: str) -> ConfirmPurchaseResult:
        return self.purchases.confirm_purchase(purchase_id, tx_hash)

    def fail_purchase(self, purchase_id: UUID, reason: str) -> Purchase:
        return self.purchases.fail_purchase(purchase_id, reason)

    def compute_tier(self, reputation_score: int, scarab_balance: int) -> TierResult:
        return compute_tier(reputation_score, scarab_balance)

    def get_reputation(self, address: str, reputation_score: int = 0) -> UserReputation:
        address = normalize_address(address)
        account = self.balances.peek_account(address)
        tier = compute_tier(reputation_score, account.balance)
        return UserReputation(
            address=address,
            scarab_points=account.balance,
            reputation_score=reputation_score,
            combined_score=tier.combined_score,
            trust_level=tier.trust_level,
            fee_tier=tier.fee_tier,
            fee_discount=tier.fee_discount,
        )
