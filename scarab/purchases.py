"""
Purchase lifecycle: pending -> confirmed (exactly once) or pending -> failed.

Confirmation takes the purchase, account and tx hash locks together, so the
status change, the tx hash reservation and the balance credit are committed
as one unit or not at all.
"""

import logging
from typing import Optional, Protocol
from uuid import UUID, uuid4

from .balances import BalanceStore, normalize_address
from .config import TierPrice
from .errors import (
    InvalidInputError,
    InvalidTierError,
    PaymentNotVerifiedError,
    PurchaseAlreadyConfirmedError,
    PurchaseNotFoundError,
    PurchaseNotPendingError,
    TxHashReusedError,
)
from .models import (
    ConfirmPurchaseResult,
    EntryKind,
    Purchase,
    PurchaseStatus,
    PurchaseTier,
    PurchaseTierInfo,
)
from .storage import purchase_key, tx_hash_key

logger = logging.getLogger(__name__)


def _coerce_id(purchase_id) -> UUID:
    if isinstance(purchase_id, UUID):
        return purchase_id
    try:
        return UUID(str(purchase_id))
    except ValueError:
        raise PurchaseNotFoundError(f"Purchase {purchase_id} not found") from None


class PaymentVerifier(Protocol):
    def verify(self, tx_hash: str, purchase: Purchase) -> bool:
        """Return True if tx_hash is a settled payment of purchase.usdc_amount."""
        ...


class PurchaseManager:
    def __init__(
        self,
        balances: BalanceStore,
        tiers: dict[str, TierPrice],
        verifier: Optional[PaymentVerifier] = None,
    ):
        self.balances = balances
        self.storage = balances.storage
        self.tiers = dict(tiers)
        self.verifier = verifier

    def list_tiers(self) -> list[PurchaseTierInfo]:
        return [
            PurchaseTierInfo(tier=PurchaseTier(name), usdc_amount=price.usdc, scarab_amount=price.scarab)
            for name, price in self.tiers.items()
        ]

    def _resolve_tier(self, tier: str) -> tuple[PurchaseTier, TierPrice]:
        try:
            resolved = PurchaseTier(tier)
        except ValueError:
            raise InvalidTierError(f'tier must be one of {", ".join(t.value for t in PurchaseTier)}') from None
        price = self.tiers.get(resolved.value)
        if price is None:
            raise InvalidTierError(f"tier {resolved.value!r} is not on sale")
        return resolved, price

    def create_purchase(self, address: str, tier: str) -> Purchase:
        address = normalize_address(address)
        resolved, price = self._resolve_tier(tier)

        purchase_id = uuid4()
        record = {
            "id": purchase_id,
            "address": address,
            "tier": resolved,
            "usdc_amount": price.usdc,
            "scarab_amount": price.scarab,
            "status": PurchaseStatus.PENDING,
            "tx_hash": None,
            "created_at": self.balances.clock(),
            "confirmed_at": None,
            "failure_reason": None,
        }
        with self.storage.locked(purchase_key(purchase_id)):
            self.storage.purchases[purchase_id] = record

        logger.info("Created %s purchase %s for %s", resolved.value, purchase_id, address)
        return Purchase(**record)

    def get_purchase(self, purchase_id: UUID) -> Purchase:
        purchase_id = _coerce_id(purchase_id)
        record = self.storage.purchases.get(purchase_id)
        if not record:
            raise PurchaseNotFoundError(f"Purchase {purchase_id} not found")
        return Purchase(**record)

    def list_purchases(self, address: str) -> list[Purchase]:
        address = normalize_address(address)
        found = [Purchase(**p) for p in list(self.storage.purchases.values()) if p["address"] == address]
        found.sort(key=lambda p: p.created_at, reverse=True)
        return found

    def _check_confirmable(self, purchase: Purchase, tx_hash: str) -> None:
        if purchase.status == PurchaseStatus.CONFIRMED:
            raise PurchaseAlreadyConfirmedError(f"Purchase {purchase.id} already confirmed")
        if not purchase.can_confirm():
            raise PurchaseNotPendingError(f"Purchase {purchase.id} already {purchase.status.value}")
        owner = self.storage.tx_hash_index.get(tx_hash)
        if owner is not None and owner != purchase.id:
            raise TxHashReusedError(f"Transaction {tx_hash} already used for purchase {owner}")

    def confirm_purchase(self, purchase_id: UUID, tx_hash: str) -> ConfirmPurchaseResult:
        if not isinstance(tx_hash, str) or not tx_hash.strip():
            raise InvalidInputError("tx_hash is required")
        tx_hash = tx_hash.strip().lower()
        purchase_id = _coerce_id(purchase_id)

        purchase = self.get_purchase(purchase_id)
        self._check_confirmable(purchase, tx_hash)

        if self.verifier is not None and not self.verifier.verify(tx_hash, purchase):
            logger.info("Payment proof %s rejected for purchase %s", tx_hash, purchase_id)
            raise PaymentNotVerifiedError(f"Transaction {tx_hash} is not a settled payment for {purchase_id}")

        with self.balances.transaction(purchase.address, purchase_key(purchase_id), tx_hash_key(tx_hash)) as txn:
            # State may have moved while we were verifying.
            purchase = self.get_purchase(purchase_id)
            self._check_confirmable(purchase, tx_hash)

            record = purchase.model_dump()
            record.update(status=PurchaseStatus.CONFIRMED, tx_hash=tx_hash, confirmed_at=txn.now)
            txn.apply_delta(
                purchase.scarab_amount,
                EntryKind.PURCHASE_CREDIT,
                str(purchase_id),
                description=f"Purchased {purchase.scarab_amount} Scarab (${purchase.usdc_amount} USDC)",
            )
            txn.put(self.storage.purchases, purchase_id, record)
            txn.put(self.storage.tx_hash_index, tx_hash, purchase_id)
            balance = txn.account.balance

        return ConfirmPurchaseResult(
            purchase=Purchase(**record),
            scarab_amount=purchase.scarab_amount,
            balance=balance,
        )

    def fail_purchase(self, purchase_id: UUID, reason: str) -> Purchase:
        purchase_id = _coerce_id(purchase_id)
        with self.storage.locked(purchase_key(purchase_id)):
            purchase = self.get_purchase(purchase_id)
            if purchase.status == PurchaseStatus.CONFIRMED:
                raise PurchaseAlreadyConfirmedError(f"Purchase {purchase_id} already confirmed")
            if not purchase.can_fail():
                raise PurchaseNotPendingError(f"Purchase {purchase_id} already {purchase.status.value}")
            record = purchase.model_dump()
            record.update(status=PurchaseStatus.FAILED, failure_reason=reason)
            self.storage.purchases[purchase_id] = record

        logger.info("Purchase %s failed: %s", purchase_id, reason)
        return Purchase(**record)
