"""
Scarab Points Ledger

This module provides:
- Per-address balances projected from an append-only transaction log
- Daily claims with UTC calendar-day streaks
- Fixed-price spends that never overdraw
- Purchase lifecycle: pending → confirmed exactly once per payment proof
- Reputation trust levels and fee tiers derived from balance
"""

from .config import ScarabSettings
from .errors import (
    ScarabError,
    InvalidInputError,
    InvalidTierError,
    AlreadyClaimedTodayError,
    InsufficientBalanceError,
    PurchaseError,
    PurchaseNotFoundError,
    PurchaseNotPendingError,
    PurchaseAlreadyConfirmedError,
    TxHashReusedError,
    PaymentNotVerifiedError,
    StoreUnavailableError,
)
from .models import (
    Account,
    EntryKind,
    LedgerEntry,
    Purchase,
    PurchaseStatus,
    PurchaseTier,
    TrustLevel,
)
from .service import ScarabService
from .tiers import compute_tier

__all__ = [
    "ScarabSettings",
    "ScarabService",
    "compute_tier",
    "Account",
    "EntryKind",
    "LedgerEntry",
    "Purchase",
    "PurchaseStatus",
    "PurchaseTier",
    "TrustLevel",
    "ScarabError",
    "InvalidInputError",
    "InvalidTierError",
    "AlreadyClaimedTodayError",
    "InsufficientBalanceError",
    "PurchaseError",
    "PurchaseNotFoundError",
    "PurchaseNotPendingError",
    "PurchaseAlreadyConfirmedError",
    "TxHashReusedError",
    "PaymentNotVerifiedError",
    "StoreUnavailableError",
]
