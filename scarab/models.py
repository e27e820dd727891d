from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


class EntryKind(str, Enum):
    CLAIM_INITIAL = "claim_initial"
    CLAIM_DAILY = "claim_daily"
    SPEND = "spend"
    PURCHASE_CREDIT = "purchase_credit"
    REWARD = "reward"

    @property
    def is_credit(self) -> bool:
        return self is not EntryKind.SPEND


class PurchaseTier(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TrustLevel(str, Enum):
    NEW = "new"
    TRUSTED = "trusted"
    VERIFIED = "verified"
    GUARDIAN = "guardian"


class Account(BaseModel):
    address: str
    balance: int = 0
    total_earned: int = 0
    total_spent: int = 0
    total_purchased: int = 0
    last_claim_at: Optional[datetime] = None
    streak: int = 0

    model_config = ConfigDict(from_attributes=True)


class LedgerEntry(BaseModel):
    id: UUID
    address: str
    kind: EntryKind
    amount: int
    balance_after: int
    related_id: Optional[str] = None
    description: str = ""
    sequence: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Purchase(BaseModel):
    id: UUID
    address: str
    tier: PurchaseTier
    usdc_amount: Decimal
    scarab_amount: int
    status: PurchaseStatus
    tx_hash: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def can_confirm(self) -> bool:
        return self.status == PurchaseStatus.PENDING

    def can_fail(self) -> bool:
        return self.status == PurchaseStatus.PENDING


class PurchaseTierInfo(BaseModel):
    tier: PurchaseTier
    usdc_amount: Decimal
    scarab_amount: int


class ClaimResult(BaseModel):
    amount: int
    balance: int
    streak: int
    streak_bonus: int = 0
    is_first_claim: bool
    boosted: bool = False


class SpendResult(BaseModel):
    cost: int
    balance: int


class ConfirmPurchaseResult(BaseModel):
    purchase: Purchase
    scarab_amount: int
    balance: int


class TransactionHistory(BaseModel):
    address: str
    entries: list[LedgerEntry]
    total_count: int
    limit: int
    offset: int
    current_balance: int


class TierResult(BaseModel):
    combined_score: int
    trust_level: TrustLevel
    fee_tier: Decimal = Field(..., description="Fee percentage, e.g. 0.5 means 0.5%")
    fee_discount: str


class UserReputation(BaseModel):
    address: str
    scarab_points: int
    reputation_score: int
    combined_score: int
    trust_level: TrustLevel
    fee_tier: Decimal
    fee_discount: str


class ClaimRequest(BaseModel):
    address: str
    boost: bool = False

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "address": "0x52908400098527886e0f7030069857d2e4169ee7",
            "boost": False
        }
    })


class SpendRequest(BaseModel):
    address: str
    purpose: str = Field(..., description="Priced action, e.g. review or vote")
    related_id: Optional[str] = None


class CreatePurchaseRequest(BaseModel):
    address: str
    tier: str


class ConfirmPurchaseRequest(BaseModel):
    purchase_id: UUID
    tx_hash: str = Field(..., min_length=1)


class FailPurchaseRequest(BaseModel):
    reason: str = Field(..., description="Why the payment was rejected")
