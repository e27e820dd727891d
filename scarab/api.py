from typing import Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from .config import ScarabSettings, configure_logging
from .errors import (
    AlreadyClaimedTodayError,
    InsufficientBalanceError,
    InvalidInputError,
    PurchaseError,
    PurchaseNotFoundError,
    StoreUnavailableError,
)
from .models import (
    Account,
    ClaimRequest,
    ClaimResult,
    ConfirmPurchaseRequest,
    ConfirmPurchaseResult,
    CreatePurchaseRequest,
    FailPurchaseRequest,
    Purchase,
    PurchaseTierInfo,
    SpendRequest,
    SpendResult,
    TierResult,
    TransactionHistory,
    UserReputation,
)
from .service import ScarabService


def _unavailable(e: StoreUnavailableError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def _service(request: Request) -> ScarabService:
    return request.app.state.scarab


def create_app(
    service: Optional[ScarabService] = None,
    settings: Optional[ScarabSettings] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or (service.settings if service else ScarabSettings())
    configure_logging(settings)

    app = FastAPI(
        title="Scarab Ledger API",
        description="Off-chain Scarab points: daily claims, spends, purchases and fee tiers",
        version="1.0.0",
        root_path=root_path,
    )
    app.state.scarab = service or ScarabService(settings=settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": settings.service_name}

    @app.get("/scarab/balance", response_model=Account, tags=["Balance"])
    def get_balance(request: Request, address: str) -> Account:
        try:
            return _service(request).get_balance(address)
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/scarab/history", response_model=TransactionHistory, tags=["Balance"])
    def get_history(request: Request, address: str, limit: Optional[int] = None, offset: int = 0) -> TransactionHistory:
        try:
            return _service(request).get_transaction_history(address, limit, offset)
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.post("/scarab/claim", response_model=ClaimResult, tags=["Claims"])
    def claim(request: Request, body: ClaimRequest) -> ClaimResult:
        try:
            return _service(request).claim_daily(body.address, body.boost)
        except AlreadyClaimedTodayError as e:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StoreUnavailableError as e:
            raise _unavailable(e)

    @app.post("/scarab/spend", response_model=SpendResult, tags=["Spending"])
    def spend(request: Request, body: SpendRequest) -> SpendResult:
        try:
            return _service(request).spend(body.address, body.purpose, body.related_id)
        except InsufficientBalanceError as e:
            raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(e))
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StoreUnavailableError as e:
            raise _unavailable(e)

    @app.get("/scarab/purchase/tiers", response_model=list[PurchaseTierInfo], tags=["Purchases"])
    def list_tiers(request: Request) -> list[PurchaseTierInfo]:
        return _service(request).list_purchase_tiers()

    @app.post("/scarab/purchase", response_model=Purchase, status_code=status.HTTP_201_CREATED, tags=["Purchases"])
    def create_purchase(request: Request, body: CreatePurchaseRequest) -> Purchase:
        try:
            return _service(request).create_purchase(body.address, body.tier)
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StoreUnavailableError as e:
            raise _unavailable(e)

    @app.patch("/scarab/purchase", response_model=ConfirmPurchaseResult, tags=["Purchases"])
    def confirm_purchase(request: Request, body: ConfirmPurchaseRequest) -> ConfirmPurchaseResult:
        try:
            return _service(request).confirm_purchase(body.purchase_id, body.tx_hash)
        except PurchaseNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except PurchaseError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StoreUnavailableError as e:
            raise _unavailable(e)

    @app.get("/scarab/purchase/{purchase_id}", response_model=Purchase, tags=["Purchases"])
    def get_purchase(request: Request, purchase_id: UUID) -> Purchase:
        try:
            return _service(request).get_purchase(purchase_id)
        except PurchaseNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/scarab/purchase/{purchase_id}/fail", response_model=Purchase, tags=["Purchases"])
    def fail_purchase(request: Request, purchase_id: UUID, body: FailPurchaseRequest) -> Purchase:
        try:
            return _service(request).fail_purchase(purchase_id, body.reason)
        except PurchaseNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except PurchaseError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except StoreUnavailableError as e:
            raise _unavailable(e)

    @app.get("/scarab/tier", response_model=TierResult, tags=["Reputation"])
    def get_tier(request: Request, reputation_score: int = 0, scarab_balance: int = 0) -> TierResult:
        try:
            return _service(request).compute_tier(reputation_score, scarab_balance)
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/reputation/{address}", response_model=UserReputation, tags=["Reputation"])
    def get_reputation(request: Request, address: str, reputation_score: int = 0) -> UserReputation:
        try:
            return _service(request).get_reputation(address, reputation_score)
        except InvalidInputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
