class ScarabError(Exception):
    """Base class for every ledger failure. Raised errors leave the store untouched."""

    retryable = False


class InvalidInputError(ScarabError):
    pass


class InvalidTierError(InvalidInputError):
    pass


class AlreadyClaimedTodayError(ScarabError):
    pass


class InsufficientBalanceError(ScarabError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient Scarab. Need {required}, have {available}")


class PurchaseError(ScarabError):
    pass


class PurchaseNotFoundError(PurchaseError):
    pass


class PurchaseNotPendingError(PurchaseError):
    pass


class PurchaseAlreadyConfirmedError(PurchaseNotPendingError):
    pass


class TxHashReusedError(PurchaseError):
    pass


class PaymentNotVerifiedError(PurchaseError):
    pass


class StoreUnavailableError(ScarabError):
    """Transient: the caller may retry the whole request."""

    retryable = True
