import logging
import sys
from decimal import Decimal

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import PurchaseTier

LOG_FORMAT = "[%(asctime)s][%(levelname)s] %(name)s: %(message)s"
PURCHASE_TIER_NAMES = {t.value for t in PurchaseTier}


class TierPrice(BaseModel):
    usdc: Decimal
    scarab: int


def _default_tiers() -> dict[str, TierPrice]:
    return {
        "small": TierPrice(usdc=Decimal("1"), scarab=50),
        "medium": TierPrice(usdc=Decimal("5"), scarab=300),
        "large": TierPrice(usdc=Decimal("20"), scarab=1500),
    }


class ScarabSettings(BaseSettings):
    """
    Economics and runtime settings. Values can be overridden with
    SCARAB_* environment variables or a .env file.
    """

    service_name: str = "scarab-ledger"
    log_level: str = "INFO"

    initial_claim: int = 20
    daily_claim: int = 5
    streak_bonus_per_day: int = 1
    max_streak_bonus: int = 10
    boost_multiplier: int = 2

    spend_prices: dict[str, int] = Field(default_factory=lambda: {"review": 2, "vote": 5})
    purchase_tiers: dict[str, TierPrice] = Field(default_factory=_default_tiers)

    lock_timeout_seconds: float = 5.0
    history_default_limit: int = 20
    history_max_limit: int = 100

    model_config = SettingsConfigDict(env_prefix="SCARAB_", env_file=".env", extra="ignore")

    @field_validator("spend_prices")
    @classmethod
    def prices_are_positive(cls, v: dict[str, int]) -> dict[str, int]:
        for purpose, cost in v.items():
            if cost <= 0:
                raise ValueError(f"price for {purpose!r} must be positive")
        return v

    @field_validator("purchase_tiers")
    @classmethod
    def tiers_are_known(cls, v: dict[str, TierPrice]) -> dict[str, TierPrice]:
        for name, price in v.items():
            if name not in PURCHASE_TIER_NAMES:
                raise ValueError(f"unknown purchase tier {name!r}")
            if price.usdc <= 0 or price.scarab <= 0:
                raise ValueError(f"tier {name!r} must have positive usdc and scarab amounts")
        return v

    @field_validator("initial_claim", "daily_claim", "boost_multiplier")
    @classmethod
    def amount_is_positive(cls, v: int, info: ValidationInfo) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @field_validator("lock_timeout_seconds")
    @classmethod
    def timeout_is_bounded(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("lock_timeout_seconds must be positive")
        return v

    def streak_bonus(self, streak: int) -> int:
        return min((streak - 1) * self.streak_bonus_per_day, self.max_streak_bonus)


def configure_logging(settings: ScarabSettings) -> logging.Logger:
    logger = logging.getLogger("scarab")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(settings.log_level.upper())
    return logger
