from datetime import datetime, timedelta, timezone

import pytest

from scarab.config import ScarabSettings
from scarab.service import ScarabService


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


class FrozenClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


def make_settings(**overrides) -> ScarabSettings:
    return ScarabSettings(_env_file=None, **overrides)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(clock):
    return ScarabService(settings=make_settings(), clock=clock)
