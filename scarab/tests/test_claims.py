"""
Unit Tests for the Claim Engine

Tests cover:
1. First claim and boost doubling
2. Same-day rejection
3. Streak growth, cap and reset
4. UTC calendar-day boundaries
"""

from datetime import datetime, timedelta, timezone

import pytest

from scarab.claims import plan_claim, utc_day_difference
from scarab.errors import AlreadyClaimedTodayError
from scarab.models import Account, EntryKind
from scarab.service import ScarabService

from conftest import ALICE, FrozenClock, make_settings


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestFirstClaim:
    """Tests for the welcome claim."""

    def test_first_claim(self, service):
        result = service.claim_daily(ALICE)

        assert result.amount == 20
        assert result.streak == 1
        assert result.is_first_claim is True
        assert result.balance == 20

        entry = service.get_transaction_history(ALICE).entries[0]
        assert entry.kind == EntryKind.CLAIM_INITIAL
        assert entry.amount == 20

    def test_first_claim_boosted(self, service):
        result = service.claim_daily(ALICE, boosted=True)

        assert result.amount == 40
        assert result.boosted is True

    def test_claim_records_claim_time_and_streak(self, service, clock):
        service.claim_daily(ALICE)

        account = service.get_balance(ALICE)
        assert account.last_claim_at == clock.now
        assert account.streak == 1
        assert account.total_earned == 20


class TestDailyClaim:
    """Tests for follow-up daily claims."""

    def test_second_claim_same_day_rejected(self, service, clock):
        service.claim_daily(ALICE)
        clock.advance(hours=11)

        with pytest.raises(AlreadyClaimedTodayError):
            service.claim_daily(ALICE)

        # Nothing changed
        account = service.get_balance(ALICE)
        assert account.balance == 20
        assert account.streak == 1
        assert service.get_transaction_history(ALICE).total_count == 1

    def test_next_day_extends_streak(self, service, clock):
        service.claim_daily(ALICE)
        clock.advance(days=1)

        result = service.claim_daily(ALICE)

        assert result.amount == 6
        assert result.streak == 2
        assert result.streak_bonus == 1
        assert result.is_first_claim is False
        assert result.balance == 26
        assert service.get_transaction_history(ALICE).entries[0].kind == EntryKind.CLAIM_DAILY

    def test_next_day_boosted(self, service, clock):
        service.claim_daily(ALICE)
        clock.advance(days=1)

        result = service.claim_daily(ALICE, boosted=True)

        assert result.amount == 12

    def test_gap_resets_streak(self, service, clock):
        service.claim_daily(ALICE)
        clock.advance(days=1)
        service.claim_daily(ALICE)
        clock.advance(days=3)

        result = service.claim_daily(ALICE)

        assert result.amount == 5
        assert result.streak == 1
        assert result.streak_bonus == 0

    def test_streak_bonus_capped(self, service, clock):
        """Test that the bonus stops growing at the configured cap."""
        service.claim_daily(ALICE)
        amounts = []
        for _ in range(13):
            clock.advance(days=1)
            amounts.append(service.claim_daily(ALICE).amount)

        # Streaks 2..14: bonus 1..10 then capped
        assert amounts[:3] == [6, 7, 8]
        assert amounts[9] == 15
        assert amounts[-1] == 15
        assert service.get_balance(ALICE).streak == 14

    def test_configurable_cap(self, clock):
        service = ScarabService(settings=make_settings(max_streak_bonus=5), clock=clock)
        service.claim_daily(ALICE)
        for _ in range(9):
            clock.advance(days=1)
            result = service.claim_daily(ALICE)

        assert result.streak == 10
        assert result.amount == 10


class TestDayBoundaries:
    """Tests for UTC calendar-day arithmetic."""

    def test_one_minute_across_midnight_is_next_day(self):
        clock = FrozenClock(utc(2026, 3, 10, 23, 59))
        service = ScarabService(settings=make_settings(), clock=clock)
        service.claim_daily(ALICE)

        clock.set(utc(2026, 3, 11, 0, 1))
        result = service.claim_daily(ALICE)

        assert result.streak == 2
        assert result.amount == 6

    def test_nearly_two_days_elapsed_is_still_contiguous(self):
        clock = FrozenClock(utc(2026, 3, 10, 0, 1))
        service = ScarabService(settings=make_settings(), clock=clock)
        service.claim_daily(ALICE)

        clock.set(utc(2026, 3, 11, 23, 59))
        result = service.claim_daily(ALICE)

        assert result.streak == 2

    def test_skipping_a_calendar_day_resets(self):
        clock = FrozenClock(utc(2026, 3, 10, 23, 59))
        service = ScarabService(settings=make_settings(), clock=clock)
        service.claim_daily(ALICE)
        clock.set(utc(2026, 3, 11, 0, 30))
        service.claim_daily(ALICE)

        clock.set(utc(2026, 3, 13, 0, 1))
        result = service.claim_daily(ALICE)

        assert result.streak == 1
        assert result.amount == 5

    def test_midnight_to_late_evening_same_day(self):
        clock = FrozenClock(utc(2026, 3, 10, 0, 0))
        service = ScarabService(settings=make_settings(), clock=clock)
        service.claim_daily(ALICE)

        clock.set(utc(2026, 3, 10, 23, 59, 59))
        with pytest.raises(AlreadyClaimedTodayError):
            service.claim_daily(ALICE)

    def test_day_difference_uses_utc_dates(self):
        plus_ten = timezone(timedelta(hours=10))
        # 2026-03-11 08:00 +10:00 is 2026-03-10 22:00 UTC
        earlier = datetime(2026, 3, 11, 8, 0, tzinfo=plus_ten)
        later = utc(2026, 3, 11, 1, 0)

        assert utc_day_difference(earlier, later) == 1


class TestPlanClaim:
    """Tests for the pure claim calculation."""

    def test_clock_behind_last_claim_counts_as_today(self):
        account = Account(address=ALICE, balance=20, total_earned=20,
                          last_claim_at=utc(2026, 3, 11, 9, 0), streak=1)

        with pytest.raises(AlreadyClaimedTodayError):
            plan_claim(account, utc(2026, 3, 10, 9, 0), False, make_settings())

    def test_description_mentions_bonus_and_boost(self):
        settings = make_settings()
        account = Account(address=ALICE, balance=26, total_earned=26,
                          last_claim_at=utc(2026, 3, 10, 9, 0), streak=2)

        plan = plan_claim(account, utc(2026, 3, 11, 9, 0), True, settings)

        assert plan.amount == 14
        assert plan.describe(settings, True) == "Daily claim: 5 + 2 streak bonus (2x boost!)"
