"""
Concurrency Tests

Runs real threads against the per-key lock layer to check that racing
requests never double-credit, overdraw, or block unrelated addresses.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from scarab.errors import (
    AlreadyClaimedTodayError,
    InsufficientBalanceError,
    PurchaseAlreadyConfirmedError,
    StoreUnavailableError,
    TxHashReusedError,
)
from scarab.models import EntryKind
from scarab.service import ScarabService
from scarab.storage import InMemoryStorage

from conftest import ALICE, BOB, make_settings

WORKERS = 16


def race(fn, calls: int):
    """Start `calls` invocations of fn together; return (results, errors)."""
    barrier = threading.Barrier(calls)

    def run(i):
        barrier.wait()
        try:
            return fn(i), None
        except Exception as e:
            return None, e

    with ThreadPoolExecutor(max_workers=calls) as pool:
        outcomes = list(pool.map(run, range(calls)))
    return [r for r, _ in outcomes if r is not None], [e for _, e in outcomes if e is not None]


class TestConcurrentClaims:

    def test_exactly_one_claim_per_day(self, service):
        results, errors = race(lambda i: service.claim_daily(ALICE), WORKERS)

        assert len(results) == 1
        assert len(errors) == WORKERS - 1
        assert all(isinstance(e, AlreadyClaimedTodayError) for e in errors)
        assert service.get_balance(ALICE).balance == 20
        assert service.get_transaction_history(ALICE).total_count == 1


class TestConcurrentSpends:

    def test_no_overdraft_under_contention(self, service):
        service.claim_daily(ALICE)  # 20

        results, errors = race(lambda i: service.spend(ALICE, "vote", related_id=f"vote-{i}"), 10)

        assert len(results) == 4
        assert all(isinstance(e, InsufficientBalanceError) for e in errors)
        account = service.get_balance(ALICE)
        assert account.balance == 0
        assert account.total_spent == 20
        assert account.balance == account.total_earned + account.total_purchased - account.total_spent

    def test_no_lost_updates(self, service):
        results, errors = race(lambda i: service.reward(ALICE, 3, f"grant {i}"), WORKERS)

        assert errors == []
        history = service.get_transaction_history(ALICE, limit=100)
        assert service.get_balance(ALICE).balance == 3 * WORKERS
        assert sum(e.amount for e in history.entries) == 3 * WORKERS
        assert sorted(e.balance_after for e in history.entries) == [3 * (i + 1) for i in range(WORKERS)]


class TestConcurrentPurchases:

    def test_confirm_races_credit_once(self, service):
        purchase = service.create_purchase(ALICE, "medium")

        results, errors = race(lambda i: service.confirm_purchase(purchase.id, f"0x{i:064x}"), 8)

        assert len(results) == 1
        assert all(isinstance(e, PurchaseAlreadyConfirmedError) for e in errors)
        assert service.get_balance(ALICE).balance == 300
        assert len(service.storage.tx_hash_index) == 1

    def test_same_proof_on_two_purchases(self, service):
        purchases = [service.create_purchase(ALICE, "small"), service.create_purchase(BOB, "small")]

        results, errors = race(lambda i: service.confirm_purchase(purchases[i].id, "0x" + "ef" * 32), 2)

        assert len(results) == 1
        assert len(errors) == 1 and isinstance(errors[0], TxHashReusedError)
        total = service.get_balance(ALICE).balance + service.get_balance(BOB).balance
        assert total == 50


class TestLockTimeouts:

    def test_busy_address_times_out_other_address_proceeds(self, clock):
        service = ScarabService(settings=make_settings(lock_timeout_seconds=0.05), clock=clock)

        with service.balances.transaction(ALICE):
            with ThreadPoolExecutor(max_workers=2) as pool:
                blocked = pool.submit(service.reward, ALICE, 5, "grant")
                free = pool.submit(service.reward, BOB, 5, "grant")

                with pytest.raises(StoreUnavailableError) as exc_info:
                    blocked.result(timeout=5)
                assert free.result(timeout=5).balance == 5

        assert exc_info.value.retryable is True
        assert service.get_balance(ALICE).balance == 0
        assert service.get_transaction_history(BOB).entries[0].kind == EntryKind.REWARD

    def test_lock_registry_reuses_one_lock_per_key(self):
        storage = InMemoryStorage()

        with storage.locked("account:a", "account:b"):
            pass
        with storage.locked("account:a"):
            pass

        assert set(storage._locks) == {"account:a", "account:b"}
        assert storage._lock_for("account:a") is storage._lock_for("account:a")
