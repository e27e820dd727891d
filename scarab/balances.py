"""
Balance Store and Transaction Log.

Accounts are a materialized projection of the append-only ledger. Every
change to an account goes through an ``AccountTransaction``: the caller holds
the per-address lock for the whole unit, stages its changes, and they are
written together only when the unit finishes without raising.
"""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional
from uuid import uuid4

from .errors import InsufficientBalanceError, InvalidInputError
from .models import Account, EntryKind, LedgerEntry, TransactionHistory
from .storage import InMemoryStorage, account_key

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-f]{40}$")

_MUTABLE_ACCOUNT_FIELDS = frozenset({"last_claim_at", "streak"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_address(address: str) -> str:
    if not isinstance(address, str):
        raise InvalidInputError("address is required")
    normalized = address.strip().lower()
    if not ADDRESS_PATTERN.match(normalized):
        raise InvalidInputError(f"Malformed address: {address!r}")
    return normalized


def _zero_account(address: str) -> dict:
    return {
        "address": address,
        "balance": 0,
        "total_earned": 0,
        "total_spent": 0,
        "total_purchased": 0,
        "last_claim_at": None,
        "streak": 0,
    }


class AccountTransaction:
    """Staged changes to one account plus any extra rows written with it."""

    def __init__(self, storage: InMemoryStorage, address: str, now: datetime):
        self.storage = storage
        self.address = address
        self.now = now
        existing = storage.accounts.get(address)
        self._account = dict(existing) if existing else _zero_account(address)
        self._entries: list[dict] = []
        self._writes: list[tuple[dict, object, dict]] = []

    @property
    def account(self) -> Account:
        return Account(**self._account)

    @property
    def entries(self) -> list[LedgerEntry]:
        return [LedgerEntry(**e) for e in self._entries]

    def apply_delta(
        self,
        amount: int,
        kind: EntryKind,
        related_id: Optional[str] = None,
        description: str = "",
    ) -> LedgerEntry:
        kind = EntryKind(kind)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidInputError("amount must be a non-zero integer")
        if kind.is_credit != (amount > 0):
            raise InvalidInputError(f"{kind.value} entries must be {'positive' if kind.is_credit else 'negative'}")

        balance = self._account["balance"]
        if amount < 0 and balance + amount < 0:
            raise InsufficientBalanceError(required=-amount, available=balance)

        new_balance = balance + amount
        self._account["balance"] = new_balance
        if kind == EntryKind.SPEND:
            self._account["total_spent"] += -amount
        elif kind == EntryKind.PURCHASE_CREDIT:
            self._account["total_purchased"] += amount
        else:
            self._account["total_earned"] += amount

        entry = {
            "id": uuid4(),
            "address": self.address,
            "kind": kind,
            "amount": amount,
            "balance_after": new_balance,
            "related_id": related_id,
            "description": description,
            "sequence": self.storage.next_sequence(),
            "created_at": self.now,
        }
        self._entries.append(entry)
        return LedgerEntry(**entry)

    def update(self, **fields) -> None:
        unknown = set(fields) - _MUTABLE_ACCOUNT_FIELDS
        if unknown:
            raise InvalidInputError(f"Cannot update account fields: {sorted(unknown)}")
        self._account.update(fields)

    def put(self, table: dict, key: object, record: dict) -> None:
        self._writes.append((table, key, record))

    def commit(self) -> None:
        # Whole-record replacement keeps lock-free readers on a consistent snapshot.
        self.storage.accounts[self.address] = self._account
        for entry in self._entries:
            self.storage.ledger_entries[entry["id"]] = entry
            self.storage.entries_by_address.setdefault(self.address, []).append(entry["id"])
        for table, key, record in self._writes:
            table[key] = record


class BalanceStore:
    def __init__(self, storage: InMemoryStorage, clock: Clock = utcnow, max_history_limit: int = 100):
        self.storage = storage
        self.clock = clock
        self.max_history_limit = max_history_limit

    @contextmanager
    def transaction(self, address: str, *extra_keys: str) -> Iterator[AccountTransaction]:
        address = normalize_address(address)
        with self.storage.locked(account_key(address), *extra_keys):
            txn = AccountTransaction(self.storage, address, self.clock())
            yield txn
            txn.commit()
        for entry in txn.entries:
            logger.info(
                "%s %s %+d -> balance %d", entry.address, entry.kind.value, entry.amount, entry.balance_after
            )

    def get_account(self, address: str) -> Account:
        with self.transaction(address) as txn:
            return txn.account

    def peek_account(self, address: str) -> Account:
        address = normalize_address(address)
        record = self.storage.accounts.get(address)
        return Account(**record) if record else Account(address=address)

    def apply_delta(
        self,
        address: str,
        amount: int,
        kind: EntryKind,
        related_id: Optional[str] = None,
        description: str = "",
    ) -> Account:
        with self.transaction(address) as txn:
            txn.apply_delta(amount, kind, related_id, description)
            return txn.account

    def get_transaction_history(self, address: str, limit: int = 20, offset: int = 0) -> TransactionHistory:
        address = normalize_address(address)
        if limit < 1 or limit > self.max_history_limit:
            raise InvalidInputError(f"limit must be between 1 and {self.max_history_limit}")
        if offset < 0:
            raise InvalidInputError("offset must not be negative")

        ids = list(self.storage.entries_by_address.get(address, []))
        records = [self.storage.ledger_entries[i] for i in ids]
        records.sort(key=lambda e: (e["created_at"], e["sequence"]), reverse=True)

        return TransactionHistory(
            address=address,
            entries=[LedgerEntry(**e) for e in records[offset:offset + limit]],
            total_count=len(records),
            limit=limit,
            offset=offset,
            current_balance=self.peek_account(address).balance,
        )
