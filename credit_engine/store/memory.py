"""In-memory account store with relationship indexes."""

import threading
from dataclasses import dataclass, field, replace

from credit_engine.exceptions import (
    AccountNotFoundError,
    ConcurrentModificationError,
    DuplicateAccountError,
)
from credit_engine.models import Account, AccountType
from credit_engine.store.base import (
    ACCOUNT_NUMBER_CONSTRAINT,
    EXCLUSIVE_TYPES,
    SINGLE_PERSONAL_LOAN_CONSTRAINT,
    AccountStore,
)


@dataclass
class InMemoryAccountStore(AccountStore):
    """Thread-safe in-memory store for development and tests.

    Accounts are copied on the way in and out, so a caller mutating a
    returned object never changes stored state behind the version check.
    """

    accounts: dict[str, Account] = field(default_factory=dict)

    # Relationship indexes
    _owner_accounts: dict[str, list[str]] = field(default_factory=dict)
    _account_numbers: dict[str, str] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def get(self, account_id: str) -> Account | None:
        with self._lock:
            account = self.accounts.get(account_id)
            return replace(account) if account else None

    def get_by_account_number(self, account_number: str) -> Account | None:
        with self._lock:
            account_id = self._account_numbers.get(account_number)
            return self.get(account_id) if account_id else None

    def list_all(self) -> list[Account]:
        with self._lock:
            return [replace(a) for a in self.accounts.values()]

    def list_by_owner(self, owner_id: str) -> list[Account]:
        with self._lock:
            account_ids = self._owner_accounts.get(owner_id, [])
            return [replace(self.accounts[aid]) for aid in account_ids]

    def list_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> list[Account]:
        return [a for a in self.list_by_owner(owner_id) if a.account_type == account_type]

    def count_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> int:
        with self._lock:
            return sum(
                1
                for aid in self._owner_accounts.get(owner_id, [])
                if self.accounts[aid].account_type == account_type
            )

    def exists_by_account_number(self, account_number: str) -> bool:
        with self._lock:
            return account_number in self._account_numbers

    def insert(self, account: Account) -> Account:
        with self._lock:
            if account.account_number in self._account_numbers:
                raise DuplicateAccountError(
                    ACCOUNT_NUMBER_CONSTRAINT,
                    f"Account number {account.account_number} already exists",
                )
            if account.account_type in EXCLUSIVE_TYPES and self.count_by_owner_and_type(
                account.owner_id, account.account_type
            ):
                raise DuplicateAccountError(
                    SINGLE_PERSONAL_LOAN_CONSTRAINT,
                    f"Customer {account.owner_id} already holds a {account.account_type.value}",
                )

            stored = replace(account)
            self.accounts[stored.account_id] = stored
            self._owner_accounts.setdefault(stored.owner_id, []).append(stored.account_id)
            self._account_numbers[stored.account_number] = stored.account_id
            return replace(stored)

    def update(self, account: Account) -> Account:
        with self._lock:
            current = self.accounts.get(account.account_id)
            if current is None:
                raise AccountNotFoundError(account.account_id)
            if current.version != account.version:
                raise ConcurrentModificationError(account.account_id, account.version)

            stored = replace(account, version=account.version + 1)
            self.accounts[stored.account_id] = stored
            return replace(stored)

    def delete(self, account_id: str) -> bool:
        with self._lock:
            account = self.accounts.pop(account_id, None)
            if account is None:
                return False
            self._owner_accounts[account.owner_id].remove(account_id)
            del self._account_numbers[account.account_number]
            return True

    def summary(self) -> dict[str, int]:
        """Return account counts by type."""
        with self._lock:
            counts = {t.value: 0 for t in AccountType}
            for account in self.accounts.values():
                counts[account.account_type.value] += 1
            counts["total"] = len(self.accounts)
            return counts
