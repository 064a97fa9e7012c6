"""Account store interface."""

from abc import ABC, abstractmethod

from credit_engine.models import Account, AccountType

# Account types a customer may own at most once; stores enforce this on insert
EXCLUSIVE_TYPES = frozenset({AccountType.PERSONAL_LOAN})

ACCOUNT_NUMBER_CONSTRAINT = "account_number"
SINGLE_PERSONAL_LOAN_CONSTRAINT = "single_personal_loan"


class AccountStore(ABC):
    """Durable keyed storage for credit accounts.

    Every operation is atomic for a single record. ``update`` is a
    compare-and-swap on ``Account.version`` and ``insert`` rejects a second
    account of an exclusive type for the same owner, so concurrent writers
    cannot lose updates or slip past the one-personal-loan rule.
    """

    @abstractmethod
    def get(self, account_id: str) -> Account | None:
        """Get an account by internal id."""

    @abstractmethod
    def get_by_account_number(self, account_number: str) -> Account | None:
        """Get an account by its human-facing number."""

    @abstractmethod
    def list_all(self) -> list[Account]:
        """List every account."""

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[Account]:
        """List all accounts owned by a customer."""

    @abstractmethod
    def list_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> list[Account]:
        """List a customer's accounts of one type."""

    @abstractmethod
    def count_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> int:
        """Count a customer's accounts of one type."""

    @abstractmethod
    def exists_by_account_number(self, account_number: str) -> bool:
        """Check whether an account number is taken."""

    @abstractmethod
    def insert(self, account: Account) -> Account:
        """Insert a new account.

        Raises
        ------
        DuplicateAccountError
            If the account number is taken, or the owner already holds an
            account of an exclusive type.
        """

    @abstractmethod
    def update(self, account: Account) -> Account:
        """Replace an account if its version still matches the stored one.

        Returns the stored account with the version incremented.

        Raises
        ------
        AccountNotFoundError
            If the account no longer exists.
        ConcurrentModificationError
            If another writer updated the account first.
        """

    @abstractmethod
    def delete(self, account_id: str) -> bool:
        """Delete an account, returning whether a record was removed."""
