"""PostgreSQL account store backed by psycopg."""

import logging
from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row

from credit_engine.exceptions import (
    AccountNotFoundError,
    ConcurrentModificationError,
    DuplicateAccountError,
    StoreError,
)
from credit_engine.models import Account, AccountType
from credit_engine.store.base import (
    ACCOUNT_NUMBER_CONSTRAINT,
    SINGLE_PERSONAL_LOAN_CONSTRAINT,
    AccountStore,
)

logger = logging.getLogger(__name__)

TABLE = "credit_accounts"

COLUMNS = (
    "account_id",
    "account_number",
    "account_type",
    "owner_id",
    "principal_amount",
    "balance",
    "credit_limit",
    "interest_rate",
    "minimum_payment",
    "payment_due_day",
    "active",
    "created_at",
    "updated_at",
    "version",
)

# Unique index names map back to the store's constraint identifiers
CONSTRAINT_NAMES = {
    f"{TABLE}_account_number_key": ACCOUNT_NUMBER_CONSTRAINT,
    f"ux_{TABLE}_single_personal_loan": SINGLE_PERSONAL_LOAN_CONSTRAINT,
}

# Amount columns are unscaled NUMERIC so Decimals round-trip exactly and
# balance + credit_limit keeps equalling principal_amount after storage.
SCHEMA_DDL = [
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        account_id       TEXT PRIMARY KEY,
        account_number   TEXT NOT NULL UNIQUE,
        account_type     TEXT NOT NULL,
        owner_id         TEXT NOT NULL,
        principal_amount NUMERIC NOT NULL CHECK (principal_amount > 0),
        balance          NUMERIC NOT NULL DEFAULT 0 CHECK (balance >= 0),
        credit_limit     NUMERIC CHECK (credit_limit >= 0),
        interest_rate    NUMERIC NOT NULL DEFAULT 0,
        minimum_payment  NUMERIC,
        payment_due_day  SMALLINT,
        active           BOOLEAN NOT NULL DEFAULT TRUE,
        created_at       TIMESTAMP NOT NULL,
        updated_at       TIMESTAMP,
        version          INTEGER NOT NULL DEFAULT 0
    )
    """,
    f"CREATE INDEX IF NOT EXISTS ix_{TABLE}_owner ON {TABLE} (owner_id, account_type)",
    f"""
    CREATE UNIQUE INDEX IF NOT EXISTS ux_{TABLE}_single_personal_loan
        ON {TABLE} (owner_id) WHERE account_type = '{AccountType.PERSONAL_LOAN.value}'
    """,
]

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM {TABLE}"

_INSERT = (
    f"INSERT INTO {TABLE} ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join(f'%({c})s' for c in COLUMNS)}) "
    f"RETURNING {', '.join(COLUMNS)}"
)

_UPDATE = (
    f"UPDATE {TABLE} SET "
    + ", ".join(f"{c} = %({c})s" for c in COLUMNS if c not in ("account_id", "version"))
    + ", version = version + 1"
    + " WHERE account_id = %(account_id)s AND version = %(version)s"
    + f" RETURNING {', '.join(COLUMNS)}"
)


class PostgresAccountStore(AccountStore):
    """Account store on a PostgreSQL table.

    The schema carries the invariants the engine relies on under concurrency:
    ``CHECK`` constraints on balance and limit, a unique account number, and a
    partial unique index allowing one PERSONAL_LOAN per owner. Updates are
    conditional on ``version``.

    Parameters
    ----------
    conninfo : str | None
        Connection string; ignored when ``connection`` is given.
    connection : psycopg.Connection | None
        Existing connection, expected to run in autocommit mode.
    """

    def __init__(
        self,
        conninfo: str | None = None,
        connection: psycopg.Connection | None = None,
    ) -> None:
        if connection is None:
            if conninfo is None:
                raise StoreError("Either conninfo or connection is required")
            connection = psycopg.connect(conninfo, autocommit=True)
        self._conn = connection

    def __enter__(self) -> "PostgresAccountStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def ensure_schema(self) -> None:
        """Create the accounts table and its indexes if missing."""
        with self._conn.cursor() as cur:
            for statement in SCHEMA_DDL:
                cur.execute(statement)
        logger.info("Schema ready for table %s", TABLE)

    def get(self, account_id: str) -> Account | None:
        return self._fetch_one(f"{_SELECT} WHERE account_id = %s", (account_id,))

    def get_by_account_number(self, account_number: str) -> Account | None:
        return self._fetch_one(f"{_SELECT} WHERE account_number = %s", (account_number,))

    def list_all(self) -> list[Account]:
        return self._fetch_all(f"{_SELECT} ORDER BY created_at", ())

    def list_by_owner(self, owner_id: str) -> list[Account]:
        return self._fetch_all(f"{_SELECT} WHERE owner_id = %s ORDER BY created_at", (owner_id,))

    def list_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> list[Account]:
        return self._fetch_all(
            f"{_SELECT} WHERE owner_id = %s AND account_type = %s ORDER BY created_at",
            (owner_id, AccountType(account_type).value),
        )

    def count_by_owner_and_type(self, owner_id: str, account_type: AccountType) -> int:
        with self._conn.cursor() as cur:
            cur.execute(
                f"SELECT COUNT(*) FROM {TABLE} WHERE owner_id = %s AND account_type = %s",
                (owner_id, AccountType(account_type).value),
            )
            return int(cur.fetchone()[0])

    def exists_by_account_number(self, account_number: str) -> bool:
        with self._conn.cursor() as cur:
            cur.execute(
                f"SELECT EXISTS (SELECT 1 FROM {TABLE} WHERE account_number = %s)",
                (account_number,),
            )
            return bool(cur.fetchone()[0])

    def insert(self, account: Account) -> Account:
        try:
            stored = self._fetch_one(_INSERT, _to_params(account))
        except errors.UniqueViolation as e:
            constraint = CONSTRAINT_NAMES.get(e.diag.constraint_name or "", e.diag.constraint_name or "unknown")
            raise DuplicateAccountError(constraint, str(e).strip()) from e
        if stored is None:
            raise StoreError(f"Insert of account {account.account_id} returned no row")
        return stored

    def update(self, account: Account) -> Account:
        stored = self._fetch_one(_UPDATE, _to_params(account))
        if stored is not None:
            return stored
        # Nothing matched: either the row is gone or the version moved on
        if self.get(account.account_id) is None:
            raise AccountNotFoundError(account.account_id)
        raise ConcurrentModificationError(account.account_id, account.version)

    def delete(self, account_id: str) -> bool:
        with self._conn.cursor() as cur:
            cur.execute(f"DELETE FROM {TABLE} WHERE account_id = %s", (account_id,))
            return cur.rowcount > 0

    def _fetch_one(self, query: str, params: Any) -> Account | None:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return _row_to_account(row) if row else None

    def _fetch_all(self, query: str, params: Any) -> list[Account]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [_row_to_account(row) for row in rows]


def _to_params(account: Account) -> dict[str, Any]:
    """Convert an account to named query parameters."""
    params = {column: getattr(account, column) for column in COLUMNS}
    params["account_type"] = AccountType(account.account_type).value
    return params


def _row_to_account(row: dict[str, Any]) -> Account:
    """Convert a ``dict_row`` result into an Account."""
    data = dict(row)
    data["account_type"] = AccountType(data["account_type"])
    return Account(**data)
