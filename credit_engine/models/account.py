"""Credit account model."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from credit_engine.models.enums import AccountType

ACCOUNT_NUMBER_PREFIX = "CRD-"


def generate_account_number() -> str:
    """Generate a human-facing account number (``CRD-`` + 10 uppercase characters).

    Collisions are not retried; a duplicate is rejected by the store.
    """
    return ACCOUNT_NUMBER_PREFIX + uuid.uuid4().hex[:10].upper()


def generate_account_id() -> str:
    """Generate an opaque internal account identifier."""
    return str(uuid.uuid4())


@dataclass
class Account:
    """Credit product owned by one customer.

    Supported products:
    - PERSONAL_LOAN: at most one per personal customer
    - BUSINESS_LOAN: business customers only
    - CREDIT_CARD: the only product that accepts charges

    ``credit_limit`` is the remaining spendable headroom. For cards the engine
    keeps ``balance + credit_limit == principal_amount``.
    """

    account_id: str
    account_number: str
    account_type: AccountType
    owner_id: str
    principal_amount: Decimal
    created_at: datetime
    balance: Decimal = Decimal("0")
    credit_limit: Decimal | None = None
    interest_rate: Decimal = Decimal("0")
    minimum_payment: Decimal | None = None
    payment_due_day: int | None = None  # 1-31
    active: bool = True
    updated_at: datetime | None = None
    version: int = 0  # optimistic concurrency token

    @property
    def available_credit(self) -> Decimal:
        """Spendable headroom, falling back to principal minus balance."""
        if self.credit_limit is not None:
            return self.credit_limit
        return self.principal_amount - self.balance

    @property
    def has_available_credit(self) -> bool:
        return self.available_credit > 0

    @property
    def is_credit_card(self) -> bool:
        return self.account_type == AccountType.CREDIT_CARD
