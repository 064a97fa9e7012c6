"""Inbound request models for account creation and updates."""

from dataclasses import dataclass
from decimal import Decimal

from credit_engine.models.enums import AccountType


@dataclass
class CreditRequest:
    """Request to open a new credit account.

    Field validation (positive principal, due day range) is the caller's concern.
    """

    account_type: AccountType
    customer_id: str
    principal_amount: Decimal
    interest_rate: Decimal | None = None
    minimum_payment: Decimal | None = None
    payment_due_day: int | None = None


@dataclass
class AccountTerms:
    """Descriptive account fields that may change after creation."""

    interest_rate: Decimal | None = None
    minimum_payment: Decimal | None = None
    payment_due_day: int | None = None
