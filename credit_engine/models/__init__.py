"""Credit account domain models."""

from credit_engine.models.account import Account, generate_account_id, generate_account_number
from credit_engine.models.customer import CustomerSnapshot
from credit_engine.models.enums import AccountType, CustomerType
from credit_engine.models.requests import AccountTerms, CreditRequest

__all__ = [
    "Account",
    "AccountTerms",
    "AccountType",
    "CreditRequest",
    "CustomerSnapshot",
    "CustomerType",
    "generate_account_id",
    "generate_account_number",
]
