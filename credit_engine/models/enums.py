"""Enumeration types for credit accounts and customers."""

from enum import Enum


class AccountType(str, Enum):
    PERSONAL_LOAN = "PERSONAL_LOAN"
    BUSINESS_LOAN = "BUSINESS_LOAN"
    CREDIT_CARD = "CREDIT_CARD"


class CustomerType(str, Enum):
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"
