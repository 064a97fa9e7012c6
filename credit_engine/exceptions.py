"""Custom exception hierarchy for credit-engine."""

from decimal import Decimal


class CreditEngineError(Exception):
    """Base exception for all credit-engine errors."""


class EntityNotFoundError(CreditEngineError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, key: str, message: str | None = None) -> None:
        self.entity = entity
        self.key = key
        super().__init__(message or f"{entity} not found with id: {key}")


class AccountNotFoundError(EntityNotFoundError):
    """Raised when a credit account cannot be located."""

    def __init__(self, key: str, field: str = "id") -> None:
        self.field = field
        super().__init__("Account", key, f"Account not found with {field}: {key}")


class CustomerNotFoundError(EntityNotFoundError):
    """Raised when the customer service definitively reports no such customer."""

    def __init__(self, customer_id: str) -> None:
        super().__init__("Customer", customer_id)


class BusinessRuleViolation(CreditEngineError):
    """Raised when an operation breaks an account or eligibility rule."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InsufficientCreditError(BusinessRuleViolation):
    """Raised when a charge exceeds the available headroom."""

    def __init__(self, requested: Decimal, available: Decimal) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient credit. Requested: {requested}, Available: {available}"
        )


class DependencyUnavailableError(CreditEngineError):
    """Raised when the customer service is degraded or its circuit is open."""


class StoreError(CreditEngineError):
    """Raised when an account store operation fails."""


class DuplicateAccountError(StoreError):
    """Raised when an insert violates a uniqueness constraint."""

    def __init__(self, constraint: str, message: str | None = None) -> None:
        self.constraint = constraint
        super().__init__(message or f"Uniqueness constraint violated: {constraint}")


class ConcurrentModificationError(StoreError):
    """Raised when a conditional update loses a race on the version field."""

    def __init__(self, account_id: str, expected_version: int) -> None:
        self.account_id = account_id
        self.expected_version = expected_version
        super().__init__(
            f"Account {account_id} was modified concurrently (expected version {expected_version})"
        )


class ConfigurationError(CreditEngineError):
    """Raised when configuration is invalid or missing."""
