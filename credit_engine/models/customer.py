"""Customer snapshot returned by the customer service."""

from dataclasses import dataclass
from typing import Any

from credit_engine.models.enums import CustomerType


@dataclass(frozen=True)
class CustomerSnapshot:
    """Customer attributes needed for eligibility checks.

    Fetched per creation request and never cached.
    """

    customer_id: str
    customer_type: CustomerType

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomerSnapshot":
        """Build a snapshot from the customer service JSON body.

        Raises
        ------
        KeyError
            If ``id`` or ``customerType`` is missing.
        ValueError
            If ``customerType`` is not a known customer type.
        """
        return cls(
            customer_id=str(data["id"]),
            customer_type=CustomerType(data["customerType"]),
        )
