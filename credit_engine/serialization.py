"""Response payloads for credit accounts."""

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_engine.models import Account


def account_to_dict(account: Account) -> dict[str, Any]:
    """Convert an account to its response payload, including ``available_credit``.

    The internal ``version`` token is not exposed.
    """
    payload = to_dict(account)
    payload.pop("version", None)
    payload["available_credit"] = serialize_value(account.available_credit)
    return payload


def to_dict(obj: Any) -> dict:
    """Convert a flat dataclass to a JSON-ready dict."""
    if not is_dataclass(obj):
        raise TypeError(f"Expected a dataclass instance, got {type(obj).__name__}")
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, (datetime, date)):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value
