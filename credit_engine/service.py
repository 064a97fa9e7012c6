"""Transport-neutral service surface over the transaction engine.

Each operation returns a :class:`ServiceResponse` carrying the status code a
web layer should send and a JSON-ready body. Engine errors are mapped to
codes; anything else propagates.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from credit_engine.engine import TransactionEngine
from credit_engine.exceptions import (
    BusinessRuleViolation,
    ConcurrentModificationError,
    CreditEngineError,
    DependencyUnavailableError,
    DuplicateAccountError,
    EntityNotFoundError,
    InsufficientCreditError,
)
from credit_engine.models import AccountTerms, CreditRequest
from credit_engine.serialization import account_to_dict

logger = logging.getLogger(__name__)

CREATED = 201
OK = 200
NO_CONTENT = 204
NOT_FOUND = 404
CONFLICT = 409
SERVICE_UNAVAILABLE = 503

# Most specific first
ERROR_STATUS: list[tuple[type[CreditEngineError], int, str]] = [
    (EntityNotFoundError, NOT_FOUND, "not_found"),
    (InsufficientCreditError, CONFLICT, "insufficient_credit"),
    (BusinessRuleViolation, CONFLICT, "business_rule_violation"),
    (ConcurrentModificationError, CONFLICT, "concurrent_modification"),
    (DuplicateAccountError, CONFLICT, "duplicate_account"),
    (DependencyUnavailableError, SERVICE_UNAVAILABLE, "dependency_unavailable"),
]


@dataclass
class ServiceResponse:
    """Status code and body for one service call."""

    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def error_response(error: CreditEngineError) -> ServiceResponse:
    """Map an engine error to a response.

    Raises
    ------
    CreditEngineError
        Re-raised when the error kind has no status mapping.
    """
    for error_type, status, kind in ERROR_STATUS:
        if isinstance(error, error_type):
            body: dict[str, Any] = {"error": kind, "message": str(error)}
            if isinstance(error, InsufficientCreditError):
                body["requested"] = str(error.requested)
                body["available"] = str(error.available)
            return ServiceResponse(status, body)
    raise error


class CreditService:
    """Account operations with status codes, ready to be mounted by a web layer."""

    def __init__(self, engine: TransactionEngine) -> None:
        self.engine = engine

    def create(self, request: CreditRequest) -> ServiceResponse:
        return self._call(CREATED, lambda: account_to_dict(self.engine.create(request)))

    def charge(self, account_id: str, amount: Decimal) -> ServiceResponse:
        return self._call(OK, lambda: account_to_dict(self.engine.charge(account_id, amount)))

    def payment(self, account_id: str, amount: Decimal) -> ServiceResponse:
        return self._call(OK, lambda: account_to_dict(self.engine.payment(account_id, amount)))

    def update(self, account_id: str, terms: AccountTerms) -> ServiceResponse:
        return self._call(OK, lambda: account_to_dict(self.engine.update(account_id, terms)))

    def delete(self, account_id: str) -> ServiceResponse:
        return self._call(NO_CONTENT, lambda: self.engine.delete(account_id))

    def get_by_id(self, account_id: str) -> ServiceResponse:
        return self._call(OK, lambda: account_to_dict(self.engine.find_by_id(account_id)))

    def get_by_account_number(self, account_number: str) -> ServiceResponse:
        return self._call(
            OK, lambda: account_to_dict(self.engine.find_by_account_number(account_number))
        )

    def list_all(self) -> ServiceResponse:
        return self._call(OK, lambda: [account_to_dict(a) for a in self.engine.find_all()])

    def list_by_customer(self, customer_id: str) -> ServiceResponse:
        return self._call(
            OK, lambda: [account_to_dict(a) for a in self.engine.find_by_customer(customer_id)]
        )

    def _call(self, success_status: int, operation: Callable[[], Any]) -> ServiceResponse:
        try:
            return ServiceResponse(success_status, operation())
        except CreditEngineError as e:
            response = error_response(e)
            logger.info("Request failed with %d: %s", response.status, e)
            return response
