"""Clients for downstream services."""

from credit_engine.clients.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    get_circuit_breaker,
)
from credit_engine.clients.customer import CustomerGateway, TransientLookupError

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CustomerGateway",
    "TransientLookupError",
    "get_circuit_breaker",
]
