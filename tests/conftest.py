"""Pytest configuration and fixtures."""

from datetime import datetime
from decimal import Decimal
from typing import Iterator

import httpx
import pytest

from credit_engine.clients.circuit_breaker import CircuitBreaker, clear_circuit_breakers
from credit_engine.clients.customer import CustomerGateway, TransientLookupError
from credit_engine.config import CustomerServiceConfig
from credit_engine.engine import TransactionEngine
from credit_engine.generators import CustomerGenerator
from credit_engine.models import Account, AccountType, CustomerSnapshot, CustomerType
from credit_engine.store import InMemoryAccountStore

BASE_URL = "http://customers.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCustomerService:
    """In-process customer service behind an httpx mock transport.

    ``failures`` is a queue of status codes or exceptions returned before the
    normal directory lookup. Found customers are answered with a full Faker
    profile, of which the gateway reads only the id and type.
    """

    def __init__(self) -> None:
        self.customers: dict[str, CustomerType] = {}
        self.failures: list[int | Exception] = []
        self.calls = 0
        self.paths: list[str] = []
        self.profiles = CustomerGenerator(seed=1234)

    def add(self, customer_id: str, customer_type: CustomerType) -> None:
        self.customers[customer_id] = customer_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.paths.append(request.url.path)
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return httpx.Response(failure, text="boom")

        customer_id = request.url.path.rsplit("/", 1)[-1]
        customer_type = self.customers.get(customer_id)
        if customer_type is None:
            return httpx.Response(404)
        return httpx.Response(200, json=self.profiles.profile(CustomerSnapshot(customer_id, customer_type)))


@pytest.fixture(autouse=True)
def _reset_breaker_registry() -> Iterator[None]:
    """Keep shared circuit breakers from leaking between tests."""
    clear_circuit_breakers()
    yield
    clear_circuit_breakers()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def customer_service() -> FakeCustomerService:
    service = FakeCustomerService()
    service.add("cust-personal", CustomerType.PERSONAL)
    service.add("cust-business", CustomerType.BUSINESS)
    return service


@pytest.fixture
def customer_config() -> CustomerServiceConfig:
    """Resilience settings with no backoff delay."""
    return CustomerServiceConfig(
        base_url=BASE_URL,
        max_attempts=3,
        retry_wait_initial=0,
        retry_wait_max=0,
        failure_threshold=3,
        recovery_timeout=30.0,
    )


@pytest.fixture
def breaker(customer_config: CustomerServiceConfig, clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(
        failure_threshold=customer_config.failure_threshold,
        recovery_timeout=customer_config.recovery_timeout,
        expected_exception=TransientLookupError,
        name="test-customer-service",
        clock=clock,
    )


@pytest.fixture
def gateway(
    customer_service: FakeCustomerService,
    customer_config: CustomerServiceConfig,
    breaker: CircuitBreaker,
) -> Iterator[CustomerGateway]:
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(customer_service.handler))
    with CustomerGateway(customer_config, client=client, breaker=breaker) as gw:
        yield gw
    client.close()


@pytest.fixture
def store() -> InMemoryAccountStore:
    """Create a fresh store for each test."""
    return InMemoryAccountStore()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def engine(store: InMemoryAccountStore, gateway: CustomerGateway, now: datetime) -> TransactionEngine:
    return TransactionEngine(store, gateway, clock=lambda: now)


@pytest.fixture
def sample_card(now: datetime) -> Account:
    """A fresh credit card with principal 1000."""
    return Account(
        account_id="acct-card-001",
        account_number="CRD-0000000001",
        account_type=AccountType.CREDIT_CARD,
        owner_id="cust-personal",
        principal_amount=Decimal("1000.00"),
        created_at=now,
        balance=Decimal("0"),
        credit_limit=Decimal("1000.00"),
    )


@pytest.fixture
def sample_loan(now: datetime) -> Account:
    """A personal loan with principal 5000."""
    return Account(
        account_id="acct-loan-001",
        account_number="CRD-0000000002",
        account_type=AccountType.PERSONAL_LOAN,
        owner_id="cust-personal",
        principal_amount=Decimal("5000.00"),
        created_at=now,
        balance=Decimal("0"),
        credit_limit=Decimal("5000.00"),
    )
