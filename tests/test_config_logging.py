"""Tests for config and logging."""

import json
import logging
import os
import sys
from decimal import Decimal
from typing import Iterator
from unittest.mock import patch

import pytest

from credit_engine.config import (
    CreditEngineConfig,
    CustomerServiceConfig,
    EngineConfig,
    PostgresConfig,
)
from credit_engine.engine import TransactionEngine
from credit_engine.exceptions import ConfigurationError
from credit_engine.logging import (
    ContextFilter,
    JsonFormatter,
    StandardFormatter,
    current_log_context,
    get_logger,
    log_context,
    setup_logging,
)
from credit_engine.models import Account
from credit_engine.store import InMemoryAccountStore


class TestCustomerServiceConfig:
    """Tests for CustomerServiceConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = CustomerServiceConfig()

        assert config.base_url == "http://localhost:8081"
        assert config.timeout_seconds == 2.0
        assert config.max_attempts == 3
        assert config.failure_threshold == 5
        assert config.recovery_timeout == 30.0
        assert config.breaker_name == "customer-service"
        assert config.lookup_workers == 16

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"timeout_seconds": 0},
            {"max_attempts": 0},
            {"failure_threshold": 0},
            {"recovery_timeout": -1},
            {"lookup_workers": 0},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            CustomerServiceConfig(**kwargs)


class TestPostgresConfig:
    """Tests for PostgresConfig."""

    def test_default_values(self) -> None:
        config = PostgresConfig()

        assert config.host == "localhost"
        assert config.port == 5432
        assert config.database == "credits"

    def test_connection_string(self) -> None:
        config = PostgresConfig(host="db", port=5433, database="ledger", user="svc", password="pw")

        assert config.connection_string == "postgresql://svc:pw@db:5433/ledger"


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_zero_retries_allowed(self) -> None:
        assert EngineConfig(max_conflict_retries=0).max_conflict_retries == 0

    def test_negative_retries_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            EngineConfig(max_conflict_retries=-1)


class TestCreditEngineConfig:
    """Tests for CreditEngineConfig."""

    def test_default_values(self) -> None:
        config = CreditEngineConfig()

        assert isinstance(config.customer_service, CustomerServiceConfig)
        assert isinstance(config.postgres, PostgresConfig)
        assert config.engine.max_conflict_retries == 3
        assert config.log_level == "INFO"
        assert config.log_format == "standard"

    def test_from_env_defaults(self) -> None:
        """Test from_env with an empty environment."""
        with patch.dict(os.environ, {}, clear=True):
            config = CreditEngineConfig.from_env()

        assert config.customer_service.base_url == "http://localhost:8081"
        assert config.postgres.port == 5432
        assert config.engine.max_conflict_retries == 3

    def test_from_env_custom(self) -> None:
        env = {
            "CUSTOMER_SERVICE_URL": "http://customers:9000",
            "CUSTOMER_SERVICE_TIMEOUT": "1.5",
            "CUSTOMER_SERVICE_MAX_ATTEMPTS": "5",
            "CUSTOMER_SERVICE_FAILURE_THRESHOLD": "10",
            "CUSTOMER_SERVICE_RECOVERY_TIMEOUT": "60",
            "CUSTOMER_SERVICE_LOOKUP_WORKERS": "4",
            "POSTGRES_HOST": "pg",
            "POSTGRES_PORT": "6543",
            "POSTGRES_DB": "credit_test",
            "POSTGRES_USER": "svc",
            "POSTGRES_PASSWORD": "secret",
            "MAX_CONFLICT_RETRIES": "7",
            "LOG_LEVEL": "DEBUG",
            "LOG_FORMAT": "json",
        }

        with patch.dict(os.environ, env, clear=True):
            config = CreditEngineConfig.from_env()

        assert config.customer_service.base_url == "http://customers:9000"
        assert config.customer_service.timeout_seconds == 1.5
        assert config.customer_service.max_attempts == 5
        assert config.customer_service.failure_threshold == 10
        assert config.customer_service.recovery_timeout == 60.0
        assert config.customer_service.lookup_workers == 4
        assert config.postgres.connection_string == "postgresql://svc:secret@pg:6543/credit_test"
        assert config.engine.max_conflict_retries == 7
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_empty_value_uses_default(self) -> None:
        with patch.dict(os.environ, {"POSTGRES_PORT": ""}, clear=True):
            config = CreditEngineConfig.from_env()

        assert config.postgres.port == 5432

    def test_from_env_invalid_number(self) -> None:
        with patch.dict(os.environ, {"CUSTOMER_SERVICE_TIMEOUT": "fast"}, clear=True):
            with pytest.raises(ConfigurationError, match="CUSTOMER_SERVICE_TIMEOUT"):
                CreditEngineConfig.from_env()

    def test_from_env_out_of_range(self) -> None:
        with patch.dict(os.environ, {"CUSTOMER_SERVICE_MAX_ATTEMPTS": "0"}, clear=True):
            with pytest.raises(ConfigurationError):
                CreditEngineConfig.from_env()


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Put back the root handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    """Tests for setup_logging."""

    def test_standard_format(self) -> None:
        setup_logging(level="DEBUG", format_type="standard")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("credit_engine").level == logging.DEBUG

    def test_json_format(self) -> None:
        setup_logging(level="INFO", format_type="json")

        assert isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)

    def test_quiets_driver_loggers(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        assert logging.getLogger("psycopg").level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self) -> None:
        setup_logging(level="LOUD")

        assert logging.getLogger().level == logging.INFO


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, msg: str, args: tuple = (), exc_info=None) -> logging.LogRecord:
        return logging.LogRecord(
            name="credit_engine.engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_basic_record(self) -> None:
        output = json.loads(JsonFormatter().format(self._record("Charge on %s", ("CRD-1",))))

        assert output["level"] == "INFO"
        assert output["logger"] == "credit_engine.engine"
        assert output["message"] == "Charge on CRD-1"
        assert "timestamp" in output

    def test_exception_included(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = self._record("failed", exc_info=sys.exc_info())

        output = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in output["exception"]

    def test_extra_fields_merged(self) -> None:
        record = self._record("hello")
        record.extra = {"account_id": "a-1"}

        output = json.loads(JsonFormatter().format(record))

        assert output["account_id"] == "a-1"


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_named_logger(self) -> None:
        assert get_logger("credit_engine.test") is logging.getLogger("credit_engine.test")


class TestLogContext:
    """Tests for log_context and ContextFilter."""

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("credit_engine.engine", logging.INFO, __file__, 1, "Charge on %s", ("CRD-1",), None)

    def test_nested_fields(self) -> None:
        with log_context(customer_id="cust-1"):
            with log_context(account_id="acct-1"):
                assert current_log_context() == {"customer_id": "cust-1", "account_id": "acct-1"}
            assert current_log_context() == {"customer_id": "cust-1"}

        assert current_log_context() == {}

    def test_none_values_skipped(self) -> None:
        with log_context(account_id=None, customer_id="cust-1"):
            assert current_log_context() == {"customer_id": "cust-1"}

    def test_reset_after_error(self) -> None:
        with pytest.raises(ValueError):
            with log_context(account_id="acct-1"):
                raise ValueError("boom")

        assert current_log_context() == {}

    def test_filter_tags_record(self) -> None:
        record = self._record()

        with log_context(account_id="acct-1"):
            assert ContextFilter().filter(record)

        assert record.account_id == "acct-1"
        assert record.customer_id is None
        assert record.extra == {"account_id": "acct-1"}

    def test_filter_keeps_explicit_extra(self) -> None:
        record = self._record()
        record.extra = {"account_id": "explicit"}

        with log_context(account_id="acct-1", customer_id="cust-1"):
            ContextFilter().filter(record)

        assert record.extra == {"account_id": "explicit", "customer_id": "cust-1"}

    def test_json_output_includes_context(self) -> None:
        record = self._record()
        with log_context(account_id="acct-1", customer_id="cust-1"):
            ContextFilter().filter(record)

        output = json.loads(JsonFormatter().format(record))

        assert output["account_id"] == "acct-1"
        assert output["customer_id"] == "cust-1"

    def test_standard_output_appends_context(self) -> None:
        bare = self._record()
        ContextFilter().filter(bare)
        tagged = self._record()
        with log_context(account_id="acct-1"):
            ContextFilter().filter(tagged)

        assert StandardFormatter().format(bare).endswith("| Charge on CRD-1")
        assert StandardFormatter().format(tagged).endswith("| Charge on CRD-1 | account_id=acct-1")

    @pytest.mark.usefixtures("restore_root_logger")
    def test_setup_installs_filter(self) -> None:
        setup_logging(level="INFO")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, StandardFormatter)
        assert any(isinstance(f, ContextFilter) for f in handler.filters)

    def test_engine_operations_tag_records(
        self,
        engine: TransactionEngine,
        sample_card: Account,
        store: InMemoryAccountStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        store.insert(sample_card)
        caplog.handler.addFilter(ContextFilter())

        with caplog.at_level(logging.INFO, logger="credit_engine.engine"):
            engine.charge(sample_card.account_id, Decimal("10"))

        records = [r for r in caplog.records if r.name == "credit_engine.engine"]
        assert records
        assert all(r.account_id == sample_card.account_id for r in records)
