"""
Pytest fixtures for the retention export test suite.

Provides:
- Structured-log configuration and capture
- A deterministic clock (2025-02-05 12:00 UTC)
- Agent configuration and transaction factories
- In-memory and SQLite-backed stores
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from retention_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from retention_kernel.domain.clock import DeterministicClock
from retention_kernel.domain.models import (
    AgentConfiguration,
    RetentionTransaction,
    TaxType,
)
from retention_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from retention_kernel.services.agent_config_store import (
    InMemoryAgentConfigurationStore,
    SqlAgentConfigurationStore,
)
from retention_services.export_service import ExportService

AGENT_RIF = "J-12345678-9"
VOUCHER_TEMPLATE = "20250800000001"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture retention_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, export_service):
            export_service.export(...)
            logs = captured_logs()
            assert any(r["message"] == "export_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("retention_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def agent_config():
    return AgentConfiguration(
        agent_rif=AGENT_RIF,
        agent_name="Empresa Demo C.A.",
        voucher_template=VOUCHER_TEMPLATE,
        voucher_counter=1,
        agent_address="Av. Principal, Torre Empresarial, Caracas",
        phone="0212-5551234",
        email="contabilidad@empresademo.com",
    )


@pytest.fixture
def make_iva_transaction():
    """Factory for a valid IVA transaction; override any field by keyword."""

    def _make(**overrides) -> RetentionTransaction:
        fields = dict(
            tax_type=TaxType.IVA,
            document_number="FAC-001",
            control_number="00-12345678",
            transaction_date="2025-01-15",
            counterparty_rif="V-98765432-1",
            counterparty_name="Proveedor Ejemplo",
            concept="Compra de mercancía",
            total_amount=Decimal("116000"),
            taxable_base=Decimal("100000"),
            retention_percentage=Decimal("75"),
            retention_amount=Decimal("12000"),
            period="2025-01",
        )
        fields.update(overrides)
        return RetentionTransaction(**fields)

    return _make


@pytest.fixture
def make_islr_transaction():
    """Factory for a valid ISLR transaction (concept 001, 6%)."""

    def _make(**overrides) -> RetentionTransaction:
        fields = dict(
            tax_type=TaxType.ISLR,
            document_number="FAC-100",
            transaction_date="2025-01-20",
            counterparty_rif="J-87654321-0",
            counterparty_name="Consultores Asociados",
            concept="Honorarios Profesionales",
            concept_code="001",
            total_amount=Decimal("50000"),
            taxable_base=Decimal("50000"),
            retention_percentage=Decimal("6"),
            retention_amount=Decimal("3000"),
            period="2025-01",
        )
        fields.update(overrides)
        return RetentionTransaction(**fields)

    return _make


@pytest.fixture
def config_store(agent_config):
    return InMemoryAgentConfigurationStore(agent_config)


@pytest.fixture
def export_service(config_store, clock):
    return ExportService(config_store, clock=clock)


# =============================================================================
# SQLite-backed persistence
# =============================================================================


@pytest.fixture
def sqlite_session_factory(tmp_path):
    """File-backed SQLite database with all tables created."""
    init_engine_from_url(f"sqlite:///{tmp_path / 'retention.db'}")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def sql_config_store(sqlite_session_factory, agent_config):
    store = SqlAgentConfigurationStore(sqlite_session_factory, agent_config.agent_rif)
    store.save(agent_config)
    return store
