"""
Tests for the SQLAlchemy-backed configuration store and transaction source
(file-backed SQLite).
"""

from decimal import Decimal

import pytest

from retention_kernel.domain.models import (
    ExportFormat,
    ExportOptions,
    TaxType,
    TransactionStatus,
)
from retention_kernel.exceptions import (
    AgentConfigurationNotFoundError,
    CounterRegressionError,
)
from retention_kernel.services.agent_config_store import (
    AgentConfigurationStore,
    SqlAgentConfigurationStore,
)
from retention_kernel.services.sequence_service import SequenceService
from retention_kernel.services.transaction_source import (
    SqlTransactionSource,
    TransactionSource,
)
from retention_services import ExportService


class TestSqlAgentConfigurationStore:
    def test_satisfies_protocol(self, sql_config_store):
        assert isinstance(sql_config_store, AgentConfigurationStore)

    def test_get_round_trips_configuration(self, sql_config_store, agent_config):
        assert sql_config_store.get() == agent_config

    def test_update_persists_counter(self, sql_config_store, sqlite_session_factory, agent_config):
        sql_config_store.update(3)
        fresh = SqlAgentConfigurationStore(sqlite_session_factory, agent_config.agent_rif)
        assert fresh.get().voucher_counter == 3

    def test_same_value_allowed(self, sql_config_store):
        sql_config_store.update(1)
        assert sql_config_store.get().voucher_counter == 1

    def test_regression_rejected(self, sql_config_store):
        sql_config_store.update(5)
        with pytest.raises(CounterRegressionError) as exc_info:
            sql_config_store.update(4)
        assert exc_info.value.current_value == 5
        assert sql_config_store.get().voucher_counter == 5

    def test_unknown_agent(self, sqlite_session_factory):
        store = SqlAgentConfigurationStore(sqlite_session_factory, "J-00000000-0")
        with pytest.raises(AgentConfigurationNotFoundError) as exc_info:
            store.get()
        assert exc_info.value.agent_rif == "J-00000000-0"
        with pytest.raises(AgentConfigurationNotFoundError):
            store.update(2)

    def test_save_replaces_existing(self, sql_config_store, agent_config):
        sql_config_store.save(agent_config.with_counter(7))
        assert sql_config_store.get().voucher_counter == 7

    def test_update_logged(self, sql_config_store, captured_logs):
        sql_config_store.update(2)
        updated = [r for r in captured_logs() if r["message"] == "agent_voucher_counter_updated"]
        assert updated[0]["previous_counter"] == 1
        assert updated[0]["new_counter"] == 2


class TestSqlTransactionSource:
    def test_satisfies_protocol(self, sqlite_session_factory):
        with sqlite_session_factory() as session:
            assert isinstance(SqlTransactionSource(session), TransactionSource)

    def test_recording_order_preserved(
        self, sqlite_session_factory, make_iva_transaction, make_islr_transaction
    ):
        with sqlite_session_factory() as session:
            source = SqlTransactionSource(session)
            source.record(make_iva_transaction(document_number="FAC-300"))
            source.record(make_islr_transaction())
            source.record(make_iva_transaction(document_number="FAC-100"))
            source.record(make_iva_transaction(document_number="FAC-200", period="2025-02"))
            session.commit()

        with sqlite_session_factory() as session:
            listed = SqlTransactionSource(session).list_transactions(TaxType.IVA, "2025-01")
            assert [t.document_number for t in listed] == ["FAC-300", "FAC-100"]
            assert SequenceService(session).current_value(
                SequenceService.RETENTION_TRANSACTION
            ) == 4

    def test_fields_survive_storage(self, sqlite_session_factory, make_islr_transaction):
        with sqlite_session_factory() as session:
            stored = SqlTransactionSource(session).record(
                make_islr_transaction(status=TransactionStatus.PAID)
            )
            session.commit()

        assert stored.transaction_id is not None
        with sqlite_session_factory() as session:
            (loaded,) = SqlTransactionSource(session).list_transactions(TaxType.ISLR, "2025-01")
        assert loaded.concept_code == "001"
        assert loaded.taxable_base == Decimal("50000")
        assert loaded.retention_percentage == Decimal("6")
        assert loaded.status is TransactionStatus.PAID
        assert loaded.transaction_date == "2025-01-20"


class TestExportWithSqlStores:
    def test_end_to_end(self, sqlite_session_factory, sql_config_store, clock, make_iva_transaction):
        with sqlite_session_factory() as session:
            source = SqlTransactionSource(session)
            source.record(make_iva_transaction())
            source.record(make_iva_transaction(
                document_number="FAC-002",
                total_amount=Decimal("290000"),
                taxable_base=Decimal("250000"),
                retention_percentage=Decimal("100"),
                retention_amount=Decimal("40000"),
            ))
            session.commit()

        # The reading session is closed before the counter write so SQLite
        # does not hold a shared lock across it.
        with sqlite_session_factory() as session:
            transactions = SqlTransactionSource(session).list_transactions(
                TaxType.IVA, "2025-01"
            )

        service = ExportService(sql_config_store, clock=clock)
        result = service.export(
            transactions, TaxType.IVA, ExportFormat.TXT, ExportOptions("2025-01")
        )

        assert result.voucher_numbers == ("20250800000001", "20250800000002")
        assert result.counter_persisted
        assert sql_config_store.get().voucher_counter == 3
        rows = result.document.split("\r\n")
        assert rows[1].endswith(";FAC-001;100000.00;75;12000.00")
        assert rows[2].endswith(";FAC-002;250000.00;100;40000.00")
