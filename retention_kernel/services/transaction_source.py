"""
Transaction sources -- the external transaction collaborator.

Responsibility:
    Supplies, for a tax type and fiscal period, the ordered list of
    ``RetentionTransaction`` records to declare.

Invariants enforced:
    - Order is the recording order and is stable across calls; sources
      never sort by amount, date or counterparty.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from retention_kernel.domain.models import RetentionTransaction, TaxType
from retention_kernel.logging_config import get_logger
from retention_kernel.models.retention_transaction import RetentionTransactionModel
from retention_kernel.services.sequence_service import SequenceService

logger = get_logger("services.transaction_source")


@runtime_checkable
class TransactionSource(Protocol):
    """Contract for the declarable-transaction provider."""

    def list_transactions(
        self, tax_type: TaxType, period: str
    ) -> list[RetentionTransaction]:
        ...


class InMemoryTransactionSource:
    """Serves transactions from a list, preserving its order."""

    def __init__(self, transactions: Iterable[RetentionTransaction] = ()):
        self._transactions = list(transactions)

    def add(self, transaction: RetentionTransaction) -> None:
        self._transactions.append(transaction)

    def list_transactions(
        self, tax_type: TaxType, period: str
    ) -> list[RetentionTransaction]:
        return [
            t for t in self._transactions
            if t.tax_type == tax_type and t.period == period
        ]


class SqlTransactionSource:
    """
    SQLAlchemy-backed transaction source.

    Contract:
        ``record`` flushes within the caller's transaction; the caller
        commits.  ``list_transactions`` orders by ``entry_sequence``.
    """

    def __init__(self, session: Session):
        self._session = session
        self._sequences = SequenceService(session)

    def record(self, transaction: RetentionTransaction) -> RetentionTransaction:
        """Store a transaction at the end of the declaration order."""
        entry_sequence = self._sequences.next_value(
            SequenceService.RETENTION_TRANSACTION
        )
        row = RetentionTransactionModel.from_dto(transaction, entry_sequence)
        self._session.add(row)
        self._session.flush()
        logger.debug(
            "retention_transaction_recorded",
            extra={
                "entry_sequence": entry_sequence,
                "tax_type": transaction.tax_type.value,
                "period": transaction.period,
                "document_number": transaction.document_number,
            },
        )
        return row.to_dto()

    def list_transactions(
        self, tax_type: TaxType, period: str
    ) -> list[RetentionTransaction]:
        rows = self._session.execute(
            select(RetentionTransactionModel)
            .where(
                RetentionTransactionModel.tax_type == tax_type.value,
                RetentionTransactionModel.period == period,
            )
            .order_by(RetentionTransactionModel.entry_sequence)
        ).scalars()
        return [row.to_dto() for row in rows]
