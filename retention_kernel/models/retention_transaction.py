"""
Retention Transaction ORM model (``retention_kernel.models.retention_transaction``).

Responsibility:
    Persists ``RetentionTransaction`` records written by the entry workflow
    so that ``SqlTransactionSource`` can hand them to the export engine in
    a stable order.

Invariants enforced:
    - ``entry_sequence`` is allocated from a locked counter row
      (``SequenceService``) and defines the declaration order.
    - The transaction date is stored as the ISO text the entry workflow
      supplied; validation, not the database, decides if it is a real date.
    - All monetary fields use Decimal (Numeric(38,9)) -- NEVER float.
"""

from decimal import Decimal

from sqlalchemy import BigInteger, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from retention_kernel.db.base import TrackedBase
from retention_kernel.domain.models import (
    RetentionTransaction,
    TaxType,
    TransactionStatus,
)


class RetentionTransactionModel(TrackedBase):
    """ORM model for ``RetentionTransaction``."""

    __tablename__ = "retention_transactions"

    entry_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tax_type: Mapped[str] = mapped_column(String(10), nullable=False)
    document_number: Mapped[str] = mapped_column(String(50), nullable=False)
    control_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transaction_date: Mapped[str] = mapped_column(String(32), nullable=False)
    counterparty_rif: Mapped[str] = mapped_column(String(20), nullable=False)
    counterparty_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    concept: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    concept_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    total_amount: Mapped[Decimal]
    taxable_base: Mapped[Decimal]
    retention_percentage: Mapped[Decimal]
    retention_amount: Mapped[Decimal]
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    __table_args__ = (
        UniqueConstraint("entry_sequence", name="uq_retention_transaction_sequence"),
        Index("idx_retention_transaction_period", "tax_type", "period"),
    )

    def to_dto(self) -> RetentionTransaction:
        return RetentionTransaction(
            tax_type=TaxType(self.tax_type),
            document_number=self.document_number,
            transaction_date=self.transaction_date,
            counterparty_rif=self.counterparty_rif,
            counterparty_name=self.counterparty_name,
            concept=self.concept,
            total_amount=self.total_amount,
            taxable_base=self.taxable_base,
            retention_percentage=self.retention_percentage,
            retention_amount=self.retention_amount,
            period=self.period,
            control_number=self.control_number,
            concept_code=self.concept_code,
            status=TransactionStatus(self.status),
            transaction_id=str(self.id),
        )

    @classmethod
    def from_dto(
        cls, dto: RetentionTransaction, entry_sequence: int
    ) -> "RetentionTransactionModel":
        return cls(
            entry_sequence=entry_sequence,
            tax_type=dto.tax_type.value,
            document_number=dto.document_number,
            control_number=dto.control_number,
            transaction_date=dto.date_text,
            counterparty_rif=dto.counterparty_rif,
            counterparty_name=dto.counterparty_name,
            concept=dto.concept,
            concept_code=dto.concept_code,
            total_amount=dto.total_amount,
            taxable_base=dto.taxable_base,
            retention_percentage=dto.retention_percentage,
            retention_amount=dto.retention_amount,
            period=dto.period,
            status=dto.status.value,
        )

    def __repr__(self) -> str:
        return (
            f"<RetentionTransactionModel #{self.entry_sequence} "
            f"{self.tax_type} {self.document_number} ({self.period})>"
        )
