"""
Retention Domain Models.

Responsibility:
    Frozen dataclass DTOs for the nouns of a fiscal export: the retention
    transaction being declared, the withholding agent's configuration,
    the outcome of validating a batch, and the caller's export options.

Architecture position:
    Kernel > Domain -- pure data containers, no I/O, no ORM coupling.

Invariants:
    - All models are ``frozen=True`` (immutable after construction).
    - All monetary fields hold ``Decimal`` -- floats are converted through
      their shortest repr at construction, never kept.
    - ``AgentConfiguration.voucher_counter`` is an integer >= 1.
    - ``ExportOptions.period`` is a ``YYYY-MM`` string.

Failure modes:
    - FormattingError when a monetary field is not numeric.
    - InvalidPeriodError when ``ExportOptions.period`` is malformed.
    - InvalidVoucherCounterError when the counter is < 1.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from retention_kernel.domain.formatting import to_decimal
from retention_kernel.exceptions import (
    InvalidPeriodError,
    InvalidVoucherCounterError,
)

PERIOD_PATTERN = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


class TaxType(str, Enum):
    """Withholding tax declared in an export."""

    IVA = "IVA"  # Value-added tax retention
    ISLR = "ISLR"  # Income tax withholding (concept-coded)


class ExportFormat(str, Enum):
    """Artifact format accepted by SENIAT."""

    TXT = "txt"
    XML = "xml"


class TransactionStatus(str, Enum):
    """Lifecycle of a retention transaction (owned by the entry workflow)."""

    PENDING = "PENDING"
    PAID = "PAID"
    DECLARED = "DECLARED"


_MONEY_FIELDS = (
    "total_amount",
    "taxable_base",
    "retention_percentage",
    "retention_amount",
)


@dataclass(frozen=True)
class RetentionTransaction:
    """
    One withheld-tax event.

    Read-only to the export engine; export never mutates it.
    ``transaction_date`` keeps whatever the entry workflow supplied
    (a ``date`` or an ISO string) so validation can judge it.
    """

    tax_type: TaxType
    document_number: str
    transaction_date: date | str
    counterparty_rif: str
    counterparty_name: str
    concept: str
    total_amount: Decimal
    taxable_base: Decimal
    retention_percentage: Decimal
    retention_amount: Decimal
    period: str
    control_number: str | None = None
    concept_code: str | None = None  # ISLR only
    status: TransactionStatus = TransactionStatus.PENDING
    transaction_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.tax_type, TaxType):
            object.__setattr__(self, "tax_type", TaxType(self.tax_type))
        if not isinstance(self.status, TransactionStatus):
            object.__setattr__(self, "status", TransactionStatus(self.status))
        for name in _MONEY_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))

    @property
    def date_text(self) -> str:
        """The transaction date as the ISO text validation sees."""
        if isinstance(self.transaction_date, date):
            return self.transaction_date.isoformat()
        return self.transaction_date

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetentionTransaction:
        """Create a transaction from a plain mapping (JSON, YAML, DB row)."""
        return cls(
            tax_type=TaxType(data["tax_type"]),
            document_number=data["document_number"],
            transaction_date=data["transaction_date"],
            counterparty_rif=data["counterparty_rif"],
            counterparty_name=data.get("counterparty_name", ""),
            concept=data.get("concept", ""),
            total_amount=to_decimal(data["total_amount"]),
            taxable_base=to_decimal(data["taxable_base"]),
            retention_percentage=to_decimal(data["retention_percentage"]),
            retention_amount=to_decimal(data["retention_amount"]),
            period=data["period"],
            control_number=data.get("control_number") or None,
            concept_code=data.get("concept_code") or None,
            status=TransactionStatus(data.get("status", "PENDING")),
            transaction_id=(
                str(data["transaction_id"])
                if data.get("transaction_id") is not None
                else None
            ),
        )


@dataclass(frozen=True)
class AgentConfiguration:
    """
    The withholding agent's identity and declaration state.

    ``voucher_template`` is the declared initial voucher number (fixed
    width, numeric; the trailing digits are the sequence).
    ``voucher_counter`` is the 1-based position of the next voucher.
    """

    agent_rif: str
    agent_name: str
    voucher_template: str
    voucher_counter: int = 1
    agent_address: str = ""
    period_validity: str | None = None  # e.g. "08-2025"
    phone: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        if (
            isinstance(self.voucher_counter, bool)
            or not isinstance(self.voucher_counter, int)
            or self.voucher_counter < 1
        ):
            raise InvalidVoucherCounterError(self.voucher_counter)

    def missing_identity_fields(self) -> list[str]:
        """Names of the identity fields required for a legal declaration that are blank."""
        missing = []
        if not (self.agent_rif or "").strip():
            missing.append("agent_rif")
        if not (self.agent_name or "").strip():
            missing.append("agent_name")
        return missing

    def with_counter(self, counter: int) -> AgentConfiguration:
        """Copy of this configuration with a new voucher counter."""
        return AgentConfiguration(
            agent_rif=self.agent_rif,
            agent_name=self.agent_name,
            voucher_template=self.voucher_template,
            voucher_counter=counter,
            agent_address=self.agent_address,
            period_validity=self.period_validity,
            phone=self.phone,
            email=self.email,
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one batch: blocking errors and advisory warnings."""

    errors: tuple[str, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Concatenate another result after this one, preserving order."""
        return ValidationResult(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )


@dataclass(frozen=True)
class ExportOptions:
    """Caller-supplied export parameters."""

    period: str

    def __post_init__(self) -> None:
        if not isinstance(self.period, str) or PERIOD_PATTERN.fullmatch(self.period) is None:
            raise InvalidPeriodError(str(self.period))

    @property
    def compact_period(self) -> str:
        return self.period.replace("-", "")
