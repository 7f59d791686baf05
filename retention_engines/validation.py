"""
Validation Engine - Fiscal business rules for SENIAT retention batches.

Responsibility:
    Check a batch of retention lines against the IVA or ISLR rules and
    return a ``ValidationResult`` with every blocking error and every
    advisory warning, line-numbered for traceability.  Also validates
    declaration periods and agent setup data.

Architecture position:
    Engines -- pure functions, zero I/O.  Depends only on kernel domain
    types and Formatting Utilities.  Callers (ExportService) own the
    decision to abort.

Invariants enforced:
    - Validation never mutates its input and is re-entrant: the same
      batch always yields an equal ValidationResult.
    - All violations are collected; validation never stops at the first.
    - Retention arithmetic is done in Decimal; the declared retention
      must be within ``rules.tolerance`` of the expected amount.
    - Line numbers are 1-based positions in the batch as given.

Failure modes:
    - None raised for bad data; every problem becomes a message.

Usage:
    from retention_engines.validation import validate_batch

    result = validate_batch(transactions, TaxType.IVA)
    if not result.is_valid:
        raise ExportValidationError(list(result.errors))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from retention_engines.rules import RetentionRules, default_rules
from retention_engines.tracer import traced_engine
from retention_kernel.domain.formatting import (
    format_amount,
    format_percentage,
    parse_date,
)
from retention_kernel.domain.models import (
    PERIOD_PATTERN,
    AgentConfiguration,
    RetentionTransaction,
    TaxType,
    ValidationResult,
)
from retention_kernel.domain.tax_id import is_valid_rif_format
from retention_kernel.exceptions import InvalidDateError
from retention_kernel.logging_config import get_logger

logger = get_logger("engines.validation")

DOCUMENT_NUMBER_PATTERN = re.compile(r"[A-Za-z0-9-]+")
CONTROL_NUMBER_PATTERN = re.compile(r"\d{2}-\d{8}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_PATTERN = re.compile(r"(\+58-?)?0?(2\d{2}|4\d{2}|5\d{2})-?\d{7}")

MIN_DOCUMENT_NUMBER_LENGTH = 3
MIN_AGENT_NAME_LENGTH = 3
MIN_AGENT_ADDRESS_LENGTH = 10
STALE_PERIOD_YEARS = 5

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class RetentionLine:
    """
    The projection of a transaction that validation looks at.

    ``transaction_date`` keeps the raw value (``date`` or text) so the
    date rule can judge it.
    """

    document_number: str
    counterparty_rif: str
    transaction_date: date | str
    total_amount: Decimal
    taxable_base: Decimal
    retention_percentage: Decimal
    retention_amount: Decimal
    control_number: str | None = None
    concept_code: str | None = None

    @classmethod
    def from_transaction(cls, transaction: RetentionTransaction) -> RetentionLine:
        return cls(
            document_number=transaction.document_number,
            counterparty_rif=transaction.counterparty_rif,
            transaction_date=transaction.transaction_date,
            total_amount=transaction.total_amount,
            taxable_base=transaction.taxable_base,
            retention_percentage=transaction.retention_percentage,
            retention_amount=transaction.retention_amount,
            control_number=transaction.control_number,
            concept_code=transaction.concept_code,
        )


# ---------------------------------------------------------------------------
# Expected amounts
# ---------------------------------------------------------------------------


def expected_iva_retention(
    taxable_base: Decimal,
    percentage: Decimal,
    rules: RetentionRules | None = None,
) -> Decimal:
    """base x IVA rate x percentage / 100 (unrounded)."""
    rules = rules or default_rules()
    return taxable_base * rules.iva_rate * percentage / _HUNDRED


def expected_islr_retention(taxable_base: Decimal, percentage: Decimal) -> Decimal:
    """base x percentage / 100 (unrounded)."""
    return taxable_base * percentage / _HUNDRED


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


def check_document_number(document_number: str | None) -> list[str]:
    """Problems with an invoice/document number (empty list when valid)."""
    text = document_number or ""
    if not text.strip():
        return ["Número de documento es requerido"]
    problems = []
    if len(text) < MIN_DOCUMENT_NUMBER_LENGTH:
        problems.append(
            f"Número de documento debe tener al menos {MIN_DOCUMENT_NUMBER_LENGTH} caracteres"
        )
    if DOCUMENT_NUMBER_PATTERN.fullmatch(text) is None:
        problems.append("Número de documento contiene caracteres inválidos")
    return problems


def is_valid_control_number(control_number: str) -> bool:
    return CONTROL_NUMBER_PATTERN.fullmatch(control_number) is not None


def is_valid_calendar_date(value: date | str | None) -> bool:
    if value is None or value == "":
        return False
    try:
        parse_date(value)
    except InvalidDateError:
        return False
    return True


def _check_common(
    line: RetentionLine,
    prefix: str,
    errors: list[str],
    warnings: list[str],
) -> None:
    problems = check_document_number(line.document_number)
    if problems:
        errors.append(f"{prefix}{', '.join(problems)}")

    if not is_valid_rif_format(line.counterparty_rif):
        errors.append(f"{prefix}RIF del proveedor inválido")

    if not is_valid_calendar_date(line.transaction_date):
        errors.append(f"{prefix}Fecha inválida")

    if line.total_amount <= 0:
        errors.append(f"{prefix}Monto total debe ser mayor a 0")
    if line.taxable_base < 0:
        errors.append(f"{prefix}Base imponible no puede ser negativa")
    elif line.taxable_base > line.total_amount:
        warnings.append(f"{prefix}Base imponible mayor al monto total")


def _check_retention_amount(
    expected: Decimal,
    declared: Decimal,
    tolerance: Decimal,
    prefix: str,
    errors: list[str],
) -> None:
    if abs(expected - declared) > tolerance:
        errors.append(
            f"{prefix}Monto de retención calculado incorrectamente "
            f"(esperado {format_amount(expected)}, declarado {format_amount(declared)})"
        )


# ---------------------------------------------------------------------------
# Batch validation
# ---------------------------------------------------------------------------


@traced_engine("iva_validation", "1.0", fingerprint_fields=("lines",))
def validate_iva_batch(
    lines: Sequence[RetentionLine],
    rules: RetentionRules | None = None,
) -> ValidationResult:
    """
    Validate IVA retention lines.

    Besides the common rules, the retention percentage must be one of the
    allowed IVA percentages, the declared retention must equal
    base x IVA rate x percentage / 100, and the control number (optional)
    must look like ``##-########`` when given.
    """
    rules = rules or default_rules()
    errors: list[str] = []
    warnings: list[str] = []

    for index, line in enumerate(lines, start=1):
        prefix = f"Línea {index}: "
        _check_common(line, prefix, errors, warnings)

        if line.retention_percentage not in rules.iva_retention_percentages:
            errors.append(
                f"{prefix}Porcentaje de retención debe ser "
                f"{rules.describe_iva_percentages()}"
            )

        expected = expected_iva_retention(
            line.taxable_base, line.retention_percentage, rules
        )
        _check_retention_amount(
            expected, line.retention_amount, rules.tolerance, prefix, errors
        )

        if line.control_number:
            if not is_valid_control_number(line.control_number):
                errors.append(
                    f"{prefix}Formato de número de control inválido "
                    "(debe ser XX-XXXXXXXX)"
                )
        else:
            warnings.append(
                f"{prefix}Número de control recomendado para trazabilidad fiscal"
            )

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


@traced_engine("islr_validation", "1.0", fingerprint_fields=("lines",))
def validate_islr_batch(
    lines: Sequence[RetentionLine],
    rules: RetentionRules | None = None,
) -> ValidationResult:
    """
    Validate ISLR retention lines.

    The concept code must be in the catalog, the declared percentage must
    equal that concept's statutory rate, and the declared retention must
    equal base x percentage / 100.
    """
    rules = rules or default_rules()
    errors: list[str] = []
    warnings: list[str] = []

    for index, line in enumerate(lines, start=1):
        prefix = f"Línea {index}: "
        _check_common(line, prefix, errors, warnings)

        rate = rules.islr_rate(line.concept_code)
        if rate is None:
            errors.append(f"{prefix}Código de concepto ISLR inválido")
        elif line.retention_percentage != rate:
            errors.append(
                f"{prefix}Porcentaje de retención no corresponde al concepto "
                f"{line.concept_code} (debe ser {format_percentage(rate)}%)"
            )

        expected = expected_islr_retention(
            line.taxable_base, line.retention_percentage
        )
        _check_retention_amount(
            expected, line.retention_amount, rules.tolerance, prefix, errors
        )

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def validate_batch(
    transactions: Iterable[RetentionTransaction],
    tax_type: TaxType,
    rules: RetentionRules | None = None,
) -> ValidationResult:
    """Validate transactions with the rule set of ``tax_type``."""
    lines = [RetentionLine.from_transaction(t) for t in transactions]
    if TaxType(tax_type) is TaxType.IVA:
        result = validate_iva_batch(lines, rules)
    else:
        result = validate_islr_batch(lines, rules)

    logger.debug(
        "batch_validated",
        extra={
            "tax_type": TaxType(tax_type).value,
            "line_count": len(lines),
            "error_count": len(result.errors),
            "warning_count": len(result.warnings),
        },
    )
    return result


# ---------------------------------------------------------------------------
# Period and agent setup
# ---------------------------------------------------------------------------


def validate_period(
    period: str,
    today: date,
    rules: RetentionRules | None = None,
) -> ValidationResult:
    """
    Judge a ``YYYY-MM`` declaration period relative to ``today``.

    Errors: malformed period, year before ``rules.min_fiscal_year`` or
    after next year.  Warnings: more than one month in the future, or
    more than five years in the past.
    """
    rules = rules or default_rules()
    if not isinstance(period, str) or PERIOD_PATTERN.fullmatch(period) is None:
        return ValidationResult(
            errors=("Formato de período inválido (debe ser YYYY-MM)",)
        )

    year, month = (int(part) for part in period.split("-"))
    errors: list[str] = []
    warnings: list[str] = []

    if year < rules.min_fiscal_year or year > today.year + 1:
        errors.append(
            f"Año debe estar entre {rules.min_fiscal_year} y {today.year + 1}"
        )

    months_ahead = (year - today.year) * 12 + (month - today.month)
    if months_ahead > 1:
        warnings.append("Período futuro, verifique la fecha")
    if year < today.year - STALE_PERIOD_YEARS:
        warnings.append(
            f"Período muy antiguo (más de {STALE_PERIOD_YEARS} años)"
        )

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def validate_agent_configuration(config: AgentConfiguration) -> ValidationResult:
    """Setup-time checks of the withholding agent's identity data."""
    errors: list[str] = []
    warnings: list[str] = []

    if not is_valid_rif_format(config.agent_rif):
        errors.append("RIF de la empresa inválido")
    if len((config.agent_name or "").strip()) < MIN_AGENT_NAME_LENGTH:
        errors.append(
            f"Nombre de empresa debe tener al menos {MIN_AGENT_NAME_LENGTH} caracteres"
        )
    if len((config.agent_address or "").strip()) < MIN_AGENT_ADDRESS_LENGTH:
        errors.append(
            "Dirección debe ser más específica "
            f"(mínimo {MIN_AGENT_ADDRESS_LENGTH} caracteres)"
        )
    if config.email and EMAIL_PATTERN.fullmatch(config.email) is None:
        warnings.append("Formato de email inválido")
    if config.phone and PHONE_PATTERN.fullmatch(config.phone.replace(" ", "")) is None:
        warnings.append("Formato de teléfono venezolano inválido")

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
