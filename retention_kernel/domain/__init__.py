"""
Pure domain layer.

Data transfer objects and field encoders with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files

All domain objects are immutable and deterministic.
"""

from retention_kernel.domain.capabilities import SENIAT_EXPORTS, CapabilityGate
from retention_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from retention_kernel.domain.formatting import (
    encode_date,
    encode_period,
    escape_xml_text,
    format_amount,
    format_percentage,
    normalize_tax_id,
    parse_date,
    round_accounting,
    to_decimal,
)
from retention_kernel.domain.models import (
    AgentConfiguration,
    ExportFormat,
    ExportOptions,
    RetentionTransaction,
    TaxType,
    TransactionStatus,
    ValidationResult,
)
from retention_kernel.domain.tax_id import (
    RIF_PATTERN,
    TaxIdValidation,
    clean_tax_id,
    compute_check_digit,
    format_tax_id,
    is_valid_rif_format,
    validate_tax_id,
)

__all__ = [
    "AgentConfiguration",
    "CapabilityGate",
    "Clock",
    "DeterministicClock",
    "ExportFormat",
    "ExportOptions",
    "RIF_PATTERN",
    "SENIAT_EXPORTS",
    "RetentionTransaction",
    "SystemClock",
    "TaxIdValidation",
    "TaxType",
    "TransactionStatus",
    "ValidationResult",
    "clean_tax_id",
    "compute_check_digit",
    "encode_date",
    "encode_period",
    "escape_xml_text",
    "format_amount",
    "format_percentage",
    "format_tax_id",
    "is_valid_rif_format",
    "normalize_tax_id",
    "parse_date",
    "round_accounting",
    "to_decimal",
    "validate_tax_id",
]
