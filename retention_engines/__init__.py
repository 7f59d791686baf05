"""
Module: retention_engines
Responsibility:
    Package entrypoint that re-exports the pure engines used to build a
    SENIAT retention declaration: validation, voucher numbering,
    rendering and period summaries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import retention_kernel (domain, exceptions, logging).
    MUST NOT import retention_services or retention_config.

Invariants enforced:
    - Purity: engines never read the clock; dates and timestamps are
      passed in by the caller.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from retention_engines import validate_batch, VoucherSequence, render_document
"""

from retention_engines.declarations import (
    ConceptTotals,
    IslrQuarterlySummary,
    IvaMonthlySummary,
    quarter_periods,
    summarize_islr_quarter,
    summarize_iva_month,
)
from retention_engines.numbering import (
    DEFAULT_SEQUENCE_WIDTH,
    VoucherAllocation,
    VoucherSequence,
    allocate_voucher_number,
    check_voucher_template,
    split_template,
)
from retention_engines.rendering import (
    DeclarationHeader,
    NumberedLine,
    RenderSettings,
    export_file_name,
    number_lines,
    render_combined_txt,
    render_combined_xml,
    render_document,
    render_islr_txt,
    render_islr_xml,
    render_iva_txt,
    render_iva_xml,
)
from retention_engines.rules import (
    DEFAULT_ISLR_CONCEPTS,
    IslrConcept,
    RetentionRules,
    default_rules,
)
from retention_engines.validation import (
    RetentionLine,
    expected_islr_retention,
    expected_iva_retention,
    validate_agent_configuration,
    validate_batch,
    validate_islr_batch,
    validate_iva_batch,
    validate_period,
)

__all__ = [
    "ConceptTotals",
    "DEFAULT_ISLR_CONCEPTS",
    "DEFAULT_SEQUENCE_WIDTH",
    "DeclarationHeader",
    "IslrConcept",
    "IslrQuarterlySummary",
    "IvaMonthlySummary",
    "NumberedLine",
    "RenderSettings",
    "RetentionLine",
    "RetentionRules",
    "VoucherAllocation",
    "VoucherSequence",
    "allocate_voucher_number",
    "check_voucher_template",
    "default_rules",
    "expected_islr_retention",
    "expected_iva_retention",
    "export_file_name",
    "number_lines",
    "quarter_periods",
    "render_combined_txt",
    "render_combined_xml",
    "render_document",
    "render_islr_txt",
    "render_islr_xml",
    "render_iva_txt",
    "render_iva_xml",
    "split_template",
    "summarize_islr_quarter",
    "summarize_iva_month",
    "validate_agent_configuration",
    "validate_batch",
    "validate_islr_batch",
    "validate_iva_batch",
    "validate_period",
]
