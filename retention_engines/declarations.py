"""
Declaration Summaries - Period totals for IVA and ISLR retention relations.

Pure aggregation over retention transactions: the monthly IVA summary a
bookkeeper checks before filing, and the quarterly ISLR summary broken
down by withholding concept.  Amounts are exact Decimal sums; rounding
happens only when a summary is rendered.

Usage:
    from retention_engines.declarations import summarize_iva_month

    summary = summarize_iva_month(transactions, "2025-01")
    summary.total_retained   # Decimal
    summary.count_at(75)     # lines withheld at 75%
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping

from retention_engines.rules import RetentionRules, default_rules
from retention_kernel.domain.models import RetentionTransaction, TaxType
from retention_kernel.logging_config import get_logger

logger = get_logger("engines.declarations")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class IvaMonthlySummary:
    """Totals of the IVA retentions declared for one month."""

    period: str
    transaction_count: int
    total_purchases: Decimal
    total_taxable_base: Decimal
    total_iva: Decimal
    total_retained: Decimal
    count_by_percentage: Mapping[Decimal, int]

    def count_at(self, percentage: Decimal | int) -> int:
        return self.count_by_percentage.get(Decimal(percentage), 0)


@dataclass(frozen=True)
class ConceptTotals:
    """ISLR totals for one withholding concept."""

    concept_code: str
    concept_name: str
    transaction_count: int
    total_taxable_base: Decimal
    total_retained: Decimal


@dataclass(frozen=True)
class IslrQuarterlySummary:
    """Totals of the ISLR retentions for one calendar quarter."""

    year: int
    quarter: int
    periods: tuple[str, ...]
    transaction_count: int
    total_amount: Decimal
    total_taxable_base: Decimal
    total_retained: Decimal
    by_concept: tuple[ConceptTotals, ...]


def summarize_iva_month(
    transactions: Iterable[RetentionTransaction],
    period: str,
    rules: RetentionRules | None = None,
) -> IvaMonthlySummary:
    """Summarize the IVA transactions of ``period`` (others are ignored)."""
    rules = rules or default_rules()
    selected = [
        t for t in transactions
        if t.tax_type is TaxType.IVA and t.period == period
    ]

    counts: dict[Decimal, int] = {p: 0 for p in sorted(rules.iva_retention_percentages)}
    for t in selected:
        counts[t.retention_percentage] = counts.get(t.retention_percentage, 0) + 1

    total_base = sum((t.taxable_base for t in selected), _ZERO)
    summary = IvaMonthlySummary(
        period=period,
        transaction_count=len(selected),
        total_purchases=sum((t.total_amount for t in selected), _ZERO),
        total_taxable_base=total_base,
        total_iva=total_base * rules.iva_rate,
        total_retained=sum((t.retention_amount for t in selected), _ZERO),
        count_by_percentage=MappingProxyType(counts),
    )
    logger.debug(
        "iva_month_summarized",
        extra={"period": period, "transaction_count": summary.transaction_count},
    )
    return summary


def quarter_periods(year: int, quarter: int) -> tuple[str, ...]:
    """The three ``YYYY-MM`` periods of a calendar quarter (1-4)."""
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"quarter must be between 1 and 4, got {quarter}")
    first_month = (quarter - 1) * 3 + 1
    return tuple(f"{year:04d}-{month:02d}" for month in range(first_month, first_month + 3))


def summarize_islr_quarter(
    transactions: Iterable[RetentionTransaction],
    year: int,
    quarter: int,
    rules: RetentionRules | None = None,
) -> IslrQuarterlySummary:
    """
    Summarize the ISLR transactions of a quarter, grouped by concept.

    Concepts appear in code order; a code missing from the catalog keeps
    the transaction's own concept text as its name.
    """
    rules = rules or default_rules()
    periods = quarter_periods(year, quarter)
    selected = [
        t for t in transactions
        if t.tax_type is TaxType.ISLR and t.period in periods
    ]

    grouped: dict[str, list[RetentionTransaction]] = {}
    for t in selected:
        grouped.setdefault(t.concept_code or "", []).append(t)

    by_concept = []
    for code in sorted(grouped):
        rows = grouped[code]
        concept = rules.islr_concepts.get(code)
        by_concept.append(ConceptTotals(
            concept_code=code,
            concept_name=concept.name if concept else rows[0].concept,
            transaction_count=len(rows),
            total_taxable_base=sum((t.taxable_base for t in rows), _ZERO),
            total_retained=sum((t.retention_amount for t in rows), _ZERO),
        ))

    return IslrQuarterlySummary(
        year=year,
        quarter=quarter,
        periods=periods,
        transaction_count=len(selected),
        total_amount=sum((t.total_amount for t in selected), _ZERO),
        total_taxable_base=sum((t.taxable_base for t in selected), _ZERO),
        total_retained=sum((t.retention_amount for t in selected), _ZERO),
        by_concept=tuple(by_concept),
    )
