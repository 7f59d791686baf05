"""
Formatting -- Field encoders for SENIAT fiscal artifacts.

Responsibility:
    Pure functions that turn domain values into the exact text that
    appears in TXT and XML declarations: RIF digits, compact dates and
    periods, accounting-rounded amounts, percentages and escaped XML text.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O, no state.
    Imported by retention_engines (validation and rendering).

Invariants enforced:
    - Every monetary value written to an artifact goes through
      ``round_accounting`` (ROUND_HALF_UP to 2 places) before formatting.
    - Amounts always render with exactly two digits after a literal ``.``,
      in both TXT and XML (one normalized format, not two).
    - Floats are converted through their shortest repr, never through
      their binary expansion, so ``0.1 + 0.2`` formats as ``"0.30"``.

Failure modes:
    - InvalidDateError from ``encode_date`` on unparsable input.
    - FormattingError from ``to_decimal`` on non-numeric or non-finite input.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from retention_kernel.exceptions import FormattingError, InvalidDateError

CENT = Decimal("0.01")

_NON_DIGITS = re.compile(r"\D")

# Ampersand first so already-produced entities are not escaped twice.
_XML_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)


def normalize_tax_id(tax_id: str | None) -> str:
    """Strip every non-digit from a RIF ("J-12345678-9" -> "123456789")."""
    if not tax_id:
        return ""
    return _NON_DIGITS.sub("", tax_id)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Coerce a numeric value to Decimal without binary floating-point noise.

    Floats go through ``repr`` (shortest round-tripping text), so
    ``to_decimal(0.1 + 0.2) == Decimal("0.30000000000000004")`` rather
    than the 55-digit binary expansion.
    """
    if isinstance(value, bool):
        raise FormattingError(f"Boolean is not a monetary value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise FormattingError(f"Not a numeric value: {value!r}") from None
    else:
        raise FormattingError(f"Not a numeric value: {value!r}")
    if not result.is_finite():
        raise FormattingError(f"Not a finite value: {value!r}")
    return result


def round_accounting(amount: Decimal | int | float | str) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal | int | float | str) -> str:
    """Accounting-round and render as ``D.DD`` (literal point, no grouping)."""
    rounded = round_accounting(amount)
    if rounded.is_zero():
        # Avoid "-0.00"
        rounded = abs(rounded)
    return f"{rounded:.2f}"


def format_percentage(percentage: Decimal | int | float | str) -> str:
    """
    Render a retention percentage without trailing zeros.

    ``75`` -> ``"75"``, ``Decimal("100.00")`` -> ``"100"``,
    ``Decimal("2.50")`` -> ``"2.5"``.
    """
    value = to_decimal(percentage)
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def parse_date(value: date | datetime | str) -> date:
    """
    Parse an ISO date (or ISO datetime) into a ``date``.

    Raises:
        InvalidDateError: if ``value`` is not a parsable calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            raise InvalidDateError(value) from None
    raise InvalidDateError(value)


def encode_date(value: date | datetime | str) -> str:
    """Re-encode an ISO date as compact ``YYYYMMDD``."""
    return parse_date(value).strftime("%Y%m%d")


def encode_period(period: str) -> str:
    """Strip the separator from a ``YYYY-MM`` period (``"2025-01"`` -> ``"202501"``)."""
    return period.replace("-", "")


def escape_xml_text(text: str | None) -> str:
    """Replace ``& < > " '`` with their XML entities, ampersand first."""
    if not text:
        return ""
    for raw, entity in _XML_ENTITIES:
        text = text.replace(raw, entity)
    return text
