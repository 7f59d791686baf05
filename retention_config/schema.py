"""
SeniatConfig schema.

The human-authored, reviewable fiscal parameters of a SENIAT retention
export.  The loader parses YAML into these types; ``get_active_config()``
validates them; ``retention_config.bridges`` turns them into engine and
service inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# ISLR concept catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IslrConceptDef:
    """One ISLR withholding concept as declared in configuration."""

    code: str  # three digits, e.g. "001"
    name: str
    rate: Decimal  # percent, e.g. Decimal("6")
    description: str = ""


# ---------------------------------------------------------------------------
# Document identification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SoftwareDef:
    """Software identification stamped into ISLR XML headers."""

    name: str
    version: str


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeniatConfig:
    """
    Root configuration for SENIAT retention exports.

    Attributes:
        config_id: Identifier of the configuration file.
        version: Configuration version (bumped on any fiscal change).
        iva_rate: General IVA rate as a fraction (0.16).
        iva_retention_percentages: Allowed IVA retention percentages.
        retention_tolerance: Maximum difference between declared and
            expected retention amounts.
        voucher_sequence_width: Trailing template digits that form the
            voucher sequence.
        min_fiscal_year: Earliest accepted declaration year.
        timezone: IANA zone used for generation dates.
        capabilities: Feature gates (e.g., {"seniat_exports": True}).
        islr_concepts: The ISLR concept catalog.
        software: Identification emitted in documents.
        checksum: SHA-256 of the parsed source, set by the loader.
    """

    config_id: str
    version: int
    iva_rate: Decimal
    iva_retention_percentages: tuple[Decimal, ...]
    retention_tolerance: Decimal
    voucher_sequence_width: int
    min_fiscal_year: int
    timezone: str
    software: SoftwareDef
    islr_concepts: tuple[IslrConceptDef, ...] = ()
    capabilities: dict[str, bool] = field(default_factory=dict)
    checksum: str = ""

    def concept(self, code: str) -> IslrConceptDef | None:
        for concept in self.islr_concepts:
            if concept.code == code:
                return concept
        return None
