"""
Retention Rules - Statutory constants consumed by the validation engine.

The ISLR concept catalog and the IVA retention rates are fiscal policy,
not code: ``retention_config`` loads them from YAML and builds a
``RetentionRules`` through ``retention_config.bridges``.  ``default_rules()``
mirrors the shipped defaults for callers that run without configuration.

Usage:
    from retention_engines.rules import default_rules

    rules = default_rules()
    rules.islr_rate("001")  # Decimal("6")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class IslrConcept:
    """One ISLR withholding category with its fixed statutory rate (percent)."""

    code: str
    name: str
    rate: Decimal
    description: str = ""

    def __post_init__(self) -> None:
        if not (len(self.code) == 3 and self.code.isdigit()):
            raise ValueError(f"ISLR concept code must be 3 digits, got {self.code!r}")
        if self.rate <= Decimal("0"):
            raise ValueError(f"ISLR concept {self.code} rate must be positive")


DEFAULT_ISLR_CONCEPTS: tuple[IslrConcept, ...] = (
    IslrConcept("001", "Honorarios Profesionales", Decimal("6"), "Servicios profesionales independientes"),
    IslrConcept("002", "Servicios Técnicos", Decimal("3"), "Servicios técnicos especializados"),
    IslrConcept("003", "Servicios de Construcción", Decimal("2"), "Servicios relacionados con construcción"),
    IslrConcept("004", "Servicios de Publicidad", Decimal("3"), "Servicios de publicidad y marketing"),
    IslrConcept("005", "Servicios de Limpieza", Decimal("2"), "Servicios de aseo y limpieza"),
    IslrConcept("006", "Servicios de Transporte", Decimal("2"), "Servicios de transporte de carga y pasajeros"),
    IslrConcept("007", "Arrendamientos", Decimal("6"), "Alquiler de bienes muebles e inmuebles"),
    IslrConcept("008", "Servicios de Informática", Decimal("3"), "Desarrollo y mantenimiento de software"),
)


@dataclass(frozen=True)
class RetentionRules:
    """
    Fiscal parameters for batch validation.

    Immutable value object; every field has the statutory default.
    """

    iva_rate: Decimal = Decimal("0.16")
    iva_retention_percentages: frozenset[Decimal] = frozenset(
        {Decimal("75"), Decimal("100")}
    )
    islr_concepts: Mapping[str, IslrConcept] = field(
        default_factory=lambda: MappingProxyType(
            {c.code: c for c in DEFAULT_ISLR_CONCEPTS}
        )
    )
    tolerance: Decimal = Decimal("0.01")
    min_fiscal_year: int = 2020

    def __post_init__(self) -> None:
        if not self.iva_retention_percentages:
            raise ValueError("At least one IVA retention percentage is required")
        if self.tolerance < Decimal("0"):
            raise ValueError("Retention tolerance cannot be negative")
        if not isinstance(self.islr_concepts, MappingProxyType):
            object.__setattr__(
                self, "islr_concepts", MappingProxyType(dict(self.islr_concepts))
            )

    def islr_rate(self, concept_code: str | None) -> Decimal | None:
        """Statutory rate for a concept code, or None if the code is unknown."""
        concept = self.islr_concepts.get(concept_code or "")
        return concept.rate if concept else None

    def describe_iva_percentages(self) -> str:
        """Human text for the allowed IVA percentages ("75% o 100%")."""
        texts = [f"{int(p) if p == p.to_integral_value() else p}%"
                 for p in sorted(self.iva_retention_percentages)]
        if len(texts) == 1:
            return texts[0]
        return f"{', '.join(texts[:-1])} o {texts[-1]}"


def default_rules() -> RetentionRules:
    """Rules with the statutory defaults."""
    return RetentionRules()
