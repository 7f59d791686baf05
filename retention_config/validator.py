"""
Configuration Validator (``retention_config.validator``).

Responsibility
--------------
Checks a parsed ``SeniatConfig`` for structural and fiscal sanity before
``get_active_config()`` hands it out.

Invariants enforced
-------------------
* ISLR concept codes are three digits and unique.
* Every rate and percentage is positive; percentages do not exceed 100.
* The IVA retention percentage set is non-empty.
* The fiscal timezone resolves to an IANA zone.

Failure modes
-------------
* Errors (``ConfigValidationResult.errors``)  -> configuration MUST NOT be
  used.
* Warnings (``ConfigValidationResult.warnings``)  -> usable, but should be
  reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from retention_config.schema import SeniatConfig

_HUNDRED = Decimal("100")


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: SeniatConfig) -> ConfigValidationResult:
    """Validate a parsed configuration; a result with errors must not be used."""
    result = ConfigValidationResult()

    _validate_iva(config, result)
    _validate_islr_concepts(config, result)
    _validate_numbering(config, result)
    _validate_timezone(config, result)
    _validate_capabilities(config, result)

    return result


def _validate_iva(config: SeniatConfig, result: ConfigValidationResult) -> None:
    if not (Decimal("0") < config.iva_rate < Decimal("1")):
        result.add_error(
            f"iva.rate must be a fraction between 0 and 1, got {config.iva_rate}"
        )
    if not config.iva_retention_percentages:
        result.add_error("iva.retention_percentages must not be empty")
    seen: set[Decimal] = set()
    for percentage in config.iva_retention_percentages:
        if not (Decimal("0") < percentage <= _HUNDRED):
            result.add_error(
                f"IVA retention percentage {percentage} must be in (0, 100]"
            )
        if percentage in seen:
            result.add_error(f"Duplicate IVA retention percentage: {percentage}")
        seen.add(percentage)
    if config.retention_tolerance < Decimal("0"):
        result.add_error("retention_tolerance cannot be negative")


def _validate_islr_concepts(
    config: SeniatConfig, result: ConfigValidationResult
) -> None:
    if not config.islr_concepts:
        result.add_warning("No ISLR concepts declared; every ISLR export will fail")
    seen: set[str] = set()
    for concept in config.islr_concepts:
        if not (len(concept.code) == 3 and concept.code.isdigit()):
            result.add_error(
                f"ISLR concept code {concept.code!r} must be exactly 3 digits"
            )
        if concept.code in seen:
            result.add_error(f"Duplicate ISLR concept code: {concept.code}")
        seen.add(concept.code)
        if not (Decimal("0") < concept.rate <= _HUNDRED):
            result.add_error(
                f"ISLR concept {concept.code} rate {concept.rate} must be in (0, 100]"
            )
        if not concept.name.strip():
            result.add_error(f"ISLR concept {concept.code} has no name")


def _validate_numbering(config: SeniatConfig, result: ConfigValidationResult) -> None:
    if not (1 <= config.voucher_sequence_width <= 18):
        result.add_error(
            "vouchers.sequence_width must be between 1 and 18, "
            f"got {config.voucher_sequence_width}"
        )


def _validate_timezone(config: SeniatConfig, result: ConfigValidationResult) -> None:
    try:
        ZoneInfo(config.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        result.add_error(f"Unknown timezone: {config.timezone!r}")


def _validate_capabilities(
    config: SeniatConfig, result: ConfigValidationResult
) -> None:
    if "seniat_exports" not in config.capabilities:
        result.add_warning(
            "Capability 'seniat_exports' is not declared; exports will be refused"
        )
