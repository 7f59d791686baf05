"""
Tax ID -- Venezuelan RIF parsing, formatting and check-digit validation.

Responsibility:
    Pattern checks used by export validation, plus the fuller RIF
    validation (taxpayer type, modulus-11 check digit) offered to setup
    and data-entry workflows.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``RIF_PATTERN`` is the single definition of a syntactically valid
      RIF: one of the prefix letters V E J G P R C, 8 digits, 1 check digit.
    - ``normalize_tax_id(format_tax_id(normalize_tax_id(x)))`` equals
      ``normalize_tax_id(x)`` for every syntactically valid RIF.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from retention_kernel.domain.formatting import normalize_tax_id

RIF_PATTERN = re.compile(r"[VEJPGRC]-\d{8}-\d")

TAXPAYER_TYPES: dict[str, str] = {
    "V": "Persona Natural Venezolana",
    "E": "Persona Natural Extranjera",
    "J": "Persona Jurídica",
    "P": "Pasaporte",
    "G": "Gobierno",
    "R": "Persona Natural Residente",
    "C": "Cédula",
}

_PREFIX_WEIGHTS: dict[str, int] = {
    "V": 1, "E": 2, "J": 3, "P": 4, "G": 5, "R": 6, "C": 7,
}

_DIGIT_MULTIPLIERS = (3, 2, 7, 6, 5, 4, 3, 2)

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")


@dataclass(frozen=True)
class TaxIdValidation:
    """Outcome of a full RIF validation."""

    is_valid: bool
    formatted: str
    taxpayer_type: str = ""
    errors: tuple[str, ...] = field(default_factory=tuple)


def is_valid_rif_format(tax_id: str | None) -> bool:
    """True if ``tax_id`` matches ``L-########-#`` exactly."""
    return bool(tax_id) and RIF_PATTERN.fullmatch(tax_id) is not None


def clean_tax_id(tax_id: str | None) -> str:
    """Alphanumeric-only, upper-cased form ("j-1234 5678-9" -> "J123456789")."""
    if not tax_id:
        return ""
    return _NON_ALNUM.sub("", tax_id).upper()


def compute_check_digit(prefix: str, digits: str) -> int:
    """
    Modulus-11 check digit for a RIF prefix letter and its 8 digits.

    Raises:
        ValueError: if the prefix is unknown or ``digits`` is not 8 digits.
    """
    if prefix not in _PREFIX_WEIGHTS:
        raise ValueError(f"Unknown RIF prefix: {prefix!r}")
    if len(digits) != 8 or not digits.isdigit():
        raise ValueError(f"RIF body must be 8 digits: {digits!r}")

    total = _PREFIX_WEIGHTS[prefix] * 4
    for digit, multiplier in zip(digits, _DIGIT_MULTIPLIERS):
        total += int(digit) * multiplier

    remainder = total % 11
    return remainder if remainder < 2 else 11 - remainder


def format_tax_id(tax_id: str | None, prefix: str | None = None) -> str:
    """
    Canonical ``L-########-#`` form of a RIF.

    A digits-only RIF carries no prefix letter; pass ``prefix`` to
    restore it.  Input that cannot be formatted is returned unchanged.
    """
    if not tax_id:
        return ""
    clean = clean_tax_id(tax_id)
    if prefix and clean.isdigit() and len(clean) == 9:
        clean = prefix.upper() + clean
    if (
        len(clean) == 10
        and clean[0] in TAXPAYER_TYPES
        and clean[1:].isdigit()
    ):
        return f"{clean[0]}-{clean[1:9]}-{clean[9]}"
    return tax_id


def validate_tax_id(tax_id: str | None) -> TaxIdValidation:
    """Full RIF validation: length, prefix, digit body and check digit."""
    if not tax_id:
        return TaxIdValidation(False, "", errors=("El RIF es obligatorio",))

    clean = clean_tax_id(tax_id)
    if len(clean) != 10:
        return TaxIdValidation(
            False,
            tax_id,
            errors=("El RIF debe tener exactamente 10 caracteres",),
        )

    prefix, body, check = clean[0], clean[1:9], clean[9]
    errors: list[str] = []
    taxpayer_type = TAXPAYER_TYPES.get(prefix, "")
    if not taxpayer_type:
        errors.append(f"Tipo de RIF inválido: {prefix}")
    if not body.isdigit():
        errors.append(
            "La parte numérica del RIF debe contener exactamente 8 dígitos"
        )
    if not check.isdigit():
        errors.append("El dígito de control debe ser un número")

    formatted = f"{prefix}-{body}-{check}"

    if not errors and compute_check_digit(prefix, body) != int(check):
        errors.append("El dígito de control es incorrecto")

    return TaxIdValidation(
        is_valid=not errors,
        formatted=formatted,
        taxpayer_type=taxpayer_type,
        errors=tuple(errors),
    )


__all__ = [
    "RIF_PATTERN",
    "TAXPAYER_TYPES",
    "TaxIdValidation",
    "clean_tax_id",
    "compute_check_digit",
    "format_tax_id",
    "is_valid_rif_format",
    "normalize_tax_id",
    "validate_tax_id",
]
