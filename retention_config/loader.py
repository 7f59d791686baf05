"""
Configuration Loader (``retention_config.loader``).

Responsibility
--------------
Loads the SENIAT YAML configuration file and parses it into the typed
``retention_config.schema`` dataclasses.  Runtime callers go through
``retention_config.get_active_config()``, which also validates the result.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* Numeric fiscal values are parsed into ``Decimal`` from their text, never
  through a binary float.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  source for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from retention_config.schema import IslrConceptDef, SeniatConfig, SoftwareDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a YAML scalar (string, int or float) into a Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name}: expected a number, got {value!r}") from None


def parse_concept(data: dict[str, Any]) -> IslrConceptDef:
    """Parse one ``islr_concepts`` entry."""
    code = str(data["code"])
    return IslrConceptDef(
        code=code,
        name=data["name"],
        rate=parse_decimal(data["rate"], f"islr_concepts[{code}].rate"),
        description=data.get("description", ""),
    )


def parse_software(data: dict[str, Any]) -> SoftwareDef:
    return SoftwareDef(name=data["name"], version=str(data["version"]))


def parse_seniat_config(data: dict[str, Any]) -> SeniatConfig:
    """
    Parse the root mapping of a SENIAT configuration file.

    Raises:
        KeyError: if a required key is missing.
        ValueError: if a numeric field cannot be parsed.
    """
    iva = data["iva"]
    islr = data.get("islr", {})
    vouchers = data.get("vouchers", {})

    return SeniatConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        iva_rate=parse_decimal(iva["rate"], "iva.rate"),
        iva_retention_percentages=tuple(
            parse_decimal(p, "iva.retention_percentages")
            for p in iva["retention_percentages"]
        ),
        retention_tolerance=parse_decimal(
            data.get("retention_tolerance", "0.01"), "retention_tolerance"
        ),
        voucher_sequence_width=int(vouchers.get("sequence_width", 8)),
        min_fiscal_year=int(data.get("min_fiscal_year", 2020)),
        timezone=data.get("timezone", "America/Caracas"),
        software=parse_software(data["software"]),
        islr_concepts=tuple(parse_concept(c) for c in islr.get("concepts", [])),
        capabilities={
            str(k): bool(v) for k, v in data.get("capabilities", {}).items()
        },
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> SeniatConfig:
    """Load and parse a configuration file (no validation)."""
    return parse_seniat_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
