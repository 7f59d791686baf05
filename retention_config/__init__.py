"""
retention_config -- single public entrypoint for export configuration.

Responsibility:
    Provides the ONLY way to obtain the fiscal export parameters at
    runtime through ``get_active_config()``.  No other component reads
    configuration files or environment variables directly.

Architecture position:
    Configuration -- YAML-driven, validated before use.
    This package sits above ``retention_kernel`` and ``retention_engines``
    and below ``retention_services``.  The kernel and the engines MUST
    NEVER import from ``retention_config``; bridges in this package
    translate the configuration into their inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - A configuration with validation errors is never returned.
    - Deterministic identity: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value cannot be parsed, or validation failed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RETENTION_CONFIG_TRACE`` log entry carrying the config id, version,
    checksum and source path, which ties every exported declaration back
    to the exact fiscal parameters that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from retention_config.loader import load_config
from retention_config.schema import IslrConceptDef, SeniatConfig, SoftwareDef
from retention_config.validator import ConfigValidationResult, validate_configuration

_logger = logging.getLogger("retention_kernel.config")

CONFIG_PATH_ENV = "RETENTION_CONFIG_PATH"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "seniat.yaml"


def resolve_config_path(config_path: Path | str | None = None) -> Path:
    """Explicit path, else ``$RETENTION_CONFIG_PATH``, else the shipped defaults."""
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return _DEFAULT_CONFIG_PATH


def get_active_config(config_path: Path | str | None = None) -> SeniatConfig:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned ``SeniatConfig`` has passed ``validate_configuration``.
        - A ``RETENTION_CONFIG_TRACE`` log entry is emitted on every
          successful call; validation warnings are logged alongside it.

    Non-goals:
        - Does NOT cache across calls; callers hold the returned config
          for as long as they need it.

    Args:
        config_path: Override path to the YAML file.  Defaults to
            ``$RETENTION_CONFIG_PATH`` or retention_config/defaults/seniat.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = resolve_config_path(config_path)
    config = load_config(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning(
            "retention_config_warning",
            extra={"config_id": config.config_id, "detail": warning},
        )

    _logger.info(
        "RETENTION_CONFIG_TRACE",
        extra={
            "trace_type": "RETENTION_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source_path": str(path),
            "islr_concept_count": len(config.islr_concepts),
            "capabilities": sorted(
                name for name, on in config.capabilities.items() if on
            ),
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigValidationResult",
    "IslrConceptDef",
    "SeniatConfig",
    "SoftwareDef",
    "get_active_config",
    "resolve_config_path",
    "validate_configuration",
]
