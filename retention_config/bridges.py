"""
Config -> Engine Bridges.

Functions that convert a ``SeniatConfig`` into the inputs the engines and
the export service consume.  They live in retention_config (the producer)
because the kernel and the engines must never import retention_config.

Usage:
    from retention_config import get_active_config
    from retention_config.bridges import build_retention_rules

    config = get_active_config()
    rules = build_retention_rules(config)
"""

from __future__ import annotations

from types import MappingProxyType

from retention_config.schema import SeniatConfig
from retention_engines.rendering import RenderSettings
from retention_engines.rules import IslrConcept, RetentionRules
from retention_kernel.domain.capabilities import CapabilityGate


def build_retention_rules(config: SeniatConfig) -> RetentionRules:
    """Validation parameters: IVA rate and percentages, ISLR catalog, tolerance."""
    concepts = {
        c.code: IslrConcept(
            code=c.code, name=c.name, rate=c.rate, description=c.description
        )
        for c in config.islr_concepts
    }
    return RetentionRules(
        iva_rate=config.iva_rate,
        iva_retention_percentages=frozenset(config.iva_retention_percentages),
        islr_concepts=MappingProxyType(concepts),
        tolerance=config.retention_tolerance,
        min_fiscal_year=config.min_fiscal_year,
    )


def build_render_settings(config: SeniatConfig) -> RenderSettings:
    """Document stamps: software identification and the IVA rate."""
    return RenderSettings(
        software_name=config.software.name,
        software_version=config.software.version,
        iva_rate=config.iva_rate,
    )


def build_capability_gate(config: SeniatConfig) -> CapabilityGate:
    """Enabled capabilities; undeclared ones are denied."""
    return CapabilityGate.from_flags(config.capabilities)
