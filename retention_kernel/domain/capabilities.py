"""
Capability gate for export operations.

A single check performed once at the entry of an export, before any
configuration is loaded or any work begins.  Capabilities come from
configuration (``retention_config.bridges.build_capability_gate``); the
kernel only evaluates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from retention_kernel.exceptions import ExportNotPermittedError

SENIAT_EXPORTS = "seniat_exports"


@dataclass(frozen=True)
class CapabilityGate:
    """Immutable set of enabled capabilities."""

    enabled: frozenset[str] = field(default_factory=lambda: frozenset({SENIAT_EXPORTS}))

    @classmethod
    def from_flags(cls, flags: Mapping[str, bool]) -> CapabilityGate:
        return cls(frozenset(name for name, on in flags.items() if on))

    @classmethod
    def deny_all(cls) -> CapabilityGate:
        return cls(frozenset())

    def allows(self, capability: str) -> bool:
        return capability in self.enabled

    def require(self, capability: str) -> None:
        """Raise ExportNotPermittedError unless ``capability`` is enabled."""
        if capability not in self.enabled:
            raise ExportNotPermittedError(capability)
