"""
retention_services -- Orchestration of SENIAT retention exports.

Sits above retention_kernel, retention_engines and retention_config.
``ExportService`` is the export entry point; ``AgentExportSerializer``
helps callers honour the one-export-per-agent-at-a-time contract.
"""

from retention_kernel.domain.capabilities import SENIAT_EXPORTS, CapabilityGate
from retention_services.export_service import (
    ExportResult,
    ExportService,
    write_export,
)
from retention_services.serialization import AgentExportSerializer

__all__ = [
    "AgentExportSerializer",
    "CapabilityGate",
    "ExportResult",
    "ExportService",
    "SENIAT_EXPORTS",
    "write_export",
]
