"""Services for the retention kernel (stores and sequences)."""

from retention_kernel.services.agent_config_store import (
    AgentConfigurationStore,
    InMemoryAgentConfigurationStore,
    SqlAgentConfigurationStore,
)
from retention_kernel.services.sequence_service import SequenceService
from retention_kernel.services.transaction_source import (
    InMemoryTransactionSource,
    SqlTransactionSource,
    TransactionSource,
)

__all__ = [
    "AgentConfigurationStore",
    "InMemoryAgentConfigurationStore",
    "InMemoryTransactionSource",
    "SequenceService",
    "SqlAgentConfigurationStore",
    "SqlTransactionSource",
    "TransactionSource",
]
