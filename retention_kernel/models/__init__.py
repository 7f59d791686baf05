"""ORM models. Importing this package registers every kernel table on ``Base.metadata``."""

from retention_kernel.models.agent_configuration import AgentConfigurationModel
from retention_kernel.models.retention_transaction import RetentionTransactionModel
from retention_kernel.models.sequence_counter import SequenceCounter

__all__ = [
    "AgentConfigurationModel",
    "RetentionTransactionModel",
    "SequenceCounter",
]
