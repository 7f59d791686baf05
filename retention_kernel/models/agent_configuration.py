"""
Agent Configuration ORM model (``retention_kernel.models.agent_configuration``).

Responsibility:
    Persists the ``AgentConfiguration`` DTO: one row per withholding agent,
    keyed by its RIF, carrying the declared voucher template and the
    current voucher counter.

Invariants enforced:
    - ``agent_rif`` is unique (one configuration per agent).
    - ``voucher_counter`` is BigInteger and is only ever raised by
      ``SqlAgentConfigurationStore.update`` (non-decreasing).
"""

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from retention_kernel.db.base import TrackedBase
from retention_kernel.domain.models import AgentConfiguration


class AgentConfigurationModel(TrackedBase):
    """ORM model for ``AgentConfiguration``."""

    __tablename__ = "agent_configurations"

    agent_rif: Mapped[str] = mapped_column(String(20), nullable=False)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    agent_address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    voucher_template: Mapped[str] = mapped_column(String(32), nullable=False)
    voucher_counter: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)
    period_validity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("agent_rif", name="uq_agent_configuration_rif"),
    )

    def to_dto(self) -> AgentConfiguration:
        return AgentConfiguration(
            agent_rif=self.agent_rif,
            agent_name=self.agent_name,
            voucher_template=self.voucher_template,
            voucher_counter=self.voucher_counter,
            agent_address=self.agent_address or "",
            period_validity=self.period_validity,
            phone=self.phone,
            email=self.email,
        )

    @classmethod
    def from_dto(cls, dto: AgentConfiguration) -> "AgentConfigurationModel":
        return cls(
            agent_rif=dto.agent_rif,
            agent_name=dto.agent_name,
            voucher_template=dto.voucher_template,
            voucher_counter=dto.voucher_counter,
            agent_address=dto.agent_address,
            period_validity=dto.period_validity,
            phone=dto.phone,
            email=dto.email,
        )

    def __repr__(self) -> str:
        return (
            f"<AgentConfigurationModel {self.agent_rif}: "
            f"template={self.voucher_template} counter={self.voucher_counter}>"
        )
