"""
Agent configuration stores -- the external configuration collaborator.

Responsibility:
    Implements the configuration-store contract consumed by the export
    engine: ``get()`` returns the agent's ``AgentConfiguration``;
    ``update(counter_value)`` writes back the voucher counter after an
    export.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - The voucher counter never decreases: an update below the stored
      value raises CounterRegressionError.
    - Each ``update`` is a single, self-contained write (its own
      transaction); no wider transactional guarantee is offered.
      Concurrent writers follow last-write-wins.

Failure modes:
    - AgentConfigurationNotFoundError when no row exists for the agent.
    - CounterPersistenceError when the database write fails.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from retention_kernel.domain.models import AgentConfiguration
from retention_kernel.exceptions import (
    AgentConfigurationNotFoundError,
    CounterPersistenceError,
    CounterRegressionError,
)
from retention_kernel.logging_config import get_logger
from retention_kernel.models.agent_configuration import AgentConfigurationModel

logger = get_logger("services.agent_config_store")


@runtime_checkable
class AgentConfigurationStore(Protocol):
    """Contract for the persisted agent configuration."""

    def get(self) -> AgentConfiguration:
        """Return the agent configuration, or raise a ConfigurationError."""
        ...

    def update(self, counter_value: int) -> None:
        """Persist a new voucher counter, or raise a PersistenceError."""
        ...


class InMemoryAgentConfigurationStore:
    """
    Process-local configuration store.

    Keeps the configuration in memory and records every counter written,
    which makes it the store of choice for previews and tests.
    """

    def __init__(self, config: AgentConfiguration | None = None):
        self._config = config
        self._lock = threading.Lock()
        self.updates: list[int] = []

    def get(self) -> AgentConfiguration:
        with self._lock:
            if self._config is None:
                raise AgentConfigurationNotFoundError()
            return self._config

    def update(self, counter_value: int) -> None:
        with self._lock:
            if self._config is None:
                raise AgentConfigurationNotFoundError()
            current = self._config.voucher_counter
            if counter_value < current:
                raise CounterRegressionError(current, counter_value)
            self._config = self._config.with_counter(counter_value)
            self.updates.append(counter_value)

    def save(self, config: AgentConfiguration) -> None:
        """Replace the whole configuration (company setup)."""
        with self._lock:
            self._config = config


class SqlAgentConfigurationStore:
    """
    SQLAlchemy-backed configuration store for one agent.

    Contract:
        Takes a session factory rather than a session: every call runs in
        its own short transaction, so the counter write is committed (or
        not) independently of anything the caller is doing.
    """

    def __init__(self, session_factory: sessionmaker[Session], agent_rif: str):
        self._session_factory = session_factory
        self._agent_rif = agent_rif

    @property
    def agent_rif(self) -> str:
        return self._agent_rif

    def _select(self, session: Session, for_update: bool = False):
        stmt = select(AgentConfigurationModel).where(
            AgentConfigurationModel.agent_rif == self._agent_rif
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def get(self) -> AgentConfiguration:
        with self._session_factory() as session:
            row = self._select(session)
            if row is None:
                raise AgentConfigurationNotFoundError(self._agent_rif)
            return row.to_dto()

    def update(self, counter_value: int) -> None:
        try:
            with self._session_factory() as session, session.begin():
                row = self._select(session, for_update=True)
                if row is None:
                    raise AgentConfigurationNotFoundError(self._agent_rif)
                if counter_value < row.voucher_counter:
                    raise CounterRegressionError(row.voucher_counter, counter_value)
                previous = row.voucher_counter
                row.voucher_counter = counter_value
        except SQLAlchemyError as exc:
            raise CounterPersistenceError(counter_value, str(exc)) from exc

        logger.info(
            "agent_voucher_counter_updated",
            extra={
                "agent_rif": self._agent_rif,
                "previous_counter": previous,
                "new_counter": counter_value,
            },
        )

    def save(self, config: AgentConfiguration) -> None:
        """Insert or replace the agent configuration (company setup)."""
        with self._session_factory() as session, session.begin():
            row = self._select(session, for_update=True)
            if row is None:
                session.add(AgentConfigurationModel.from_dto(config))
            else:
                row.agent_name = config.agent_name
                row.agent_address = config.agent_address
                row.voucher_template = config.voucher_template
                row.voucher_counter = config.voucher_counter
                row.period_validity = config.period_validity
                row.phone = config.phone
                row.email = config.email
        logger.info(
            "agent_configuration_saved",
            extra={"agent_rif": config.agent_rif},
        )
