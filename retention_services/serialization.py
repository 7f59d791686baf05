"""
Per-agent export serialization.

Two exports for the same agent read the same starting counter and issue
overlapping voucher numbers.  Callers must serialize exports per agent;
``AgentExportSerializer`` hands out one lock per agent RIF to do that
inside a single process.  Multi-process deployments need an external
mutex or a single-writer queue instead.

Usage:
    serializer = AgentExportSerializer()
    with serializer.serialize(agent_rif):
        result = service.export(transactions, TaxType.IVA, ExportFormat.TXT, options)
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from retention_kernel.domain.formatting import normalize_tax_id
from retention_kernel.logging_config import get_logger

logger = get_logger("services.serialization")


class AgentExportSerializer:
    """Registry of one ``threading.Lock`` per agent (keyed by RIF digits)."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _key(agent_rif: str) -> str:
        return normalize_tax_id(agent_rif) or agent_rif

    def lock_for(self, agent_rif: str) -> threading.Lock:
        """The lock guarding exports of ``agent_rif`` (same object every call)."""
        key = self._key(agent_rif)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def serialize(self, agent_rif: str) -> Iterator[None]:
        """Hold the agent's lock for the duration of the block."""
        lock = self.lock_for(agent_rif)
        if not lock.acquire(blocking=False):
            logger.debug("agent_export_waiting", extra={"agent_rif": agent_rif})
            lock.acquire()
        try:
            yield
        finally:
            lock.release()
