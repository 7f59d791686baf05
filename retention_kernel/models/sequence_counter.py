"""Named monotonic counter rows used by ``SequenceService``."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from retention_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.  Row-level
    locking keeps allocation monotonic under concurrency.
    """

    __tablename__ = "sequence_counters"

    # e.g. "retention_transaction"
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
