"""
Voucher Numbering Engine - Sequential comprobante numbers from a template.

Responsibility:
    Derive declaration-voucher numbers from the agent's initial-number
    template and the current sequence counter.  The counter is explicit
    state: ``VoucherSequence`` takes it in and hands a new sequence back,
    and the caller (ExportService) owns persisting the final value.

Architecture position:
    Engines -- pure functions, zero I/O.  No module-level counter.

Invariants enforced:
    - ``number(counter) = prefix + pad(suffix + counter - 1, width)`` where
      ``suffix`` is the integer value of the template's trailing ``width``
      digits and ``prefix`` is everything before them.
    - Numbers keep the template's length and stay all-digit.
    - A batch of N lines starting at counter C receives exactly the
      numbers for C .. C+N-1, in input order; the final counter is C+N.

Failure modes:
    - InvalidVoucherTemplateError: template not all digits, or shorter
      than the sequence width.
    - InvalidVoucherCounterError: counter < 1.
    - VoucherSequenceOverflowError: the sequence no longer fits in
      ``width`` digits.

Usage:
    from retention_engines.numbering import VoucherSequence

    sequence = VoucherSequence("20250800000001", counter=1)
    allocation = sequence.allocate(2)
    allocation.numbers        # ("20250800000001", "20250800000002")
    allocation.final_counter  # 3
"""

from __future__ import annotations

from dataclasses import dataclass, field

from retention_engines.tracer import traced_engine
from retention_kernel.exceptions import (
    InvalidVoucherCounterError,
    InvalidVoucherTemplateError,
    VoucherSequenceOverflowError,
)

DEFAULT_SEQUENCE_WIDTH = 8


def split_template(template: str, width: int = DEFAULT_SEQUENCE_WIDTH) -> tuple[str, int]:
    """
    Split a voucher template into its fixed prefix and sequence start.

    Raises:
        InvalidVoucherTemplateError: if the template is unusable.
    """
    if not template:
        raise InvalidVoucherTemplateError(template, "template is empty")
    if not template.isdigit():
        raise InvalidVoucherTemplateError(template, "template must contain only digits")
    if len(template) < width:
        raise InvalidVoucherTemplateError(
            template, f"template must be at least {width} digits long"
        )
    return template[:-width], int(template[-width:])


def check_voucher_template(template: str, width: int = DEFAULT_SEQUENCE_WIDTH) -> None:
    """Raise InvalidVoucherTemplateError unless ``template`` is usable."""
    split_template(template, width)


def allocate_voucher_number(
    template: str,
    counter: int,
    width: int = DEFAULT_SEQUENCE_WIDTH,
) -> str:
    """The voucher number at 1-based position ``counter`` of the template's sequence."""
    if isinstance(counter, bool) or not isinstance(counter, int) or counter < 1:
        raise InvalidVoucherCounterError(counter)
    prefix, start = split_template(template, width)
    value = start + counter - 1
    if value >= 10 ** width:
        raise VoucherSequenceOverflowError(template, counter, width)
    return f"{prefix}{value:0{width}d}"


@dataclass(frozen=True)
class VoucherAllocation:
    """Numbers issued for one batch and the counter state around it."""

    numbers: tuple[str, ...]
    starting_counter: int
    final_counter: int

    @property
    def count(self) -> int:
        return len(self.numbers)

    @property
    def first(self) -> str | None:
        return self.numbers[0] if self.numbers else None

    @property
    def last(self) -> str | None:
        return self.numbers[-1] if self.numbers else None


@dataclass(frozen=True)
class VoucherSequence:
    """
    Immutable position in an agent's voucher sequence.

    ``next()`` and ``allocate()`` never change this object; they return
    the numbers together with the sequence to continue from.
    """

    template: str
    counter: int = 1
    width: int = field(default=DEFAULT_SEQUENCE_WIDTH)

    def __post_init__(self) -> None:
        if (
            isinstance(self.counter, bool)
            or not isinstance(self.counter, int)
            or self.counter < 1
        ):
            raise InvalidVoucherCounterError(self.counter)
        check_voucher_template(self.template, self.width)

    def peek(self) -> str:
        """The number the next allocation would issue."""
        return allocate_voucher_number(self.template, self.counter, self.width)

    def next(self) -> tuple[str, VoucherSequence]:
        """Issue one number; return it with the advanced sequence."""
        number = self.peek()
        return number, VoucherSequence(self.template, self.counter + 1, self.width)

    def advanced(self, count: int) -> VoucherSequence:
        return VoucherSequence(self.template, self.counter + count, self.width)

    @traced_engine(
        "voucher_numbering", "1.0", fingerprint_fields=("self", "count")
    )
    def allocate(self, count: int) -> VoucherAllocation:
        """
        Issue ``count`` consecutive numbers starting at this position.

        The whole range is checked before anything is returned, so an
        overflowing batch yields no numbers at all.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if count:
            # Last number first: overflow surfaces before any is issued.
            allocate_voucher_number(self.template, self.counter + count - 1, self.width)
        numbers = tuple(
            allocate_voucher_number(self.template, self.counter + offset, self.width)
            for offset in range(count)
        )
        return VoucherAllocation(
            numbers=numbers,
            starting_counter=self.counter,
            final_counter=self.counter + count,
        )
