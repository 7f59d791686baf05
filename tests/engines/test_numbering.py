"""
Tests for the Voucher Numbering Engine.

Covers:
- Number derivation from template and counter
- Contiguous batch allocation and final counter
- Immutability of VoucherSequence
- Template, counter and overflow failures
"""

from dataclasses import FrozenInstanceError

import pytest

from retention_engines.numbering import (
    VoucherSequence,
    allocate_voucher_number,
    check_voucher_template,
    split_template,
)
from retention_kernel.exceptions import (
    InvalidVoucherCounterError,
    InvalidVoucherTemplateError,
    VoucherSequenceOverflowError,
)

TEMPLATE = "20250800000001"


class TestAllocateVoucherNumber:
    def test_first_number_is_template(self):
        assert allocate_voucher_number(TEMPLATE, 1) == TEMPLATE

    def test_counter_offsets_suffix(self):
        assert allocate_voucher_number(TEMPLATE, 2) == "20250800000002"
        assert allocate_voucher_number(TEMPLATE, 100) == "20250800000100"

    def test_suffix_start_above_one(self):
        assert allocate_voucher_number("20250800000050", 3) == "20250800000052"

    def test_length_preserved(self):
        assert len(allocate_voucher_number(TEMPLATE, 12345)) == len(TEMPLATE)

    def test_custom_width(self):
        assert allocate_voucher_number("2025080001", 5, width=4) == "2025080005"

    @pytest.mark.parametrize("counter", [0, -1, True, "1"])
    def test_invalid_counter(self, counter):
        with pytest.raises(InvalidVoucherCounterError):
            allocate_voucher_number(TEMPLATE, counter)

    def test_overflow(self):
        assert allocate_voucher_number("20250899999999", 1) == "20250899999999"
        with pytest.raises(VoucherSequenceOverflowError) as exc_info:
            allocate_voucher_number("20250899999999", 2)
        assert exc_info.value.code == "VOUCHER_SEQUENCE_OVERFLOW"


class TestTemplate:
    def test_split(self):
        assert split_template(TEMPLATE) == ("202508", 1)

    def test_split_exact_width(self):
        assert split_template("00000007") == ("", 7)

    @pytest.mark.parametrize("template", ["", "2025-08-0001", "ABC00000001", "1234567"])
    def test_rejected(self, template):
        with pytest.raises(InvalidVoucherTemplateError) as exc_info:
            check_voucher_template(template)
        assert exc_info.value.template == template


class TestVoucherSequence:
    def test_two_line_batch(self):
        allocation = VoucherSequence(TEMPLATE, counter=1).allocate(2)
        assert allocation.numbers == ("20250800000001", "20250800000002")
        assert allocation.starting_counter == 1
        assert allocation.final_counter == 3
        assert allocation.first == "20250800000001"
        assert allocation.last == "20250800000002"

    def test_batch_continues_from_counter(self):
        allocation = VoucherSequence(TEMPLATE, counter=3).allocate(3)
        assert allocation.numbers == (
            "20250800000003",
            "20250800000004",
            "20250800000005",
        )
        assert allocation.final_counter == 6

    def test_consecutive_batches_do_not_overlap(self):
        first = VoucherSequence(TEMPLATE).allocate(4)
        second = VoucherSequence(TEMPLATE, first.final_counter).allocate(2)
        assert set(first.numbers).isdisjoint(second.numbers)
        assert int(second.first) == int(first.last) + 1

    def test_empty_allocation(self):
        allocation = VoucherSequence(TEMPLATE, counter=5).allocate(0)
        assert allocation.numbers == ()
        assert allocation.count == 0
        assert allocation.first is None
        assert allocation.final_counter == 5

    def test_negative_count(self):
        with pytest.raises(ValueError):
            VoucherSequence(TEMPLATE).allocate(-1)

    def test_next_returns_new_sequence(self):
        sequence = VoucherSequence(TEMPLATE)
        number, following = sequence.next()
        assert number == TEMPLATE
        assert following.counter == 2
        assert sequence.counter == 1
        assert following.peek() == "20250800000002"

    def test_advanced(self):
        assert VoucherSequence(TEMPLATE).advanced(3).counter == 4

    def test_frozen(self):
        sequence = VoucherSequence(TEMPLATE)
        with pytest.raises(FrozenInstanceError):
            sequence.counter = 9

    def test_overflowing_batch_issues_nothing(self):
        sequence = VoucherSequence("20250899999998", counter=1)
        with pytest.raises(VoucherSequenceOverflowError):
            sequence.allocate(3)
        assert sequence.allocate(2).numbers == ("20250899999998", "20250899999999")

    def test_invalid_construction(self):
        with pytest.raises(InvalidVoucherCounterError):
            VoucherSequence(TEMPLATE, counter=0)
        with pytest.raises(InvalidVoucherTemplateError):
            VoucherSequence("12AB5678")

    def test_trace_emitted(self, captured_logs):
        VoucherSequence(TEMPLATE).allocate(2)
        traces = [
            r for r in captured_logs()
            if r["message"] == "RETENTION_ENGINE_TRACE"
            and r["engine_name"] == "voucher_numbering"
        ]
        assert len(traces) == 1
        assert traces[0]["engine_version"] == "1.0"

    def test_fingerprint_depends_on_counter(self, captured_logs):
        VoucherSequence(TEMPLATE, counter=1).allocate(2)
        VoucherSequence(TEMPLATE, counter=2).allocate(2)
        fingerprints = [
            r["input_fingerprint"] for r in captured_logs()
            if r.get("engine_name") == "voucher_numbering"
        ]
        assert len(fingerprints) == 2
        assert fingerprints[0] != fingerprints[1]
