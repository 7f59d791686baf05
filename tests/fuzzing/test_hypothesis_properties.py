"""
Hypothesis property tests for the export building blocks.

Properties checked:
- Amount formatting always yields exactly two decimals, no grouping
- RIF formatting and normalization agree
- Validation is deterministic and never raises on arbitrary field values
- Voucher allocation is contiguous and keeps the template length
"""

from datetime import date
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from retention_engines.numbering import VoucherSequence
from retention_engines.validation import RetentionLine, validate_islr_batch, validate_iva_batch
from retention_kernel.domain.formatting import format_amount, normalize_tax_id, round_accounting
from retention_kernel.domain.tax_id import format_tax_id, is_valid_rif_format

amounts = st.decimals(
    min_value=Decimal("-999999999"),
    max_value=Decimal("999999999"),
    allow_nan=False,
    allow_infinity=False,
    places=4,
)

rif_prefixes = st.sampled_from("VEJPGRC")
rif_bodies = st.text(alphabet="0123456789", min_size=9, max_size=9)

lines = st.builds(
    RetentionLine,
    document_number=st.text(max_size=12),
    counterparty_rif=st.one_of(
        st.text(max_size=14),
        st.builds(lambda p, b: f"{p}-{b[:8]}-{b[8]}", rif_prefixes, rif_bodies),
    ),
    transaction_date=st.one_of(st.text(max_size=12), st.dates(min_value=date(2000, 1, 1))),
    total_amount=amounts,
    taxable_base=amounts,
    retention_percentage=st.sampled_from([Decimal("75"), Decimal("100"), Decimal("6"), Decimal("3")]),
    retention_amount=amounts,
    control_number=st.one_of(st.none(), st.text(max_size=12)),
    concept_code=st.one_of(st.none(), st.sampled_from(["001", "004", "008", "999"])),
)


class TestFormattingProperties:
    @given(amounts)
    @settings(max_examples=200)
    def test_two_decimals(self, value):
        text = format_amount(value)
        whole, _, cents = text.lstrip("-").partition(".")
        assert len(cents) == 2
        assert whole.isdigit()
        assert Decimal(text) == round_accounting(value)

    @given(st.floats(min_value=0, max_value=1e9, allow_nan=False, allow_infinity=False))
    @settings(max_examples=200)
    def test_floats_format_cleanly(self, value):
        text = format_amount(value)
        assert "e" not in text.lower()
        assert len(text.partition(".")[2]) == 2

    @given(rif_prefixes, rif_bodies)
    def test_rif_round_trip(self, prefix, body):
        formatted = format_tax_id(body, prefix=prefix)
        assert is_valid_rif_format(formatted)
        assert normalize_tax_id(formatted) == body


class TestValidationProperties:
    @given(st.lists(lines, max_size=5))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_deterministic(self, batch):
        assert validate_iva_batch(batch) == validate_iva_batch(batch)
        assert validate_islr_batch(batch) == validate_islr_batch(batch)

    @given(st.lists(lines, min_size=1, max_size=5))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_messages_carry_line_numbers(self, batch):
        result = validate_iva_batch(batch)
        for message in result.errors + result.warnings:
            number = int(message.split(":")[0].removeprefix("Línea "))
            assert 1 <= number <= len(batch)


class TestNumberingProperties:
    @given(
        st.integers(min_value=1, max_value=9999),
        st.integers(min_value=1, max_value=10000),
        st.integers(min_value=0, max_value=50),
    )
    def test_contiguous(self, start, counter, count):
        template = f"202508{start:08d}"
        allocation = VoucherSequence(template, counter).allocate(count)
        assert allocation.final_counter == counter + count
        assert all(len(n) == len(template) for n in allocation.numbers)
        values = [int(n) for n in allocation.numbers]
        assert values == list(range(int(template) + counter - 1, int(template) + counter - 1 + count))
