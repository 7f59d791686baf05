"""
Tests for RIF utilities (retention_kernel.domain.tax_id).
"""

import pytest

from retention_kernel.domain.formatting import normalize_tax_id
from retention_kernel.domain.tax_id import (
    clean_tax_id,
    compute_check_digit,
    format_tax_id,
    is_valid_rif_format,
    validate_tax_id,
)


class TestRifFormat:
    @pytest.mark.parametrize(
        "rif",
        ["J-12345678-9", "V-98765432-1", "E-00000001-0", "G-20000000-5",
         "P-12345678-1", "R-12345678-1", "C-12345678-1"],
    )
    def test_accepted(self, rif):
        assert is_valid_rif_format(rif)

    @pytest.mark.parametrize(
        "rif",
        ["", None, "X-12345678-9", "J12345678-9", "J-1234567-9",
         "J-12345678-99", "j-12345678-9", "123456789", "J-12345678-9\n"],
    )
    def test_rejected(self, rif):
        assert not is_valid_rif_format(rif)


class TestCleanAndFormat:
    def test_clean(self):
        assert clean_tax_id("j-1234 5678-9") == "J123456789"
        assert clean_tax_id(None) == ""

    def test_format_from_loose_input(self):
        assert format_tax_id("j123456789") == "J-12345678-9"

    def test_format_digits_with_prefix(self):
        assert format_tax_id("123456789", prefix="J") == "J-12345678-9"

    def test_unformattable_returned_unchanged(self):
        assert format_tax_id("ABC") == "ABC"
        assert format_tax_id("123456789") == "123456789"

    def test_round_trip(self):
        digits = normalize_tax_id("V-98765432-1")
        assert normalize_tax_id(format_tax_id(digits, prefix="V")) == digits


class TestCheckDigit:
    def test_known_values(self):
        # J: 3*4 + 1*3 + 2*2 + 3*7 + 4*6 + 5*5 + 6*4 + 7*3 + 8*2 = 150; 150 % 11 = 7
        assert compute_check_digit("J", "12345678") == 4
        # V: 1*4 + 9*3 + 8*2 + 7*7 + 6*6 + 5*5 + 4*4 + 3*3 + 2*2 = 186; 186 % 11 = 10
        assert compute_check_digit("V", "98765432") == 1

    def test_unknown_prefix(self):
        with pytest.raises(ValueError):
            compute_check_digit("X", "12345678")

    def test_bad_body(self):
        with pytest.raises(ValueError):
            compute_check_digit("J", "1234567")


class TestValidateTaxId:
    def test_valid(self):
        result = validate_tax_id("j-12345678-4")
        assert result.is_valid
        assert result.formatted == "J-12345678-4"
        assert result.taxpayer_type == "Persona Jurídica"
        assert result.errors == ()

    def test_wrong_check_digit(self):
        result = validate_tax_id("J-12345678-9")
        assert not result.is_valid
        assert "El dígito de control es incorrecto" in result.errors

    def test_required(self):
        result = validate_tax_id("")
        assert not result.is_valid
        assert result.errors == ("El RIF es obligatorio",)

    def test_length(self):
        result = validate_tax_id("J-1234-5")
        assert not result.is_valid
        assert "10 caracteres" in result.errors[0]

    def test_unknown_prefix(self):
        result = validate_tax_id("X-12345678-9")
        assert not result.is_valid
        assert result.errors[0].startswith("Tipo de RIF inválido")
