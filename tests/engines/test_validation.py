"""
Tests for the Validation Engine.

Covers:
- Common rules (document number, RIF, date, amounts)
- IVA percentage, retention arithmetic and control number
- ISLR concept catalog, statutory rate and arithmetic
- Line numbering and error collection
- Period and agent-configuration validation
"""

from datetime import date
from decimal import Decimal

import pytest

from retention_engines.rules import RetentionRules, default_rules
from retention_engines.validation import (
    RetentionLine,
    expected_islr_retention,
    expected_iva_retention,
    validate_agent_configuration,
    validate_batch,
    validate_islr_batch,
    validate_iva_batch,
    validate_period,
)
from retention_kernel.domain.models import AgentConfiguration, TaxType


def _has(messages, fragment):
    return any(fragment in m for m in messages)


class TestExpectedAmounts:
    def test_iva(self):
        assert expected_iva_retention(Decimal("100000"), Decimal("75")) == Decimal("12000")
        assert expected_iva_retention(Decimal("250000"), Decimal("100")) == Decimal("40000")

    def test_islr(self):
        assert expected_islr_retention(Decimal("50000"), Decimal("6")) == Decimal("3000")


class TestCommonRules:
    def test_valid_iva_line(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction()], TaxType.IVA)
        assert result.is_valid
        assert result.errors == ()
        assert result.warnings == ()

    def test_document_number_required(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(document_number="")], TaxType.IVA)
        assert result.errors == ("Línea 1: Número de documento es requerido",)

    def test_document_number_too_short(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(document_number="F1")], TaxType.IVA)
        assert _has(result.errors, "al menos 3 caracteres")

    def test_document_number_charset(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(document_number="FAC;001")], TaxType.IVA)
        assert _has(result.errors, "Número de documento contiene caracteres inválidos")

    @pytest.mark.parametrize("number", ["FAC-001\n", "FAC-001\r\n", " FAC-001", "FAC-001 "])
    def test_document_number_line_break_or_padding(self, make_iva_transaction, number):
        result = validate_batch([make_iva_transaction(document_number=number)], TaxType.IVA)
        assert result.errors == ("Línea 1: Número de documento contiene caracteres inválidos",)

    def test_whitespace_document_number_is_missing(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(document_number="   ")], TaxType.IVA)
        assert result.errors == ("Línea 1: Número de documento es requerido",)

    def test_document_number_problems_share_one_error(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(document_number="F;")], TaxType.IVA)
        assert result.errors == (
            "Línea 1: Número de documento debe tener al menos 3 caracteres, "
            "Número de documento contiene caracteres inválidos",
        )

    def test_invalid_rif(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(counterparty_rif="98765432")], TaxType.IVA)
        assert result.errors == ("Línea 1: RIF del proveedor inválido",)

    @pytest.mark.parametrize("bad_date", ["2025-02-30", "15/01/2025", ""])
    def test_invalid_date(self, make_iva_transaction, bad_date):
        result = validate_batch([make_iva_transaction(transaction_date=bad_date)], TaxType.IVA)
        assert result.errors == ("Línea 1: Fecha inválida",)

    def test_date_object_accepted(self, make_iva_transaction):
        result = validate_batch(
            [make_iva_transaction(transaction_date=date(2025, 1, 15))], TaxType.IVA
        )
        assert result.is_valid

    def test_total_must_be_positive(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(total_amount=Decimal("0"))], TaxType.IVA)
        assert _has(result.errors, "Monto total debe ser mayor a 0")

    def test_negative_base_is_error(self, make_iva_transaction):
        tx = make_iva_transaction(taxable_base=Decimal("-1"), retention_amount=Decimal("-0.12"))
        result = validate_batch([tx], TaxType.IVA)
        assert _has(result.errors, "Base imponible no puede ser negativa")

    def test_base_above_total_is_warning(self, make_iva_transaction):
        tx = make_iva_transaction(total_amount=Decimal("90000"))
        result = validate_batch([tx], TaxType.IVA)
        assert result.is_valid
        assert result.warnings == ("Línea 1: Base imponible mayor al monto total",)


class TestIvaRules:
    def test_spec_amounts_validate(self, make_iva_transaction):
        batch = [
            make_iva_transaction(),
            make_iva_transaction(
                document_number="FAC-002",
                taxable_base=Decimal("250000"),
                total_amount=Decimal("290000"),
                retention_percentage=Decimal("100"),
                retention_amount=Decimal("40000"),
            ),
        ]
        assert validate_batch(batch, TaxType.IVA).is_valid

    def test_percentage_must_be_allowed(self, make_iva_transaction):
        tx = make_iva_transaction(retention_percentage=Decimal("50"), retention_amount=Decimal("8000"))
        result = validate_batch([tx], TaxType.IVA)
        assert result.errors == ("Línea 1: Porcentaje de retención debe ser 75% o 100%",)

    def test_incorrect_retention(self, make_iva_transaction):
        tx = make_iva_transaction(retention_amount=Decimal("12500"))
        result = validate_batch([tx], TaxType.IVA)
        assert len(result.errors) == 1
        assert "calculado incorrectamente" in result.errors[0]
        assert "esperado 12000.00" in result.errors[0]

    def test_retention_within_tolerance(self, make_iva_transaction):
        tx = make_iva_transaction(retention_amount=Decimal("12000.01"))
        assert validate_batch([tx], TaxType.IVA).is_valid

    def test_retention_just_outside_tolerance(self, make_iva_transaction):
        tx = make_iva_transaction(retention_amount=Decimal("12000.02"))
        assert not validate_batch([tx], TaxType.IVA).is_valid

    def test_malformed_control_number_is_error(self, make_iva_transaction):
        tx = make_iva_transaction(control_number="12345678")
        result = validate_batch([tx], TaxType.IVA)
        assert result.errors == (
            "Línea 1: Formato de número de control inválido (debe ser XX-XXXXXXXX)",
        )

    @pytest.mark.parametrize("control", ["00-12345678\n", "00-12345678\r\n"])
    def test_control_number_with_line_break_is_error(self, make_iva_transaction, control):
        result = validate_batch([make_iva_transaction(control_number=control)], TaxType.IVA)
        assert result.errors == (
            "Línea 1: Formato de número de control inválido (debe ser XX-XXXXXXXX)",
        )

    def test_missing_control_number_is_warning(self, make_iva_transaction):
        result = validate_batch([make_iva_transaction(control_number=None)], TaxType.IVA)
        assert result.is_valid
        assert result.warnings == (
            "Línea 1: Número de control recomendado para trazabilidad fiscal",
        )


class TestIslrRules:
    def test_valid_line(self, make_islr_transaction):
        result = validate_batch([make_islr_transaction()], TaxType.ISLR)
        assert result.is_valid
        assert result.warnings == ()

    @pytest.mark.parametrize("code", ["009", "", None, "1"])
    def test_unknown_concept(self, make_islr_transaction, code):
        result = validate_batch([make_islr_transaction(concept_code=code)], TaxType.ISLR)
        assert result.errors == ("Línea 1: Código de concepto ISLR inválido",)

    def test_rate_must_match_concept(self, make_islr_transaction):
        tx = make_islr_transaction(retention_percentage=Decimal("3"), retention_amount=Decimal("1500"))
        result = validate_batch([tx], TaxType.ISLR)
        assert result.errors == (
            "Línea 1: Porcentaje de retención no corresponde al concepto 001 (debe ser 6%)",
        )

    @pytest.mark.parametrize(
        "code, rate",
        [("001", "6"), ("002", "3"), ("003", "2"), ("004", "3"),
         ("005", "2"), ("006", "2"), ("007", "6"), ("008", "3")],
    )
    def test_catalog_rates(self, make_islr_transaction, code, rate):
        pct = Decimal(rate)
        tx = make_islr_transaction(
            concept_code=code,
            retention_percentage=pct,
            retention_amount=Decimal("50000") * pct / 100,
        )
        assert validate_batch([tx], TaxType.ISLR).is_valid

    def test_incorrect_retention(self, make_islr_transaction):
        tx = make_islr_transaction(retention_amount=Decimal("2999.98"))
        result = validate_batch([tx], TaxType.ISLR)
        assert _has(result.errors, "Monto de retención calculado incorrectamente")

    def test_control_number_not_required(self, make_islr_transaction):
        result = validate_batch([make_islr_transaction(control_number=None)], TaxType.ISLR)
        assert result.warnings == ()


class TestBatchBehaviour:
    def test_errors_collected_across_lines(self, make_iva_transaction):
        batch = [
            make_iva_transaction(counterparty_rif="bad"),
            make_iva_transaction(),
            make_iva_transaction(transaction_date="nope", document_number=""),
        ]
        result = validate_batch(batch, TaxType.IVA)
        assert result.errors == (
            "Línea 1: RIF del proveedor inválido",
            "Línea 3: Número de documento es requerido",
            "Línea 3: Fecha inválida",
        )

    def test_empty_batch_is_valid(self):
        assert validate_batch([], TaxType.IVA).is_valid

    def test_idempotent(self, make_iva_transaction):
        batch = [make_iva_transaction(control_number=None), make_iva_transaction(counterparty_rif="x")]
        assert validate_batch(batch, TaxType.IVA) == validate_batch(batch, TaxType.IVA)

    def test_lines_api(self):
        line = RetentionLine(
            document_number="FAC-1",
            counterparty_rif="V-98765432-1",
            transaction_date="2025-01-15",
            total_amount=Decimal("100"),
            taxable_base=Decimal("100"),
            retention_percentage=Decimal("100"),
            retention_amount=Decimal("16"),
            control_number="01-00000001",
        )
        assert validate_iva_batch([line]).is_valid
        assert not validate_islr_batch([line]).is_valid

    def test_custom_rules(self, make_iva_transaction):
        rules = RetentionRules(iva_retention_percentages=frozenset({Decimal("75")}))
        tx = make_iva_transaction(retention_percentage=Decimal("100"), retention_amount=Decimal("16000"))
        result = validate_batch([tx], TaxType.IVA, rules)
        assert result.errors == ("Línea 1: Porcentaje de retención debe ser 75%",)

    def test_engine_trace_emitted(self, captured_logs, make_iva_transaction):
        validate_batch([make_iva_transaction()], TaxType.IVA)
        traces = [r for r in captured_logs() if r["message"] == "RETENTION_ENGINE_TRACE"]
        assert traces[0]["engine_name"] == "iva_validation"
        assert len(traces[0]["input_fingerprint"]) == 16


class TestValidatePeriod:
    TODAY = date(2025, 2, 5)

    def test_current_and_previous(self):
        assert validate_period("2025-01", self.TODAY) == validate_period("2025-02", self.TODAY)
        assert validate_period("2025-01", self.TODAY).is_valid

    @pytest.mark.parametrize("period", ["2025-13", "2025-01\n", "2025-01\r\n"])
    def test_malformed(self, period):
        result = validate_period(period, self.TODAY)
        assert result.errors == ("Formato de período inválido (debe ser YYYY-MM)",)

    def test_year_floor(self):
        result = validate_period("2019-12", self.TODAY)
        assert result.errors == ("Año debe estar entre 2020 y 2026",)

    def test_year_ceiling(self):
        assert not validate_period("2027-01", self.TODAY).is_valid

    def test_next_month_no_warning(self):
        assert validate_period("2025-03", self.TODAY).warnings == ()

    def test_future_warning(self):
        result = validate_period("2025-04", self.TODAY)
        assert result.is_valid
        assert result.warnings == ("Período futuro, verifique la fecha",)

    def test_old_period_warning(self):
        rules = RetentionRules(min_fiscal_year=2000)
        result = validate_period("2019-06", self.TODAY, rules)
        assert result.is_valid
        assert result.warnings == ("Período muy antiguo (más de 5 años)",)


class TestValidateAgentConfiguration:
    def test_valid(self, agent_config):
        assert validate_agent_configuration(agent_config) == validate_agent_configuration(agent_config)
        result = validate_agent_configuration(agent_config)
        assert result.errors == ()
        assert result.warnings == ()

    def test_errors(self):
        config = AgentConfiguration("J123", "AB", "20250800000001", agent_address="Caracas")
        result = validate_agent_configuration(config)
        assert result.errors == (
            "RIF de la empresa inválido",
            "Nombre de empresa debe tener al menos 3 caracteres",
            "Dirección debe ser más específica (mínimo 10 caracteres)",
        )

    def test_contact_warnings(self, agent_config):
        config = AgentConfiguration(
            agent_config.agent_rif,
            agent_config.agent_name,
            agent_config.voucher_template,
            agent_address=agent_config.agent_address,
            phone="12345",
            email="not-an-email",
        )
        result = validate_agent_configuration(config)
        assert result.is_valid
        assert result.warnings == (
            "Formato de email inválido",
            "Formato de teléfono venezolano inválido",
        )

    @pytest.mark.parametrize("phone", ["0212-5551234", "+58-412-1234567", "04141234567"])
    def test_accepted_phones(self, agent_config, phone):
        config = AgentConfiguration(
            agent_config.agent_rif,
            agent_config.agent_name,
            agent_config.voucher_template,
            agent_address=agent_config.agent_address,
            phone=phone,
        )
        assert validate_agent_configuration(config).warnings == ()


def test_default_rules_catalog():
    rules = default_rules()
    assert sorted(rules.islr_concepts) == [f"00{i}" for i in range(1, 9)]
    assert rules.islr_rate("007") == Decimal("6")
    assert rules.islr_rate("999") is None
