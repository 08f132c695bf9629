from __future__ import annotations

import pytest

from core.fields.normalizer import (
    NOT_INFORMED,
    PLACEHOLDER_TOKENS,
    display_value,
    format_brl,
    format_quantity,
    is_meaningful,
    normalize_value,
    parse_decimal,
)


@pytest.mark.parametrize("token", sorted(PLACEHOLDER_TOKENS))
def test_placeholder_tokens_render_not_informed(token: str) -> None:
    assert normalize_value(token) == NOT_INFORMED
    assert normalize_value(token.lower()) == NOT_INFORMED
    assert normalize_value(f"  {token}. ") == NOT_INFORMED


@pytest.mark.parametrize("value", [None, "", "   ", "\t"])
def test_empty_values_render_not_informed(value: str | None) -> None:
    assert normalize_value(value) == NOT_INFORMED
    assert not is_meaningful(value)


def test_enum_fields_map_tokens_and_pass_unknown_tokens_through() -> None:
    assert normalize_value("NO_PRAZO", "condicao_prazo") == "On time"
    assert normalize_value(" fora_do_prazo ", "condicao_prazo") == "Late"
    assert normalize_value("ATRASADO", "condicao_prazo") == "Late"
    assert normalize_value("PARCIAL", "condicao_quantidade_ordem") == "Partial"
    assert normalize_value("SERVIÇO", "tipo_base_prazo") == "Service completion"
    assert normalize_value("EM_ANALISE", "condicao_prazo") == "EM_ANALISE"


def test_enum_tokens_are_not_mapped_outside_their_field() -> None:
    assert normalize_value("NO_PRAZO") == "NO_PRAZO"
    assert normalize_value("NO_PRAZO", "observacoes") == "NO_PRAZO"


def test_money_fields_use_brl_format() -> None:
    assert normalize_value(1250, "valor_efetivo_numero") == "R$ 1.250,00"
    assert normalize_value("1.250,00", "valor_efetivo") == "R$ 1.250,00"
    assert normalize_value("R$ 120,5", "valor_unitario") == "R$ 120,50"
    assert normalize_value("44080.00", "valor_total_geral") == "R$ 44.080,00"
    assert normalize_value(-5, "valor_total_calculado") == "-R$ 5,00"


def test_unparseable_money_text_passes_through() -> None:
    assert normalize_value("to be confirmed", "valor_efetivo") == "to be confirmed"


def test_quantity_fields_use_pt_br_grouping() -> None:
    assert normalize_value(2, "quantidade_recebida") == "2"
    assert normalize_value(1234.5, "quantidade_recebida") == "1.234,5"
    assert normalize_value("0,25", "quantidade_recebida") == "0,25"


def test_booleans_and_plain_numbers() -> None:
    assert normalize_value(True) == "Yes"
    assert normalize_value(False) == "No"
    assert normalize_value(1250.0) == "1250"
    assert normalize_value(12.5) == "12.5"
    assert normalize_value(0) == "0"
    assert is_meaningful(0)
    assert is_meaningful(False)


@pytest.mark.parametrize(
    ("value", "field_name"),
    [
        ("NO_PRAZO", "condicao_prazo"),
        ("nao informado", None),
        ("1.250,00", "valor_efetivo"),
        ("R$ 3.500,00", "valor_unitario"),
        ("1234", "quantidade_recebida"),
        ("1.234,5", "quantidade_recebida"),
        ("  058/2025  ", "numero_contrato"),
        ("DIA_FIXO", "vencimento_tipo"),
        ("N/A.", None),
        ("-0,004", "valor_efetivo"),
        ("R$ -0,001", "valor_efetivo"),
    ],
)
def test_normalize_is_idempotent(value: str, field_name: str | None) -> None:
    once = normalize_value(value, field_name)
    assert normalize_value(once, field_name) == once


def test_display_value_joins_scalar_lists_and_rejects_objects() -> None:
    assert display_value(["a", " ", "N/A", "b"]) == "a, b"
    assert display_value([]) == NOT_INFORMED
    assert display_value({"nested": 1}) == NOT_INFORMED
    assert display_value(float("nan")) == NOT_INFORMED


def test_parse_decimal_variants() -> None:
    assert parse_decimal("R$ 1.250,00") == 1250.0
    assert parse_decimal("12.345.678") == 12345678.0
    assert parse_decimal("3.5") == 3.5
    assert parse_decimal("abc") is None
    assert parse_decimal(True) is None
    assert format_brl(0.5) == "R$ 0,50"
    assert format_quantity(0.0) == "0"
