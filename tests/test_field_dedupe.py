from __future__ import annotations

from core.fields.dedupe import comparison_key, dedupe_fields, dedupe_sections
from core.fields.models import DisplayField, SectionView


def _field(name: str, label: str, value: str) -> DisplayField:
    return DisplayField(field_name=name, label=label, value=value)


def test_comparison_key_ignores_case_accents_and_padding() -> None:
    assert comparison_key("  Condição ") == "CONDICAO"
    assert comparison_key("On time") == comparison_key("ON TIME")


def test_dedupe_keeps_first_occurrence_in_order() -> None:
    fields = [
        _field("condicao_prazo", "Deadline Condition", "On time"),
        _field("numero_nf", "Invoice Number", "123"),
        _field("condicao_prazo_legacy", "Deadline Condition", "on time "),
        _field("numero_nf_2", "Invoice Number", "124"),
    ]

    kept = dedupe_fields(fields)

    assert [field.field_name for field in kept] == [
        "condicao_prazo",
        "numero_nf",
        "numero_nf_2",
    ]


def test_same_value_under_different_labels_is_kept() -> None:
    fields = [
        _field("data_entrega", "Delivery Date", "10/01/2025"),
        _field("data_recebimento", "Receipt Date", "10/01/2025"),
    ]

    assert len(dedupe_fields(fields)) == 2


def test_dedupe_sections_shares_seen_keys_and_drops_emptied_sections() -> None:
    sections = [
        SectionView(
            title="FISCAL DOCUMENT",
            fields=[_field("valor_efetivo_numero", "Effective Amount", "R$ 1.250,00")],
        ),
        SectionView(
            title="OTHER",
            fields=[_field("valor_efetivo", "Effective Amount", "R$ 1.250,00")],
        ),
    ]

    result = dedupe_sections(sections)

    assert [section.title for section in result] == ["FISCAL DOCUMENT"]
