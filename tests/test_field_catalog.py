from __future__ import annotations

import pytest

from core.fields.catalog import (
    OTHER_SECTION_TITLE,
    FieldCatalog,
    TRD_CATALOG,
    TRP_CATALOG,
    get_catalog,
    humanize_identifier,
    supported_kinds,
)


def test_supported_kinds_are_sorted() -> None:
    assert supported_kinds() == ["trd", "trp"]


def test_get_catalog_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="Unsupported document kind: dfd"):
        get_catalog("dfd")


def test_trp_sections_in_display_order() -> None:
    titles = [section.title for section in TRP_CATALOG.sections]
    assert titles == [
        "IDENTIFICATION",
        "RECEIPT ITEMS",
        "FISCAL DOCUMENT",
        "REGIME AND EXECUTION",
        "RECEIPT CONDITIONS",
        "NOTES",
        "SIGNATURES",
    ]
    assert OTHER_SECTION_TITLE not in titles


@pytest.mark.parametrize("catalog", [TRP_CATALOG, TRD_CATALOG])
def test_each_field_belongs_to_one_section(catalog: FieldCatalog) -> None:
    declared = catalog.declared_fields()
    assert len(declared) == len(set(declared))
    assert catalog.always_show <= set(declared)


def test_labels_fall_back_to_humanized_identifier() -> None:
    assert TRP_CATALOG.label_for("numero_nf") == "Invoice Number"
    assert TRP_CATALOG.label_for("local_entrega") == "Local Entrega"
    assert humanize_identifier("numero_nf") == "Numero Nf"
    assert humanize_identifier("__x__y") == "X Y"


def test_ignored_fields_and_prefixes() -> None:
    assert TRP_CATALOG.is_ignored("runId")
    assert TRP_CATALOG.is_ignored("created_at")
    assert TRP_CATALOG.is_ignored("prazos_calculados")
    assert TRP_CATALOG.is_ignored("valor_total_itens")
    assert not TRP_CATALOG.is_ignored("numero_contrato")


def test_enum_lookup_is_explicit_per_field() -> None:
    assert TRP_CATALOG.enum_for("condicao_prazo") is not None
    assert TRP_CATALOG.enum_for("numero_contrato") is None
