"""Group a field record into ordered display sections."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from core.fields.catalog import OTHER_SECTION_TITLE, FieldCatalog
from core.fields.models import DisplayField, FieldRecord, SectionView
from core.fields.normalizer import (
    NOT_INFORMED,
    display_value,
    is_meaningful,
    normalize_value,
)

ITEMS_FIELD = "itens_objeto"
BASE_DATE_FIELD = "data_base_calculo"
EXECUTION_DATES_FIELD = "regime_execucao_datas_exibicao"
DEADLINE_BASIS_FIELD = "tipo_base_prazo"

# Superseded by the base date / execution date summary when it is present.
TECHNICAL_DATE_FIELDS = frozenset(
    {
        "data_recebimento",
        "data_entrega",
        "data_conclusao_servico",
        "data_prevista_entrega_contrato",
        "data_entrega_real",
    }
)

_BASE_DATE_LABELS = {
    "DATA_ENTREGA": "Delivery Date",
    "DATA_CONCLUSAO_SERVICO": "Service Date",
    "SERVICO": "Service Date",
    "SERVIÇO": "Service Date",
    "DATA_RECEBIMENTO": "Receipt Date",
}

_WHITESPACE = re.compile(r"\s+")

StructuredRenderer = Callable[[FieldRecord, Any], str]


def organize_sections(record: FieldRecord, catalog: FieldCatalog) -> list[SectionView]:
    """Build catalog sections in declaration order plus a trailing OTHER section."""

    hide_technical_dates = has_date_summary(record)
    claimed: set[str] = set()
    result: list[SectionView] = []

    for section in catalog.sections:
        fields: list[DisplayField] = []
        for field_name in section.field_names:
            if field_name in claimed:
                continue
            claimed.add(field_name)
            if hide_technical_dates and field_name in TECHNICAL_DATE_FIELDS:
                continue

            value = _render_field(record, field_name, catalog)
            always_show = field_name in catalog.always_show
            if value == NOT_INFORMED and not always_show:
                continue

            fields.append(
                DisplayField(
                    field_name=field_name,
                    label=_label_for(record, catalog, field_name),
                    value=value,
                    should_display=value != NOT_INFORMED,
                )
            )

        if fields:
            result.append(SectionView(title=section.title, fields=fields))

    other_fields: list[DisplayField] = []
    for field_name in sorted(record):
        if field_name in claimed or catalog.is_ignored(field_name):
            continue
        if hide_technical_dates and field_name in TECHNICAL_DATE_FIELDS:
            continue

        raw = record[field_name]
        if isinstance(raw, Mapping) or not is_meaningful(raw, field_name, enums=catalog.enums):
            continue
        value = display_value(raw, field_name, enums=catalog.enums)
        if value == NOT_INFORMED:
            continue
        other_fields.append(
            DisplayField(field_name=field_name, label=catalog.label_for(field_name), value=value)
        )

    if other_fields:
        result.append(SectionView(title=OTHER_SECTION_TITLE, fields=other_fields))

    return result


def has_date_summary(record: FieldRecord) -> bool:
    """True when the record carries the base date or the execution date list."""

    return is_meaningful(record.get(BASE_DATE_FIELD), BASE_DATE_FIELD) or bool(
        _execution_dates(record, record.get(EXECUTION_DATES_FIELD))
    )


def render_items(record: FieldRecord, raw: Any) -> str:
    """Render receipt line items as ``desc: qty unit x unit price = total``."""

    if not isinstance(raw, list | tuple):
        return NOT_INFORMED

    lines: list[str] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        description = str(item.get("descricao") or "").strip()
        if not description:
            continue

        parts: list[str] = []
        quantity = item.get("quantidade_recebida")
        if is_meaningful(quantity):
            quantity_text = normalize_value(quantity, "quantidade_recebida")
            unit = str(item.get("unidade_medida") or "").strip()
            parts.append(f"{quantity_text} {unit}".strip())

        unit_price = _first_present(
            item, ("valor_unitario_num", "valor_unitario", "valor_unitario_raw")
        )
        if unit_price is not None:
            parts.append(f"x {normalize_value(unit_price, 'valor_unitario')}")

        total = item.get("valor_total_calculado")
        if is_meaningful(total):
            parts.append(f"= {normalize_value(total, 'valor_total_calculado')}")

        lines.append(f"{description}: {' '.join(parts)}" if parts else description)

    return "; ".join(lines) if lines else NOT_INFORMED


def render_execution_dates(record: FieldRecord, raw: Any) -> str:
    """Render the execution date list as ``label: value; label: value``."""

    entries = _execution_dates(record, raw)
    if not entries:
        if isinstance(raw, list | tuple):
            return NOT_INFORMED
        return display_value(raw, EXECUTION_DATES_FIELD)
    return "; ".join(f"{label}: {value}" for label, value in entries)


_STRUCTURED_RENDERERS: dict[str, StructuredRenderer] = {
    ITEMS_FIELD: render_items,
    EXECUTION_DATES_FIELD: render_execution_dates,
}


def _render_field(record: FieldRecord, field_name: str, catalog: FieldCatalog) -> str:
    raw = record.get(field_name)
    renderer = _STRUCTURED_RENDERERS.get(field_name)
    if renderer is not None:
        return renderer(record, raw)
    return display_value(raw, field_name, enums=catalog.enums)


def _label_for(record: FieldRecord, catalog: FieldCatalog, field_name: str) -> str:
    if field_name != BASE_DATE_FIELD:
        return catalog.label_for(field_name)
    basis = str(record.get(DEADLINE_BASIS_FIELD) or "").strip().upper()
    return _BASE_DATE_LABELS.get(basis, catalog.label_for(field_name))


def _execution_dates(record: FieldRecord, raw: Any) -> list[tuple[str, str]]:
    """Clean the date list: drop the base-date row and repeated values."""

    if not isinstance(raw, list | tuple):
        return []

    seen_values: set[str] = set()
    base = record.get(BASE_DATE_FIELD)
    if is_meaningful(base):
        seen_values.add(_clean_text(str(base)))

    entries: list[tuple[str, str]] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        label = _clean_text(str(item.get("label") or ""))
        value = _clean_text(str(item.get("value") or ""))
        if not label or not value or not is_meaningful(value):
            continue
        if label.lower() in {"data base do cálculo", "data base do calculo", "base date"}:
            continue
        if value in seen_values:
            continue
        seen_values.add(value)
        entries.append((label, value))
    return entries


def _clean_text(text: str) -> str:
    cleaned = _WHITESPACE.sub(" ", text).strip()
    return re.sub("data-base", "Data base", cleaned, flags=re.IGNORECASE)


def _first_present(item: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if is_meaningful(value):
            return value
    return None
