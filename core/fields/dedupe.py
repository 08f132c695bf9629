"""Drop repeated (label, value) pairs from display output."""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable

from core.fields.models import DisplayField, SectionView


def comparison_key(text: str) -> str:
    """Uppercase, strip diacritics and surrounding whitespace."""

    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.strip().upper()


def dedupe_fields(
    fields: Iterable[DisplayField], seen: set[tuple[str, str]] | None = None
) -> list[DisplayField]:
    """Keep the first field for every normalized (label, value) pair."""

    seen_keys = seen if seen is not None else set()
    kept: list[DisplayField] = []
    for field in fields:
        key = (comparison_key(field.label), comparison_key(field.value))
        if key in seen_keys:
            continue
        seen_keys.add(key)
        kept.append(field)
    return kept


def dedupe_sections(sections: Iterable[SectionView]) -> list[SectionView]:
    """Dedupe across all sections in order; sections left empty are dropped."""

    seen: set[tuple[str, str]] = set()
    result: list[SectionView] = []
    for section in sections:
        fields = dedupe_fields(section.fields, seen)
        if fields:
            result.append(SectionView(title=section.title, fields=fields))
    return result
