"""Display models for the field pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

FieldRecord = Mapping[str, Any]


class DisplayField(BaseModel):
    """One labelled value ready for a table or list renderer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field_name: str
    label: str
    value: str
    should_display: bool = True


class SectionView(BaseModel):
    """Ordered fields under one section title."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    fields: list[DisplayField] = Field(default_factory=list)


def parse_field_record(raw: object) -> FieldRecord:
    """Validate a decoded JSON object and freeze it as a field record."""

    if not isinstance(raw, Mapping):
        raise ValueError("field record must be a JSON object")

    record: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ValueError(f"field identifier must be a string: {key!r}")
        record[key] = _freeze_value(key, value)
    return MappingProxyType(record)


def _freeze_value(path: str, value: object) -> Any:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, list | tuple):
        return tuple(_freeze_value(f"{path}[{index}]", item) for index, item in enumerate(value))
    if isinstance(value, Mapping):
        frozen: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{path}: nested keys must be strings")
            frozen[key] = _freeze_value(f"{path}.{key}", item)
        return MappingProxyType(frozen)
    raise ValueError(f"{path}: unsupported value type {type(value).__name__}")
