"""Convert raw field values into display-safe strings.

Rules, in order:

- ``None``, blank strings and known placeholder tokens render as
  ``NOT_INFORMED``.
- Fields with an explicit enum table map their token to a phrase; tokens
  outside the table pass through trimmed.
- Money and quantity fields are formatted the pt-BR way (``R$ 1.250,00``).
- Booleans render as Yes/No, other numbers as plain strings.

Every rule maps its own output to itself, so ``normalize_value`` is
idempotent on strings.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping

from core.fields.enums import FIELD_ENUMS, FieldEnum

NOT_INFORMED = "Not informed"

PLACEHOLDER_TOKENS = frozenset(
    {
        "UNDECLARED",
        "NOT_DECLARED",
        "NOT DECLARED",
        "NOT_INFORMED",
        "NOT INFORMED",
        "N/A",
        "NAO_DECLARADO",
        "NÃO_DECLARADO",
        "NAO DECLARADO",
        "NÃO DECLARADO",
        "NAO_INFORMADO",
        "NÃO_INFORMADO",
        "NAO INFORMADO",
        "NÃO INFORMADO",
    }
)

MONEY_FIELDS = frozenset(
    {
        "valor_unitario",
        "valor_unitario_num",
        "valor_total_calculado",
        "valor_total_geral",
        "valor_efetivo",
        "valor_efetivo_numero",
    }
)

QUANTITY_FIELDS = frozenset({"quantidade_recebida"})

_CURRENCY_PREFIX = re.compile(r"[Rr]\$\s?")
_NON_NUMERIC = re.compile(r"[^0-9,.\-]")
_DOT_GROUPED = re.compile(r"^-?\d{1,3}(\.\d{3})+$")

Scalar = str | int | float | bool | None


def is_placeholder(text: str) -> bool:
    """Return True for blank text or a known "no data" token."""

    candidate = text.strip()
    if not candidate:
        return True
    candidate = candidate.rstrip(".").strip().upper()
    return not candidate or candidate in PLACEHOLDER_TOKENS


def normalize_value(
    value: Scalar,
    field_name: str | None = None,
    *,
    enums: Mapping[str, FieldEnum] = FIELD_ENUMS,
) -> str:
    """Return the display string for one scalar value."""

    if value is None:
        return NOT_INFORMED
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, int | float):
        return _normalize_number(value, field_name)

    raw = str(value).strip()
    if is_placeholder(raw):
        return NOT_INFORMED

    if field_name is not None:
        formatted = _format_measure(field_name, raw)
        if formatted is not None:
            return formatted

        field_enum = enums.get(field_name)
        if field_enum is not None:
            mapped = field_enum.display(raw)
            if mapped is not None:
                return mapped

    return raw


def is_meaningful(
    value: object,
    field_name: str | None = None,
    *,
    enums: Mapping[str, FieldEnum] = FIELD_ENUMS,
) -> bool:
    """Return True when a raw value carries displayable data."""

    if value is None:
        return False
    if isinstance(value, bool | int | float):
        return not (isinstance(value, float) and not math.isfinite(value))
    if isinstance(value, str):
        return normalize_value(value, field_name, enums=enums) != NOT_INFORMED
    if isinstance(value, list | tuple):
        return any(is_meaningful(item, enums=enums) for item in value)
    if isinstance(value, Mapping):
        return len(value) > 0
    return False


def display_value(
    value: object,
    field_name: str | None = None,
    *,
    enums: Mapping[str, FieldEnum] = FIELD_ENUMS,
) -> str:
    """Render scalars and lists of scalars; anything else is not displayable."""

    if isinstance(value, list | tuple):
        rendered = [
            normalize_value(item, field_name, enums=enums)
            for item in value
            if _is_scalar(item) and is_meaningful(item, field_name, enums=enums)
        ]
        return ", ".join(rendered) if rendered else NOT_INFORMED
    if _is_scalar(value):
        if isinstance(value, float) and not math.isfinite(value):
            return NOT_INFORMED
        return normalize_value(value, field_name, enums=enums)  # type: ignore[arg-type]
    return NOT_INFORMED


def parse_decimal(value: object) -> float | None:
    """Parse ``1250``, ``"1.250,00"``, ``"R$ 120,00"`` or ``"44080.00"``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None

    text = str(value).replace("\u00a0", " ").strip()
    if is_placeholder(text):
        return None
    text = _CURRENCY_PREFIX.sub("", text)
    text = _NON_NUMERIC.sub("", text)
    if not text or text in {"-", ".", ","}:
        return None

    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif _DOT_GROUPED.match(text):
        text = text.replace(".", "")
    try:
        parsed = float(text)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def format_brl(amount: float) -> str:
    """``1250.0`` -> ``R$ 1.250,00``."""

    rounded = round(amount, 2)
    sign = "-" if rounded < 0 else ""
    return f"{sign}R$ {_swap_separators(f'{abs(rounded):,.2f}')}"


def format_quantity(amount: float) -> str:
    """pt-BR grouping with at most four decimals: ``1234.5`` -> ``1.234,5``."""

    text = f"{amount:,.4f}".rstrip("0").rstrip(".")
    if text in {"-0", ""}:
        text = "0"
    return _swap_separators(text)


def _normalize_number(value: int | float, field_name: str | None) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        return NOT_INFORMED
    if field_name is not None:
        formatted = _format_measure(field_name, value)
        if formatted is not None:
            return formatted
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_measure(field_name: str, raw: object) -> str | None:
    key = field_name.strip().lower()
    if key not in MONEY_FIELDS and key not in QUANTITY_FIELDS:
        return None

    amount = parse_decimal(raw)
    if amount is None:
        return None
    if key in MONEY_FIELDS:
        return format_brl(amount)
    return format_quantity(amount)


def _swap_separators(text: str) -> str:
    return text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, str | int | float | bool)
