"""Explicit enum tables for fields that carry technical tokens."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class FieldEnum:
    """Closed set of wire tokens for one field and their display phrases."""

    name: str
    labels: Mapping[str, str]
    aliases: Mapping[str, str]

    def display(self, token: str) -> str | None:
        """Return the phrase for ``token`` or ``None`` when it is not a member."""

        key = token.strip().upper()
        key = self.aliases.get(key, key)
        return self.labels.get(key)


DEADLINE_CONDITION = FieldEnum(
    name="deadline_condition",
    labels=MappingProxyType(
        {
            "NO_PRAZO": "On time",
            "FORA_DO_PRAZO": "Late",
            "NAO_SE_APLICA": "Not applicable",
        }
    ),
    aliases=MappingProxyType(
        {
            "NAO_PRAZO": "NAO_SE_APLICA",
            "NAO_APLICA": "NAO_SE_APLICA",
            "ATRASADO": "FORA_DO_PRAZO",
        }
    ),
)


QUANTITY_CONDITION = FieldEnum(
    name="quantity_condition",
    labels=MappingProxyType(
        {
            "TOTAL": "Total",
            "PARCIAL": "Partial",
            "DIVERGENCIA_SUPERIOR": "Above commitment",
            "NAO_SE_APLICA": "Not applicable",
        }
    ),
    aliases=MappingProxyType(
        {
            "NAO_APLICA": "NAO_SE_APLICA",
            "CONFORME_EMPENHO": "TOTAL",
            "MENOR": "PARCIAL",
            "MAIOR": "DIVERGENCIA_SUPERIOR",
        }
    ),
)


DEADLINE_BASIS = FieldEnum(
    name="deadline_basis",
    labels=MappingProxyType(
        {
            "DATA_RECEBIMENTO": "Receipt date",
            "DATA_ENTREGA": "Delivery date",
            "DATA_CONCLUSAO_SERVICO": "Service completion",
            "INICIO_SERVICO": "Service start",
            "NF": "Invoice",
        }
    ),
    aliases=MappingProxyType(
        {"SERVICO": "DATA_CONCLUSAO_SERVICO", "SERVIÇO": "DATA_CONCLUSAO_SERVICO"}
    ),
)


CONTRACT_TYPE = FieldEnum(
    name="contract_type",
    labels=MappingProxyType(
        {
            "BENS": "Goods",
            "SERVICOS": "Services",
            "OBRA": "Works",
        }
    ),
    aliases=MappingProxyType({"SERVIÇOS": "SERVICOS", "OBRAS": "OBRA"}),
)


DUE_DATE_RULE = FieldEnum(
    name="due_date_rule",
    labels=MappingProxyType(
        {
            "DIAS_CORRIDOS": "Calendar days",
            "DIA_FIXO": "Fixed day of month",
        }
    ),
    aliases=MappingProxyType({}),
)


FIELD_ENUMS: Mapping[str, FieldEnum] = MappingProxyType(
    {
        "condicao_prazo": DEADLINE_CONDITION,
        "condicao_quantidade": QUANTITY_CONDITION,
        "condicao_quantidade_ordem": QUANTITY_CONDITION,
        "condicao_quantidade_nf": QUANTITY_CONDITION,
        "tipo_base_prazo": DEADLINE_BASIS,
        "tipo_contrato": CONTRACT_TYPE,
        "tipo_contratacao": CONTRACT_TYPE,
        "vencimento_tipo": DUE_DATE_RULE,
    }
)
