"""Static field catalogs: labels, section membership and display policy."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from core.fields.enums import FIELD_ENUMS, FieldEnum

OTHER_SECTION_TITLE = "OTHER"


@dataclass(frozen=True)
class FieldSection:
    """Named group of field identifiers in display order."""

    title: str
    field_names: tuple[str, ...]


@dataclass(frozen=True)
class FieldCatalog:
    """Display contract for one document kind."""

    kind: str
    sections: tuple[FieldSection, ...]
    labels: Mapping[str, str]
    always_show: frozenset[str]
    ignored: frozenset[str]
    ignored_prefixes: tuple[str, ...]
    enums: Mapping[str, FieldEnum]

    def label_for(self, field_name: str) -> str:
        """Return the catalog label, falling back to a humanized identifier."""

        label = self.labels.get(field_name)
        if label:
            return label
        return humanize_identifier(field_name)

    def is_ignored(self, field_name: str) -> bool:
        if field_name in self.ignored:
            return True
        return any(field_name.startswith(prefix) for prefix in self.ignored_prefixes)

    def enum_for(self, field_name: str) -> FieldEnum | None:
        return self.enums.get(field_name)

    def declared_fields(self) -> list[str]:
        return [name for section in self.sections for name in section.field_names]


def humanize_identifier(field_name: str) -> str:
    """``numero_nf`` -> ``Numero Nf``."""

    words = [word for word in field_name.replace("_", " ").split(" ") if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


_RUN_METADATA_FIELDS = frozenset(
    {
        "id",
        "runId",
        "run_id",
        "status",
        "createdAt",
        "created_at",
        "updatedAt",
        "updated_at",
    }
)


TRP_CATALOG = FieldCatalog(
    kind="trp",
    sections=(
        FieldSection(
            title="IDENTIFICATION",
            field_names=(
                "numero_contrato",
                "processo_licitatorio",
                "numero_ordem_compra",
                "contratada",
                "fornecedor",
                "cnpj",
                "vigencia",
                "tipo_contrato",
                "objeto_contrato",
                "competencia_mes_ano",
            ),
        ),
        FieldSection(
            title="RECEIPT ITEMS",
            field_names=("itens_objeto", "valor_total_geral"),
        ),
        FieldSection(
            title="FISCAL DOCUMENT",
            field_names=(
                "numero_nf",
                "vencimento_nf",
                "numero_empenho",
                "valor_efetivo_formatado",
                "valor_efetivo_numero",
                "valor_efetivo",
            ),
        ),
        FieldSection(
            title="REGIME AND EXECUTION",
            field_names=(
                "tipo_base_prazo",
                "data_base_calculo",
                "regime_execucao_datas_exibicao",
                "data_recebimento",
                "data_entrega",
                "data_conclusao_servico",
                "data_prevista_entrega_contrato",
                "data_entrega_real",
            ),
        ),
        FieldSection(
            title="RECEIPT CONDITIONS",
            field_names=(
                "condicao_prazo",
                "condicao_quantidade",
                "condicao_quantidade_ordem",
                "condicao_quantidade_nf",
                "motivo_atraso",
                "comentarios_quantidade_ordem",
                "comentarios_quantidade_nf",
            ),
        ),
        FieldSection(
            title="NOTES",
            field_names=("observacoes", "observacoes_recebimento"),
        ),
        FieldSection(
            title="SIGNATURES",
            field_names=("fiscal_contrato_nome", "data_assinatura"),
        ),
    ),
    labels=MappingProxyType(
        {
            "fileName": "Term Name",
            "numero_contrato": "Contract Number",
            "processo_licitatorio": "Bidding Process",
            "numero_ordem_compra": "Purchase Order",
            "contratada": "Contractor",
            "fornecedor": "Supplier",
            "cnpj": "CNPJ",
            "vigencia": "Term of Validity",
            "tipo_contrato": "Contract Type",
            "tipo_contratacao": "Contract Type",
            "objeto_contrato": "Contract Object",
            "competencia_mes_ano": "Reference Period (Month/Year)",
            "itens_objeto": "Items Supplied / Services Rendered",
            "valor_total_itens": "Items Total",
            "valor_total_geral": "Grand Total",
            "objeto_fornecido": "Supplied Goods or Services",
            "unidade_medida": "Unit of Measure",
            "quantidade_recebida": "Quantity Received",
            "valor_unitario": "Unit Price",
            "valor_total_calculado": "Total Price",
            "numero_nf": "Invoice Number",
            "vencimento_nf": "Invoice Due Date",
            "numero_empenho": "Commitment Number",
            "valor_efetivo": "Effective Amount",
            "valor_efetivo_numero": "Effective Amount",
            "valor_efetivo_formatado": "Effective Amount",
            "tipo_base_prazo": "Deadline Basis",
            "data_base_calculo": "Calculation Base Date",
            "regime_execucao_datas_exibicao": "Execution Dates",
            "data_recebimento": "Receipt Date",
            "data_entrega": "Delivery Date",
            "data_conclusao_servico": "Service Completion Date",
            "data_prevista_entrega_contrato": "Contract Delivery Date",
            "data_entrega_real": "Actual Delivery Date",
            "condicao_prazo": "Deadline Condition",
            "condicao_quantidade": "Quantity Condition",
            "condicao_quantidade_ordem": "Quantity Condition (Order)",
            "condicao_quantidade_nf": "Quantity Condition (Invoice)",
            "motivo_atraso": "Reason for Delay",
            "comentarios_quantidade_ordem": "Comments (Order)",
            "comentarios_quantidade_nf": "Comments (Invoice)",
            "observacoes": "Notes",
            "observacoes_recebimento": "Receipt Notes",
            "fiscal_contrato_nome": "Contract Inspector",
            "area_demandante_nome": "Requesting Area",
            "data_assinatura": "Signature Date",
            "vencimento_tipo": "Due Date Rule",
        }
    ),
    always_show=frozenset(
        {
            "numero_contrato",
            "processo_licitatorio",
            "contratada",
            "numero_nf",
            "valor_efetivo_formatado",
            "condicao_prazo",
            "itens_objeto",
            "valor_total_geral",
        }
    ),
    ignored=_RUN_METADATA_FIELDS | {"valor_total_itens", "valor_total_itens_numero"},
    ignored_prefixes=("prazos",),
    enums=FIELD_ENUMS,
)


TRD_CATALOG = FieldCatalog(
    kind="trd",
    sections=(
        FieldSection(
            title="IDENTIFICATION",
            field_names=(
                "numero_contrato",
                "processo_licitatorio",
                "contratada",
                "objeto_contrato",
                "numero_nf",
                "trp_run_id",
                "trp_created_at",
            ),
        ),
        FieldSection(
            title="RESERVATIONS",
            field_names=("houve_ressalvas", "ressalvas_texto"),
        ),
        FieldSection(
            title="SIGNATURES",
            field_names=("fiscal_contrato_nome", "data_assinatura"),
        ),
    ),
    labels=MappingProxyType(
        {
            "numero_contrato": "Contract Number",
            "processo_licitatorio": "Bidding Process",
            "contratada": "Contractor",
            "objeto_contrato": "Contract Object",
            "numero_nf": "Invoice Number",
            "trp_run_id": "Provisional Term Run",
            "trp_created_at": "Provisional Term Date",
            "houve_ressalvas": "Reservations Recorded",
            "ressalvas_texto": "Reservations",
            "fiscal_contrato_nome": "Contract Inspector",
            "data_assinatura": "Signature Date",
        }
    ),
    always_show=frozenset({"numero_contrato", "houve_ressalvas"}),
    ignored=_RUN_METADATA_FIELDS,
    ignored_prefixes=("prazos",),
    enums=FIELD_ENUMS,
)


_CATALOGS: Mapping[str, FieldCatalog] = MappingProxyType(
    {
        "trp": TRP_CATALOG,
        "trd": TRD_CATALOG,
    }
)


def get_catalog(kind: str) -> FieldCatalog:
    """Return the catalog registered for a document kind."""

    try:
        return _CATALOGS[kind]
    except KeyError as exc:
        raise ValueError(f"Unsupported document kind: {kind}") from exc


def supported_kinds() -> list[str]:
    """Return supported document kinds in stable order."""

    return sorted(_CATALOGS)


def _assert_catalog_partitioned(catalog: FieldCatalog) -> None:
    """Fail fast when a field is claimed by more than one section."""

    owners: dict[str, str] = {}
    for section in catalog.sections:
        if section.title == OTHER_SECTION_TITLE:
            raise RuntimeError(f"{catalog.kind}: section title {OTHER_SECTION_TITLE} is reserved")
        for field_name in section.field_names:
            if field_name in owners:
                raise RuntimeError(
                    f"{catalog.kind}: field {field_name} declared in both "
                    f"{owners[field_name]} and {section.title}"
                )
            owners[field_name] = section.title

    undeclared = sorted(catalog.always_show - set(owners))
    if undeclared:
        raise RuntimeError(f"{catalog.kind}: always-show fields not in any section: {undeclared}")


for _catalog in _CATALOGS.values():
    _assert_catalog_partitioned(_catalog)
