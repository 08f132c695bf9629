"""Validated request payloads for document generation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils.filenames import sanitize_file_name

ContractType = Literal["BENS", "SERVIÇOS", "OBRA"]
DeadlineBasis = Literal["DATA_RECEBIMENTO", "INICIO_SERVICO", "SERVICO"]
DueDateRule = Literal["DIAS_CORRIDOS", "DIA_FIXO"]
DeadlineCondition = Literal["NO_PRAZO", "FORA_DO_PRAZO"]
QuantityCondition = Literal["TOTAL", "PARCIAL", "DIVERGENCIA_SUPERIOR"]

_BASE_DATE_BY_BASIS = {
    "DATA_RECEBIMENTO": ("data_recebimento", "dataRecebimento"),
    "INICIO_SERVICO": ("data_inicio_servico", "dataInicioServico"),
    "SERVICO": ("data_conclusao_servico", "dataConclusaoServico"),
}


class ReceiptItem(BaseModel):
    """One received line item."""

    model_config = ConfigDict(extra="forbid")

    descricao: str = Field(min_length=1)
    unidade_medida: str | None = None
    quantidade_recebida: float = Field(ge=0)
    valor_unitario: float | None = Field(default=None, ge=0)
    valor_total_calculado: float | None = Field(default=None, ge=0)


class TrpGenerateRequest(BaseModel):
    """Receipt data sent as the ``dadosRecebimento`` form part."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    contract_type: ContractType = Field(alias="tipoContratacao")
    file_name: str | None = Field(default=None, alias="fileName")
    items: list[ReceiptItem] = Field(alias="itens_objeto")
    grand_total: float | None = Field(default=None, alias="valor_total_geral")
    service_period: str | None = Field(default=None, alias="competenciaMesAno")
    deadline_basis: DeadlineBasis = Field(alias="tipoBasePrazo")
    data_recebimento: str | None = Field(default=None, alias="dataRecebimento")
    data_inicio_servico: str | None = Field(default=None, alias="dataInicioServico")
    data_conclusao_servico: str | None = Field(default=None, alias="dataConclusaoServico")
    expected_delivery_date: str | None = Field(default=None, alias="dataPrevistaEntregaContrato")
    actual_delivery_date: str | None = Field(default=None, alias="dataEntregaReal")
    provisional_days: int | None = Field(default=None, alias="prazoProvisorioDiasUteis")
    definitive_days: int | None = Field(default=None, alias="prazoDefinitivoDiasUteis")
    settlement_days: int | None = Field(default=None, alias="prazoLiquidacaoDiasCorridos")
    due_date_rule: DueDateRule = Field(alias="vencimentoTipo")
    due_calendar_days: int | None = Field(default=None, alias="vencimentoDiasCorridos")
    due_fixed_day: int | None = Field(default=None, alias="vencimentoDiaFixo")
    deadline_condition: DeadlineCondition = Field(alias="condicaoPrazo")
    delay_reason: str | None = Field(default=None, alias="motivoAtraso")
    quantity_condition: QuantityCondition = Field(alias="condicaoQuantidadeOrdem")
    quantity_comments: str | None = Field(default=None, alias="comentariosQuantidadeOrdem")
    receipt_notes: str | None = Field(default=None, alias="observacoesRecebimento")

    @field_validator("file_name", mode="before")
    @classmethod
    def _sanitize_file_name(cls, value: object) -> str | None:
        return sanitize_file_name(value)

    @model_validator(mode="after")
    def _check_consistency(self) -> TrpGenerateRequest:
        if not self.items:
            raise ValueError("Add at least one received item to generate the TRP.")

        attribute, wire_name = _BASE_DATE_BY_BASIS[self.deadline_basis]
        base_date = getattr(self, attribute)
        if not base_date or not str(base_date).strip():
            raise ValueError(f"Provide {wire_name} when tipoBasePrazo is {self.deadline_basis}.")

        for wire_name, days in (
            ("prazoProvisorioDiasUteis", self.provisional_days),
            ("prazoDefinitivoDiasUteis", self.definitive_days),
            ("prazoLiquidacaoDiasCorridos", self.settlement_days),
        ):
            if days is not None and days < 0:
                raise ValueError(f"{wire_name} must be zero or greater.")

        if self.due_date_rule == "DIAS_CORRIDOS":
            if self.due_calendar_days is None or self.due_calendar_days < 0:
                raise ValueError("vencimentoDiasCorridos must be zero or greater.")
        elif self.due_fixed_day is None or not 1 <= self.due_fixed_day <= 31:
            raise ValueError("vencimentoDiaFixo must be between 1 and 31.")
        return self

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TrdGenerateRequest(BaseModel):
    """JSON body for ``POST /trd/generate``."""

    model_config = ConfigDict(extra="forbid")

    trp_run_id: str = Field(min_length=1)
    houve_ressalvas: bool
    ressalvas_texto: str | None = None
    source: str = "CLI"

    @field_validator("trp_run_id")
    @classmethod
    def _strip_run_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("trp_run_id is required")
        return stripped

    @model_validator(mode="after")
    def _check_reservations(self) -> TrdGenerateRequest:
        if self.houve_ressalvas and not (self.ressalvas_texto or "").strip():
            raise ValueError("Provide the reservations text when houve_ressalvas is true.")
        return self

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json")
