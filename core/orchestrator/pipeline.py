"""Orchestration pipeline for the field display flow."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from core.fields.catalog import get_catalog
from core.fields.dedupe import dedupe_sections
from core.fields.models import SectionView, parse_field_record
from core.fields.organizer import organize_sections
from core.runs.models import DocumentKind, Run, RunStatus


class RunView(BaseModel):
    """Everything a viewer needs to show one run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    run_id: str
    kind: DocumentKind
    status: RunStatus
    terminal: bool
    file_name: str | None = None
    sections: list[SectionView] = Field(default_factory=list)
    document_markdown: str = ""
    error_message: str | None = None


def build_display_sections(record: object, kind: str) -> list[SectionView]:
    """Execute parse -> organize -> dedupe for one field record."""

    catalog = get_catalog(kind)
    parsed = parse_field_record(record)
    return dedupe_sections(organize_sections(parsed, catalog))


def build_run_view(run: Run) -> RunView:
    """Project a run snapshot into display sections.

    Sections are only built for completed runs with output; failed runs carry
    their error message and unfinished runs carry neither.
    """

    sections: list[SectionView] = []
    document_markdown = ""
    if run.status is RunStatus.COMPLETED and run.output is not None:
        sections = build_display_sections(run.output.fields, run.kind)
        document_markdown = run.output.document_markdown

    return RunView(
        run_id=run.run_id,
        kind=run.kind,
        status=run.status,
        terminal=run.status.is_terminal,
        file_name=run.file_name,
        sections=sections,
        document_markdown=document_markdown,
        error_message=run.error_message if run.status is RunStatus.FAILED else None,
    )
