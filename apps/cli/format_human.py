"""Human-readable rendering of display sections and runs for CLI output."""

from __future__ import annotations

from collections.abc import Sequence

from core.fields.models import SectionView
from core.orchestrator.pipeline import RunView
from core.runs.models import RunPage, RunSummary


def render_sections(sections: Sequence[SectionView]) -> str:
    """Render numbered sections with one ``label: value`` line per visible field."""

    if not sections:
        return "no fields to display"

    lines: list[str] = []
    for index, section in enumerate(sections, start=1):
        if lines:
            lines.append("")
        lines.append(f"{index}. {section.title}")
        for field in section.fields:
            if field.should_display:
                lines.append(f"  {field.label}: {field.value}")
            else:
                lines.append(f"  {field.label}: -")
    return "\n".join(lines)


def render_run_view(view: RunView) -> str:
    lines = [
        f"run_id={view.run_id} kind={view.kind} status={view.status.value}",
    ]
    if view.file_name:
        lines.append(f"file_name={view.file_name}")
    if view.error_message:
        lines.append(f"error: {view.error_message}")
    if view.sections:
        lines.append("")
        lines.append(render_sections(view.sections))
    elif not view.terminal:
        lines.append("run not finished yet")
    return "\n".join(lines)


def render_run_page(page: RunPage) -> str:
    if not page.items:
        return "no runs found"

    lines: list[str] = []
    for run in page.items:
        created = run.created_at.isoformat()
        name = run.file_name or "-"
        lines.append(f"{run.run_id}  {run.status.value:<9}  {created}  {name}")
    if page.next_cursor:
        lines.append(f"next_cursor: {page.next_cursor}")
    return "\n".join(lines)


def render_summary(summary: RunSummary) -> str:
    last = summary.last_run_at.isoformat() if summary.last_run_at else "never"
    return (
        f"total={summary.total} completed={summary.completed} "
        f"failed={summary.failed} last_run_at={last}"
    )
