"""Export display sections to a .docx document."""

from __future__ import annotations

from collections.abc import Sequence

from docx import Document
from docx.document import Document as DocxDocument
from docx.shared import Pt

from core.fields.models import SectionView
from core.runs.models import DocumentKind

RECEIPT_CONDITIONS_TITLE = "RECEIPT CONDITIONS"
ATTESTATION_TITLE = "ATTESTATION"
ATTESTATION_TEXT = (
    "I attest the provisional receipt of the object, solely for verification purposes, "
    "under art. 140 of Law 14.133/2021. This act does not imply definitive acceptance "
    "and does not release the contractor from its legal and contractual obligations."
)
SIGNATURE_PLACEHOLDER = "_________________"

_DOCUMENT_TITLES: dict[str, str] = {
    "trp": "PROVISIONAL RECEIPT TERM (TRP)",
    "trd": "DEFINITIVE RECEIPT TERM (TRD)",
}


def export_sections_docx(
    sections: Sequence[SectionView],
    kind: DocumentKind,
    *,
    file_name: str | None = None,
) -> DocxDocument:
    """Build a document with one numbered two-column table per section.

    TRP documents get an attestation section right after RECEIPT CONDITIONS;
    numbering of later sections shifts accordingly.
    """

    document = Document()
    document.add_heading(_DOCUMENT_TITLES.get(kind, kind.upper()), level=0)
    if file_name:
        subtitle = document.add_paragraph(file_name)
        subtitle.runs[0].font.size = Pt(10)

    number = 0
    for section in sections:
        visible = [field for field in section.fields if field.should_display]
        is_signatures = section.title == "SIGNATURES"
        if not visible and not is_signatures:
            continue

        number += 1
        document.add_heading(f"{number}. {section.title}", level=1)
        table = document.add_table(rows=1, cols=2)
        table.style = "Table Grid"
        header = table.rows[0].cells
        header[0].text = "Field"
        header[1].text = "Information"
        for field in section.fields:
            if not field.should_display and not is_signatures:
                continue
            cells = table.add_row().cells
            cells[0].text = field.label
            cells[1].text = field.value if field.should_display else SIGNATURE_PLACEHOLDER

        if kind == "trp" and section.title == RECEIPT_CONDITIONS_TITLE:
            number += 1
            document.add_heading(f"{number}. {ATTESTATION_TITLE}", level=1)
            document.add_paragraph(ATTESTATION_TEXT, style="Intense Quote")

    return document
