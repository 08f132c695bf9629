from __future__ import annotations

import json
from pathlib import Path

from docx import Document
from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()


def _write_record(path: Path, record: object) -> None:
    path.write_text(json.dumps(record), encoding="utf-8")


def test_display_prints_numbered_sections(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    _write_record(record, {"numero_contrato": "058/2025", "condicao_prazo": "NO_PRAZO"})

    result = runner.invoke(app, ["display", "--input", str(record)])

    assert result.exit_code == 0
    assert "1. IDENTIFICATION" in result.output
    assert "  Contract Number: 058/2025" in result.output
    assert "  Deadline Condition: On time" in result.output
    assert "  Invoice Number: -" in result.output


def test_display_json_output(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    _write_record(record, {"numero_contrato": "12/2024", "houve_ressalvas": False})

    result = runner.invoke(app, ["display", "--input", str(record), "--kind", "TRD", "--json"])

    assert result.exit_code == 0
    sections = json.loads(result.output)
    assert sections[0]["title"] == "IDENTIFICATION"
    fields = {field["field_name"]: field for field in sections[0]["fields"]}
    assert fields["numero_contrato"]["value"] == "12/2024"


def test_display_rejects_unknown_kind(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    _write_record(record, {})

    result = runner.invoke(app, ["display", "--input", str(record), "--kind", "dfd"])

    assert result.exit_code == 1
    assert "--kind must be one of: trd, trp" in result.output


def test_display_rejects_non_object_record(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    _write_record(record, [1, 2, 3])

    result = runner.invoke(app, ["display", "--input", str(record)])

    assert result.exit_code == 1
    assert "JSON object" in result.output


def test_display_rejects_invalid_json(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    record.write_text("{oops", encoding="utf-8")

    result = runner.invoke(app, ["display", "--input", str(record)])

    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_export_writes_docx_and_sections_json(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    out = tmp_path / "out" / "trp.docx"
    sections_json = tmp_path / "out" / "sections.json"
    _write_record(record, {"numero_contrato": "058/2025", "condicao_prazo": "NO_PRAZO"})

    result = runner.invoke(
        app,
        [
            "export",
            "--input",
            str(record),
            "--out",
            str(out),
            "--sections-json",
            str(sections_json),
        ],
    )

    assert result.exit_code == 0
    texts = [paragraph.text for paragraph in Document(str(out)).paragraphs]
    assert "PROVISIONAL RECEIPT TERM (TRP)" in texts
    sections = json.loads(sections_json.read_text(encoding="utf-8"))
    assert sections[0]["title"] == "IDENTIFICATION"


def test_export_refuses_to_overwrite_without_force(tmp_path: Path) -> None:
    record = tmp_path / "record.json"
    out = tmp_path / "trp.docx"
    _write_record(record, {"numero_contrato": "058/2025"})
    out.write_bytes(b"existing")

    refused = runner.invoke(app, ["export", "--input", str(record), "--out", str(out)])
    assert refused.exit_code == 1
    assert "Use --force" in refused.output
    assert out.read_bytes() == b"existing"

    forced = runner.invoke(app, ["export", "--input", str(record), "--out", str(out), "--force"])
    assert forced.exit_code == 0
    assert out.read_bytes() != b"existing"
