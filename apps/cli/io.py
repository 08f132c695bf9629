"""CLI I/O helpers for input records and atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from docx.document import Document as DocxDocument


def load_json_file(path: Path) -> Any:
    """Read one JSON document; decode errors become ``ValueError``."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc.msg}") from exc


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, indent=2)

    tmp_path.replace(path)


def write_bytes_atomic(path: Path, content: bytes) -> None:
    """Write downloaded bytes through a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _reserve_tmp_path(path)
    try:
        tmp_path.write_bytes(content)
        tmp_path.replace(path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def write_docx_atomic(path: Path, document: DocxDocument) -> None:
    """Save a python-docx document through a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _reserve_tmp_path(path)
    try:
        document.save(str(tmp_path))
        tmp_path.replace(path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def _reserve_tmp_path(path: Path) -> Path:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    return Path(raw_tmp_path)
