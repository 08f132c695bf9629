"""File name helpers shared by run models and downloads."""

from __future__ import annotations

import re
from urllib.parse import unquote

_MAX_FILE_NAME_LENGTH = 120
_CONTROL_WHITESPACE = re.compile(r"[\r\n\t]+")
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_MULTI_SPACE = re.compile(r"\s{2,}")
_FILENAME_STAR = re.compile(r"filename\*\s*=\s*([^;]+)", re.IGNORECASE)
_FILENAME_PLAIN = re.compile(r"filename\s*=\s*([^;]+)", re.IGNORECASE)


def sanitize_file_name(value: object) -> str | None:
    """Collapse whitespace, blank unsafe characters and cap the length."""

    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    text = _CONTROL_WHITESPACE.sub(" ", text)
    text = _UNSAFE_CHARS.sub(" ", text)
    text = _MULTI_SPACE.sub(" ", text).strip()
    if len(text) > _MAX_FILE_NAME_LENGTH:
        text = text[:_MAX_FILE_NAME_LENGTH].strip()
    return text or None


def filename_from_disposition(header: str | None) -> str | None:
    """Extract the file name from a ``Content-Disposition`` header.

    ``filename*=UTF-8''...`` wins over ``filename=``; quotes are removed,
    percent-encoding decoded and path characters replaced by ``_``.
    """

    if not header:
        return None

    match = _FILENAME_STAR.search(header) or _FILENAME_PLAIN.search(header)
    if match is None:
        return None

    filename = match.group(1).strip()
    if len(filename) >= 2 and filename[0] == filename[-1] and filename[0] in {'"', "'"}:
        filename = filename[1:-1]
    if "''" in filename:
        filename = filename.split("''", 1)[1]

    filename = unquote(filename)
    filename = re.sub(r'[<>:"/\\|?*]', "_", filename).strip()
    return filename or None
