"""Utility helpers for working with files."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

from edgarlens.errors import NotFoundError, ValidationError
from edgarlens.models import SourceDocument
from edgarlens.utils.text import split_lines


def read_source_document(path: str | Path) -> SourceDocument:
    """Read a UTF-8 text document, rejecting directories and binary files."""
    path = Path(path)
    try:
        mode = path.stat().st_mode
    except FileNotFoundError as exc:
        raise NotFoundError(f"Document not found: {path}") from exc
    except OSError as exc:
        raise ValidationError(f"Unable to stat document {path}: {exc}") from exc

    if not stat.S_ISREG(mode):
        raise ValidationError(f"Path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Unable to read document {path}: {exc}") from exc

    if "\x00" in content:
        raise ValidationError(f"File appears to be binary: {path}")

    return SourceDocument(
        path=str(path),
        text=content,
        bytes=len(content.encode("utf-8")),
        line_count=len(split_lines(content)),
    )


def file_exists(path: Path) -> bool:
    try:
        return stat.S_ISREG(path.stat().st_mode)
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ValidationError(f"Unable to stat {path}: {exc}") from exc


def write_text_atomic(path: Path, content: str) -> None:
    """Write text through a temporary sibling file and replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
