"""Text helpers including line-window chunking and tokenization."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Iterator

from edgarlens.models import Chunk

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
LINE_BREAK_PATTERN = re.compile(r"\r?\n")
ACCESSION_PATTERN = re.compile(r"\d{10}-\d{2}-\d{6}")

MIN_TOKEN_LENGTH = 2


def tokenize(value: str) -> list[str]:
    """Lowercase alphanumeric runs of at least two characters, in order."""
    return [token for token in TOKEN_PATTERN.findall(value.lower()) if len(token) >= MIN_TOKEN_LENGTH]


def split_lines(text: str) -> list[str]:
    return LINE_BREAK_PATTERN.split(text)


def extract_accession(doc_path: str) -> str | None:
    match = ACCESSION_PATTERN.search(doc_path)
    return match.group(0) if match else None


def chunk_document(
    doc_path: str, text: str, *, chunk_lines: int = 40, chunk_overlap: int = 10
) -> Iterator[Chunk]:
    """Split a document into overlapping line windows.

    Windows advance by ``chunk_lines - chunk_overlap`` lines. Windows whose
    text trims to nothing are skipped, and the walk stops at the window that
    reaches the last line.
    """
    lines = split_lines(text)
    step = max(1, chunk_lines - chunk_overlap)
    accession = extract_accession(doc_path)

    for start in range(0, len(lines), step):
        end = min(len(lines), start + chunk_lines)
        window = "\n".join(lines[start:end]).strip()
        if window:
            tokens = tokenize(window)
            yield Chunk(
                doc_path=doc_path,
                accession=accession,
                line_start=start + 1,
                line_end=end,
                text=window,
                token_count=len(tokens),
                term_frequency=Counter(tokens),
            )
        if end >= len(lines):
            break


def compact_whitespace(value: str) -> str:
    """Collapse horizontal whitespace runs and blank-line runs."""
    value = re.sub(r"[ \t]+", " ", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def trim_excerpt(value: str, max_chars: int = 1200) -> str:
    if len(value) <= max_chars:
        return value
    return value[: max(0, max_chars - 3)].rstrip() + "..."


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
