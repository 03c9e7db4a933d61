"""Core edgarlens data models."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


@dataclass(slots=True)
class SourceDocument:
    """A local text document read for ranking."""

    path: str
    text: str
    bytes: int
    line_count: int

    def summary(self) -> dict[str, object]:
        return {"path": self.path, "bytes": self.bytes, "line_count": self.line_count}


@dataclass(slots=True)
class Chunk:
    """Line-range window of a document with its token statistics."""

    doc_path: str
    accession: str | None
    line_start: int
    line_end: int
    text: str
    token_count: int
    term_frequency: Counter[str] = field(default_factory=Counter)


@dataclass(slots=True)
class ResolvedEntity:
    input: str
    cik: str
    cik_numeric: int
    ticker: str | None
    title: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "input": self.input,
            "cik": self.cik,
            "cik_numeric": self.cik_numeric,
            "ticker": self.ticker,
            "title": self.title,
        }


@dataclass(slots=True)
class FilingRow:
    """One filing from the SEC submissions catalog."""

    accession: str
    form: str | None
    filing_date: str | None
    report_date: str | None
    primary_document: str | None = None
    filing_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "accession": self.accession,
            "form": self.form,
            "filing_date": self.filing_date,
            "report_date": self.report_date,
            "primary_document": self.primary_document,
            "filing_url": self.filing_url,
        }
