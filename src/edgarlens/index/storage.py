"""On-disk cache of synced filings and per-profile manifests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Literal, Optional

import pydantic
from pydantic import BaseModel, Field

from edgarlens.errors import ParseError, ValidationError
from edgarlens.utils.files import file_exists, write_text_atomic

LOGGER = logging.getLogger(__name__)

MANIFEST_VERSION = 1


class CachedDocument(BaseModel):
    """A filing stored in the cache."""

    accession: str
    form: Optional[str] = None
    filing_date: Optional[str] = None
    report_date: Optional[str] = None
    filing_url: Optional[str] = None
    path: str


class Manifest(BaseModel):
    """Versioned record of one synced (company, profile) corpus."""

    version: Literal[1] = MANIFEST_VERSION
    id_input: str
    cik: str
    ticker: Optional[str] = None
    title: Optional[str] = None
    profile: str
    synced_at: str
    docs: List[CachedDocument] = Field(default_factory=list)

    @property
    def doc_paths(self) -> list[str]:
        return [doc.path for doc in self.docs]


class ManifestStore:
    """Persistence layer for cached filings and manifests.

    Assumes a single writer per (cache root, company, profile).
    """

    def __init__(self, cache_root: Path) -> None:
        self.cache_root = Path(cache_root)

    def company_dir(self, cik: str) -> Path:
        return self.cache_root / "research" / "companies" / cik

    def manifest_path(self, cik: str, profile: str) -> Path:
        return self.company_dir(cik) / "profiles" / f"{profile}.json"

    def document_path(self, cik: str, accession: str) -> Path:
        return self.company_dir(cik) / "filings" / f"{accession}.md"

    def document_exists(self, path: Path) -> bool:
        return file_exists(path)

    def read(self, cik: str, profile: str) -> Manifest | None:
        path = self.manifest_path(cik, profile)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ValidationError(f"Unable to read cached manifest {path}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Cached manifest is not valid JSON: {path}") from exc

        try:
            return Manifest.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Cached manifest is malformed: {path}") from exc

    def write(self, manifest: Manifest) -> Path:
        path = self.manifest_path(manifest.cik, manifest.profile)
        payload = json.dumps(manifest.model_dump(mode="json"), indent=2)
        write_text_atomic(path, payload + "\n")
        LOGGER.debug("Wrote manifest %s (%d docs)", path, len(manifest.docs))
        return path

    def write_document(self, path: Path, content: str) -> None:
        if not content.endswith("\n"):
            content += "\n"
        write_text_atomic(path, content)
