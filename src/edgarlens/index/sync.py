"""Corpus synchronization from the SEC catalog into the local cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from edgarlens.errors import NotFoundError, ValidationError
from edgarlens.index.storage import CachedDocument, Manifest, ManifestStore
from edgarlens.models import FilingRow, ResolvedEntity

LOGGER = logging.getLogger(__name__)


class Profile(str, Enum):
    """Named filing selection policies."""

    CORE = "core"
    EVENTS = "events"
    FINANCIALS = "financials"


@dataclass(frozen=True, slots=True)
class SyncRule:
    form: str
    limit: int
    recent_days: Optional[int] = None


PROFILE_RULES: Dict[Profile, tuple[SyncRule, ...]] = {
    Profile.CORE: (
        SyncRule("10-K", 1),
        SyncRule("10-Q", 3),
        SyncRule("8-K", 12, recent_days=180),
    ),
    Profile.EVENTS: (SyncRule("8-K", 24, recent_days=365),),
    Profile.FINANCIALS: (
        SyncRule("10-K", 2),
        SyncRule("10-Q", 6),
    ),
}


def parse_profile(value: str | Profile) -> Profile:
    if isinstance(value, Profile):
        return value
    try:
        return Profile(value.strip().lower())
    except ValueError as exc:
        names = "|".join(profile.value for profile in Profile)
        raise ValidationError(f"--profile must be one of {names}") from exc


class IdentityResolver(Protocol):
    def resolve(self, entity_id: str) -> ResolvedEntity: ...


class FilingCatalog(Protocol):
    def list(
        self,
        cik: str,
        *,
        form: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[FilingRow]: ...


class FilingContentProvider(Protocol):
    def fetch(self, cik: str, accession: str, output_format: str = "markdown") -> str: ...


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def date_days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%d")


@dataclass(slots=True)
class SyncStats:
    fetched: int = 0
    reused: int = 0
    skipped: List[Dict[str, str]] = field(default_factory=list)
    docs: List[CachedDocument] = field(default_factory=list)

    def increment(self, status: str, row: FilingRow, path: Path, reason: str = "") -> None:
        if status == "skipped":
            self.skipped.append({"accession": row.accession, "reason": reason})
            return
        if status == "fetched":
            self.fetched += 1
        else:
            self.reused += 1
        self.docs.append(
            CachedDocument(
                accession=row.accession,
                form=row.form,
                filing_date=row.filing_date,
                report_date=row.report_date,
                filing_url=row.filing_url,
                path=str(path),
            )
        )


@dataclass(slots=True)
class SyncReport:
    entity: ResolvedEntity
    profile: Profile
    cache_root: Path
    manifest_path: Path
    stats: SyncStats

    @property
    def docs_count(self) -> int:
        return len(self.stats.docs)

    def summary(self) -> dict[str, int]:
        return {
            "docs_count": self.docs_count,
            "fetched_count": self.stats.fetched,
            "reused_count": self.stats.reused,
            "skipped_count": len(self.stats.skipped),
        }

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.entity.input,
            "cik": self.entity.cik,
            "ticker": self.entity.ticker,
            "title": self.entity.title,
            "profile": self.profile.value,
            "cache_root": str(self.cache_root),
            "manifest_path": str(self.manifest_path),
            **self.summary(),
            "skipped": list(self.stats.skipped),
            "docs": [doc.model_dump(mode="json") for doc in self.stats.docs],
        }


def select_filings(
    catalog: FilingCatalog, cik: str, rules: Sequence[SyncRule]
) -> List[FilingRow]:
    """Apply rules in order; the first rule to list an accession keeps it."""
    selected: Dict[str, FilingRow] = {}
    for rule in rules:
        rows = catalog.list(
            cik,
            form=rule.form,
            date_from=date_days_ago(rule.recent_days) if rule.recent_days else None,
            limit=rule.limit,
        )
        LOGGER.debug("Rule %s matched %d filings", rule.form, len(rows))
        for row in rows:
            selected.setdefault(row.accession, row)

    return sorted(selected.values(), key=lambda row: row.filing_date or "", reverse=True)


class CorpusSyncer:
    """Coordinates filing selection, content fetches and manifest writes."""

    def __init__(
        self,
        resolver: IdentityResolver,
        catalog: FilingCatalog,
        content: FilingContentProvider,
        store: ManifestStore,
    ) -> None:
        self.resolver = resolver
        self.catalog = catalog
        self.content = content
        self.store = store

    def sync(self, entity_id: str, profile: str | Profile, *, refresh: bool = False) -> SyncReport:
        """Bring the cached corpus for one company and profile up to date."""
        profile = parse_profile(profile)
        entity = self.resolver.resolve(entity_id)
        rows = select_filings(self.catalog, entity.cik, PROFILE_RULES[profile])
        LOGGER.info("Syncing %d filings for %s (%s)", len(rows), entity.cik, profile.value)

        stats = SyncStats()
        for row in rows:
            doc_path = self.store.document_path(entity.cik, row.accession)
            if not refresh and self.store.document_exists(doc_path):
                stats.increment("reused", row, doc_path)
                continue

            try:
                content = self.content.fetch(entity.cik, row.accession, "markdown")
            except NotFoundError as exc:
                LOGGER.warning("Skipping %s: %s", row.accession, exc.message)
                stats.increment("skipped", row, doc_path, reason=exc.message)
                continue

            self.store.write_document(doc_path, content)
            stats.increment("fetched", row, doc_path)

        manifest = Manifest(
            id_input=entity_id,
            cik=entity.cik,
            ticker=entity.ticker,
            title=entity.title,
            profile=profile.value,
            synced_at=utc_timestamp(),
            docs=stats.docs,
        )
        manifest_path = self.store.write(manifest)
        LOGGER.info(
            "Fetched: %d, reused: %d, skipped: %d",
            stats.fetched,
            stats.reused,
            len(stats.skipped),
        )
        return SyncReport(
            entity=entity,
            profile=profile,
            cache_root=self.store.cache_root,
            manifest_path=manifest_path,
            stats=stats,
        )
