"""Research operations: corpus sync and lexical question answering.

``ask_explicit`` ranks caller-supplied documents. ``ask_by_entity`` ranks
the cached corpus of one company profile, syncing it first when needed.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from edgarlens.errors import DocumentsRequiredError, NotFoundError, ValidationError
from edgarlens.index.search import LexicalSearcher, build_query_terms
from edgarlens.index.storage import CachedDocument, ManifestStore
from edgarlens.index.sync import CorpusSyncer, Profile, SyncReport, parse_profile
from edgarlens.models import Chunk, SourceDocument
from edgarlens.sec.catalog import SecCatalog
from edgarlens.sec.normalizers import date_in_range, parse_date
from edgarlens.utils.files import read_source_document
from edgarlens.utils.text import chunk_document

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def validate_query(query: str) -> str:
    query = query.strip()
    if not query:
        raise ValidationError("Query must not be empty")
    return query


def validate_chunking(top_k: int, chunk_lines: int, chunk_overlap: int) -> None:
    if top_k < 1:
        raise ValidationError("--top-k must be a positive integer")
    if chunk_lines < 1:
        raise ValidationError("--chunk-lines must be a positive integer")
    if chunk_overlap < 0:
        raise ValidationError("--chunk-overlap must be a non-negative integer")
    if chunk_overlap >= chunk_lines:
        raise ValidationError("--chunk-overlap must be less than --chunk-lines")


def _manifest_doc_paths(payload: Any) -> List[str]:
    """Accept a list of paths, ``{"docs": [paths]}`` or a cached manifest."""
    docs = payload.get("docs") if isinstance(payload, dict) else payload
    if isinstance(docs, list):
        if all(isinstance(entry, str) for entry in docs):
            return list(docs)
        if all(isinstance(entry, dict) and isinstance(entry.get("path"), str) for entry in docs):
            return [entry["path"] for entry in docs]
    raise ValidationError(
        "Manifest must be a JSON array of strings or object with a docs string array"
    )


def load_doc_paths(doc_paths: Sequence[str], manifest_path: Optional[str] = None) -> List[str]:
    """Merge explicit and manifest-listed paths into unique absolute paths."""
    candidates = [path.strip() for path in doc_paths if path and path.strip()]

    if manifest_path:
        resolved = Path(manifest_path).expanduser().resolve()
        try:
            raw = resolved.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(f"Manifest not found: {resolved}") from exc
        except OSError as exc:
            raise ValidationError(f"Unable to read manifest {resolved}: {exc}") from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Manifest is not valid JSON: {resolved}") from exc
        candidates.extend(path.strip() for path in _manifest_doc_paths(payload) if path.strip())

    absolute = [str(Path(path).expanduser().resolve()) for path in candidates]
    return list(dict.fromkeys(absolute))


def read_documents(paths: Sequence[str], *, max_workers: int = DEFAULT_MAX_WORKERS) -> List[SourceDocument]:
    """Read documents concurrently.

    The first failure to complete aborts the batch: reads not yet started are
    cancelled and the error propagates. Results keep the input order.
    """
    if not paths:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(paths)))) as executor:
        futures = [executor.submit(read_source_document, path) for path in paths]
        for future in as_completed(futures):
            error = future.exception()
            if error is not None:
                for other in futures:
                    other.cancel()
                raise error
        return [future.result() for future in futures]


def search_documents(
    query: str,
    doc_paths: Sequence[str],
    *,
    top_k: int,
    chunk_lines: int,
    chunk_overlap: int,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Dict[str, Any]:
    query = validate_query(query)
    validate_chunking(top_k, chunk_lines, chunk_overlap)

    documents = read_documents(doc_paths, max_workers=max_workers)
    chunks: List[Chunk] = []
    for document in documents:
        chunks.extend(
            chunk_document(
                document.path, document.text, chunk_lines=chunk_lines, chunk_overlap=chunk_overlap
            )
        )
    LOGGER.debug("Ranking %d chunks from %d documents", len(chunks), len(documents))

    results = LexicalSearcher().search(query, chunks, top_k=top_k)
    return {
        "query": query,
        "backend": "lexical",
        "query_terms": build_query_terms(query),
        "docs": [document.summary() for document in documents],
        "chunk_count": len(chunks),
        "result_count": len(results),
        "results": [result.to_dict() for result in results],
    }


def ask_explicit(
    query: str,
    *,
    doc_paths: Sequence[str] = (),
    manifest_path: Optional[str] = None,
    top_k: int = 8,
    chunk_lines: int = 40,
    chunk_overlap: int = 10,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Dict[str, Any]:
    """Rank caller-supplied documents against a query."""
    validate_query(query)
    validate_chunking(top_k, chunk_lines, chunk_overlap)
    paths = load_doc_paths(doc_paths, manifest_path)
    if not paths:
        raise DocumentsRequiredError(
            "At least one document is required. Pass --doc <path> and/or --manifest <path>."
        )
    return search_documents(
        query,
        paths,
        top_k=top_k,
        chunk_lines=chunk_lines,
        chunk_overlap=chunk_overlap,
        max_workers=max_workers,
    )


def _build_syncer(catalog: SecCatalog, store: ManifestStore) -> CorpusSyncer:
    return CorpusSyncer(catalog, catalog, catalog, store)


def sync(
    entity_id: str,
    profile: str | Profile,
    *,
    catalog: SecCatalog,
    cache_root: Path,
    refresh: bool = False,
) -> Dict[str, Any]:
    """Sync a company's profile corpus and report what changed."""
    report = _build_syncer(catalog, ManifestStore(cache_root)).sync(
        entity_id, profile, refresh=refresh
    )
    return report.to_dict()


def filter_scope(
    docs: Sequence[CachedDocument],
    *,
    forms: Sequence[str] = (),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[CachedDocument]:
    """Restrict cached documents by form and inclusive filing-date bounds."""
    date_from = parse_date(date_from, "date_from") if date_from else None
    date_to = parse_date(date_to, "date_to") if date_to else None
    wanted = {form.strip().upper() for form in forms if form.strip()}
    selected = []
    for doc in docs:
        if wanted and (doc.form or "").upper() not in wanted:
            continue
        if date_from or date_to:
            if not doc.filing_date or not date_in_range(doc.filing_date, date_from, date_to):
                continue
        selected.append(doc)
    return selected


def ask_by_entity(
    entity_id: str,
    query: str,
    *,
    catalog: SecCatalog,
    cache_root: Path,
    profile: str | Profile = Profile.CORE,
    refresh: bool = False,
    auto_sync: bool = True,
    forms: Sequence[str] = (),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    top_k: int = 8,
    chunk_lines: int = 40,
    chunk_overlap: int = 10,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Dict[str, Any]:
    """Rank a company's cached corpus, syncing it when missing or empty."""
    validate_query(query)
    validate_chunking(top_k, chunk_lines, chunk_overlap)
    date_from = parse_date(date_from, "date_from") if date_from else None
    date_to = parse_date(date_to, "date_to") if date_to else None
    profile = parse_profile(profile)
    store = ManifestStore(cache_root)
    entity = catalog.resolve(entity_id)

    manifest = None if refresh else store.read(entity.cik, profile.value)
    report: Optional[SyncReport] = None
    if (manifest is None or not manifest.docs) and (auto_sync or refresh):
        report = _build_syncer(catalog, store).sync(entity_id, profile, refresh=refresh)
        manifest = store.read(entity.cik, profile.value)

    if manifest is None or not manifest.docs:
        raise DocumentsRequiredError(
            f"No cached documents found for {entity_id} profile {profile.value}. "
            "Run research sync first."
        )

    docs = filter_scope(manifest.docs, forms=forms, date_from=date_from, date_to=date_to)
    if not docs:
        raise DocumentsRequiredError(
            f"No cached documents for {entity_id} profile {profile.value} match the requested scope."
        )

    data = search_documents(
        query,
        [doc.path for doc in docs],
        top_k=top_k,
        chunk_lines=chunk_lines,
        chunk_overlap=chunk_overlap,
        max_workers=max_workers,
    )
    corpus_size = len(manifest.docs)
    data.update(
        {
            "id": entity_id,
            "cik": entity.cik,
            "ticker": entity.ticker,
            "title": entity.title,
            "profile": profile.value,
            "cache_root": str(store.cache_root),
            "manifest_path": str(store.manifest_path(entity.cik, profile.value)),
            "corpus_docs_count": corpus_size,
            "scope_docs_count": len(docs),
            "sync": report.summary()
            if report is not None
            else {
                "docs_count": corpus_size,
                "fetched_count": 0,
                "reused_count": corpus_size,
                "skipped_count": 0,
            },
        }
    )
    return data
