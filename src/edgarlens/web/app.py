"""FastAPI application exposing the research operations over HTTP."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from edgarlens import research
from edgarlens.config import AppConfig
from edgarlens.errors import ErrorCode, IdentityRequiredError, ResearchError
from edgarlens.sec.catalog import SecCatalog
from edgarlens.sec.client import SecClient

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="edgarlens API", version="0.1.0")

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DOCS_REQUIRED: 400,
    ErrorCode.IDENTITY_REQUIRED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.NETWORK_ERROR: 502,
    ErrorCode.PARSE_ERROR: 502,
}


class AskPayload(BaseModel):
    query: str
    docs: List[str] = []
    manifest: str | None = None
    id: str | None = None
    profile: str = AppConfig().profile
    cache_dir: str | None = None
    refresh: bool = False
    auto_sync: bool = True
    forms: List[str] = []
    date_from: str | None = None
    date_to: str | None = None
    top_k: int = AppConfig().top_k
    chunk_lines: int = AppConfig().chunk_lines
    chunk_overlap: int = AppConfig().chunk_overlap


class SyncPayload(BaseModel):
    id: str
    profile: str = AppConfig().profile
    cache_dir: str | None = None
    refresh: bool = False


def _resolve_cache_root(cache_dir: str | None) -> Path:
    config = AppConfig(cache_root=Path(cache_dir) if cache_dir else None)
    return config.resolve_cache_root(Path.cwd())


def _build_catalog() -> SecCatalog:
    user_agent = AppConfig().user_agent
    if not user_agent:
        raise IdentityRequiredError("Missing SEC identity. Set EDGAR_USER_AGENT on the server.")
    return SecCatalog(SecClient(user_agent))


def _http_error(exc: ResearchError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_CODE.get(exc.code, 500), detail=exc.to_dict())


def _run_ask(payload: AskPayload) -> Dict[str, Any]:
    max_workers = AppConfig().max_workers
    if payload.id is None:
        return research.ask_explicit(
            payload.query,
            doc_paths=payload.docs,
            manifest_path=payload.manifest,
            top_k=payload.top_k,
            chunk_lines=payload.chunk_lines,
            chunk_overlap=payload.chunk_overlap,
            max_workers=max_workers,
        )
    return research.ask_by_entity(
        payload.id,
        payload.query,
        catalog=_build_catalog(),
        cache_root=_resolve_cache_root(payload.cache_dir),
        profile=payload.profile,
        refresh=payload.refresh,
        auto_sync=payload.auto_sync,
        forms=payload.forms,
        date_from=payload.date_from,
        date_to=payload.date_to,
        top_k=payload.top_k,
        chunk_lines=payload.chunk_lines,
        chunk_overlap=payload.chunk_overlap,
        max_workers=max_workers,
    )


@app.post("/research/ask")
async def ask(payload: AskPayload) -> Dict[str, Any]:
    try:
        return await asyncio.to_thread(_run_ask, payload)
    except ResearchError as exc:
        LOGGER.info("Ask failed: %s %s", exc.code.value, exc.message)
        raise _http_error(exc) from exc


@app.post("/research/sync")
async def sync(payload: SyncPayload) -> Dict[str, Any]:
    def job() -> Dict[str, Any]:
        return research.sync(
            payload.id,
            payload.profile,
            catalog=_build_catalog(),
            cache_root=_resolve_cache_root(payload.cache_dir),
            refresh=payload.refresh,
        )

    try:
        return await asyncio.to_thread(job)
    except ResearchError as exc:
        LOGGER.error("Sync failed for %s: %s", payload.id, exc.message)
        raise _http_error(exc) from exc
