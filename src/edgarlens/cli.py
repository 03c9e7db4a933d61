"""Command line interface for edgarlens."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from edgarlens import research
from edgarlens.config import AppConfig
from edgarlens.errors import IdentityRequiredError, ResearchError, to_research_error
from edgarlens.output import parse_fields, parse_view, shape_data
from edgarlens.sec.catalog import OUTPUT_FORMATS, SecCatalog
from edgarlens.sec.client import SecClient
from edgarlens.sec.facts import company_facts_view, validate_taxonomy
from edgarlens.sec.normalizers import parse_date
from edgarlens.web.app import app as web_app

LOGGER = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="edgarlens - lexical research over SEC EDGAR filings")
filings_app = typer.Typer(help="Query filing metadata and filing documents")
facts_app = typer.Typer(help="Query SEC company facts (XBRL)")
research_app = typer.Typer(help="Sync filing corpora and ask questions against them")
app.add_typer(filings_app, name="filings")
app.add_typer(facts_app, name="facts")
app.add_typer(research_app, name="research")


@dataclass(slots=True)
class CliState:
    human: bool = False
    user_agent: Optional[str] = None
    view: Optional[str] = None
    fields: Optional[str] = None
    limit: Optional[int] = None


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _envelope(
    command: str,
    data: Any,
    error: Optional[ResearchError] = None,
    *,
    view: str = "summary",
    meta_updates: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    meta = {"timestamp": _now_iso(), "output_schema": "v1", "view": view}
    meta.update(meta_updates or {})
    return {
        "ok": error is None,
        "command": command,
        "provider": "sec",
        "data": data if error is None else None,
        "error": error.to_dict() if error is not None else None,
        "meta": meta,
    }


def _require_user_agent(state: CliState) -> str:
    if state.user_agent and state.user_agent.strip():
        return state.user_agent.strip()
    raise IdentityRequiredError(
        'Missing SEC identity. Set --user-agent "Name email@domain.com" or EDGAR_USER_AGENT.'
    )


def _catalog(state: CliState) -> SecCatalog:
    return SecCatalog(SecClient(_require_user_agent(state)))


def _resolve_cache_root(cache_dir: Optional[Path]) -> Path:
    config = AppConfig(cache_root=cache_dir)
    return config.resolve_cache_root(Path.cwd())


def _render_human(command: str, data: Any) -> None:
    if isinstance(data, dict) and "results" in data:
        if not data["results"]:
            console.print("[yellow]No matches found.[/yellow]")
            return
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Rank")
        table.add_column("Score")
        table.add_column("Document")
        table.add_column("Lines")
        table.add_column("Excerpt")
        for result in data["results"]:
            snippet = result["excerpt"].replace("\n", " ")
            table.add_row(
                str(result["rank"]),
                f"{result['score']:.4f}",
                Path(result["path"]).name,
                f"{result['line_start']}-{result['line_end']}",
                snippet[:180],
            )
        console.print(table)
        return

    if isinstance(data, dict) and "fetched_count" in data:
        console.print(f"Manifest: [bold]{data['manifest_path']}[/bold]")
        console.print(
            f"Docs: {data['docs_count']}, fetched: {data['fetched_count']}, "
            f"reused: {data['reused_count']}, skipped: {data['skipped_count']}"
        )
        for skipped in data["skipped"]:
            console.print(f"[yellow]Skipped {skipped['accession']}: {skipped['reason']}[/yellow]")
        return

    if isinstance(data, list):
        table = Table(show_header=True, header_style="bold magenta")
        keys = list(data[0].keys()) if data else []
        for key in keys:
            table.add_column(key)
        for row in data:
            table.add_row(*(str(row.get(key) or "") for key in keys))
        console.print(table)
        return

    if isinstance(data, dict):
        for key, value in data.items():
            console.print(f"[bold]{key}[/bold]: {value}")
        return

    console.print(str(data))


def _execute(ctx: typer.Context, command: str, handler: Callable[[], Any]) -> None:
    state: CliState = ctx.obj or CliState()
    view = "summary"
    try:
        view = parse_view(state.view)
        fields = parse_fields(state.fields)
        data = handler()
        meta_updates: Dict[str, Any] = {}
        if not state.human:
            data, meta_updates = shape_data(data, fields=fields, limit=state.limit)
    except Exception as exc:
        error = to_research_error(exc)
        if not isinstance(exc, ResearchError):
            LOGGER.exception("Unexpected failure in %s", command)
        if state.human:
            console.print(f"[red]{error.code.value}[/red] {error.message}")
        else:
            typer.echo(json.dumps(_envelope(command, None, error, view=view), indent=2))
        raise typer.Exit(code=error.exit_code)

    if state.human:
        _render_human(command, data)
    else:
        envelope = _envelope(command, data, view=view, meta_updates=meta_updates)
        typer.echo(json.dumps(envelope, indent=2))


@app.callback()
def main(
    ctx: typer.Context,
    human: bool = typer.Option(False, "--human", help="Emit human-readable output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
    user_agent: Optional[str] = typer.Option(
        None,
        "--user-agent",
        envvar="EDGAR_USER_AGENT",
        help='SEC identity for network commands, e.g. "Name email@domain.com"',
    ),
    view: Optional[str] = typer.Option(None, "--view", help="summary|full"),
    fields: Optional[str] = typer.Option(
        None, "--fields", help="Comma separated fields to keep in JSON output"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Truncate list results in JSON output"),
) -> None:
    """Agent-friendly SEC EDGAR research. JSON envelope output by default."""
    _setup_logging(verbose)
    ctx.obj = CliState(human=human, user_agent=user_agent, view=view, fields=fields, limit=limit)


@app.command()
def resolve(
    ctx: typer.Context,
    entity_id: str = typer.Argument(..., metavar="ID", help="Ticker (AAPL) or CIK (320193)"),
) -> None:
    """Resolve a ticker or CIK to canonical SEC identity fields."""
    _execute(ctx, "resolve", lambda: _catalog(ctx.obj).resolve(entity_id).to_dict())


@filings_app.command("list")
def filings_list(
    ctx: typer.Context,
    entity_id: str = typer.Option(..., "--id", help="Ticker or CIK"),
    form: Optional[str] = typer.Option(None, "--form", help="SEC form type, e.g. 10-K"),
    date_from: Optional[str] = typer.Option(None, "--from", help="Lower filing-date bound"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Upper filing-date bound"),
    query_limit: Optional[int] = typer.Option(None, "--query-limit", min=1, help="Limit rows"),
    offset: int = typer.Option(0, "--offset", min=0, help="Offset rows before limiting"),
) -> None:
    """List recent filings for a company."""

    def handler() -> List[Dict[str, Any]]:
        lower = parse_date(date_from, "--from") if date_from else None
        upper = parse_date(date_to, "--to") if date_to else None
        catalog = _catalog(ctx.obj)
        entity = catalog.resolve(entity_id)
        rows = catalog.list(
            entity.cik, form=form, date_from=lower, date_to=upper, limit=query_limit, offset=offset
        )
        return [row.to_dict() for row in rows]

    _execute(ctx, "filings list", handler)


@filings_app.command("get")
def filings_get(
    ctx: typer.Context,
    entity_id: str = typer.Option(..., "--id", help="Ticker or CIK"),
    accession: str = typer.Option(..., "--accession", help="XXXXXXXXXX-XX-XXXXXX"),
    output_format: str = typer.Option("url", "--format", help="|".join(OUTPUT_FORMATS)),
) -> None:
    """Fetch one filing's primary document."""

    def handler() -> Dict[str, Any]:
        catalog = _catalog(ctx.obj)
        entity = catalog.resolve(entity_id)
        content = catalog.fetch(entity.cik, accession, output_format)
        return {"accession": accession, "format": output_format, "content": content}

    _execute(ctx, "filings get", handler)


@facts_app.command("get")
def facts_get(
    ctx: typer.Context,
    entity_id: str = typer.Option(..., "--id", help="Ticker or CIK"),
    taxonomy: Optional[str] = typer.Option(None, "--taxonomy", help="us-gaap|dei"),
    concept: Optional[str] = typer.Option(None, "--concept", help="XBRL concept, e.g. Revenues"),
    unit: Optional[str] = typer.Option(None, "--unit", help="Unit of measure, e.g. USD"),
    latest: bool = typer.Option(False, "--latest", help="Only the latest point per unit"),
) -> None:
    """Fetch XBRL company facts, summarized or for one concept."""

    def handler() -> Dict[str, Any]:
        validate_taxonomy(taxonomy)
        catalog = _catalog(ctx.obj)
        entity = catalog.resolve(entity_id)
        return company_facts_view(
            entity,
            catalog.company_facts(entity.cik),
            taxonomy=taxonomy,
            concept=concept,
            unit=unit,
            latest=latest,
        )

    _execute(ctx, "facts get", handler)


@research_app.command("sync")
def research_sync(
    ctx: typer.Context,
    entity_id: str = typer.Option(..., "--id", help="Ticker or CIK"),
    profile: str = typer.Option(AppConfig().profile, "--profile", help="core|events|financials"),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Cache root directory"),
    refresh: bool = typer.Option(False, "--refresh", help="Re-fetch cached filings"),
) -> None:
    """Sync a company's filing corpus into the local cache."""
    _execute(
        ctx,
        "research sync",
        lambda: research.sync(
            entity_id,
            profile,
            catalog=_catalog(ctx.obj),
            cache_root=_resolve_cache_root(cache_dir),
            refresh=refresh,
        ),
    )


@research_app.command("ask")
def research_ask(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Question or keywords"),
    docs: List[str] = typer.Option([], "--doc", help="Local document path (repeatable)"),
    manifest: Optional[str] = typer.Option(None, "--manifest", help="JSON manifest of doc paths"),
    entity_id: Optional[str] = typer.Option(None, "--id", help="Ticker or CIK to search"),
    profile: str = typer.Option(AppConfig().profile, "--profile", help="core|events|financials"),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Cache root directory"),
    refresh: bool = typer.Option(False, "--refresh", help="Re-sync before searching"),
    no_sync: bool = typer.Option(False, "--no-sync", help="Never sync a missing corpus"),
    forms: List[str] = typer.Option([], "--form", help="Restrict to form types (repeatable)"),
    date_from: Optional[str] = typer.Option(None, "--from", help="Lower filing-date bound"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Upper filing-date bound"),
    top_k: int = typer.Option(AppConfig().top_k, "--top-k", help="Number of results"),
    chunk_lines: int = typer.Option(AppConfig().chunk_lines, "--chunk-lines", help="Lines per chunk"),
    chunk_overlap: int = typer.Option(
        AppConfig().chunk_overlap, "--chunk-overlap", help="Overlapping lines between chunks"
    ),
    max_workers: int = typer.Option(
        AppConfig().max_workers, "--max-workers", min=1, help="Concurrent document reads"
    ),
) -> None:
    """Rank document chunks against a query."""

    def handler() -> Dict[str, Any]:
        if entity_id is None:
            return research.ask_explicit(
                query,
                doc_paths=docs,
                manifest_path=manifest,
                top_k=top_k,
                chunk_lines=chunk_lines,
                chunk_overlap=chunk_overlap,
                max_workers=max_workers,
            )
        return research.ask_by_entity(
            entity_id,
            query,
            catalog=_catalog(ctx.obj),
            cache_root=_resolve_cache_root(cache_dir),
            profile=profile,
            refresh=refresh,
            auto_sync=not no_sync,
            forms=forms,
            date_from=parse_date(date_from, "--from") if date_from else None,
            date_to=parse_date(date_to, "--to") if date_to else None,
            top_k=top_k,
            chunk_lines=chunk_lines,
            chunk_overlap=chunk_overlap,
            max_workers=max_workers,
        )

    _execute(ctx, "research ask", handler)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting API on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")
