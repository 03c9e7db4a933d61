"""SEC-backed identity resolution, filing listing and filing content."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from edgarlens.errors import NotFoundError, ParseError, ValidationError
from edgarlens.ingestion.html_loader import html_to_markdown, html_to_text
from edgarlens.models import FilingRow, ResolvedEntity
from edgarlens.sec.client import SecClient
from edgarlens.sec.endpoints import (
    company_facts_url,
    filing_document_url,
    submissions_url,
    ticker_map_url,
)
from edgarlens.sec.normalizers import (
    date_in_range,
    is_likely_cik,
    normalize_accession,
    normalize_cik,
    normalize_ticker,
)

LOGGER = logging.getLogger(__name__)

TICKER_MAP_TTL_SECONDS = 15 * 60
OUTPUT_FORMATS = ("url", "html", "text", "markdown")


def zip_recent_filings(cik: str, recent: Optional[Dict[str, Any]]) -> List[FilingRow]:
    """Turn the column-oriented ``filings.recent`` block into rows."""
    if not recent:
        return []

    accessions = recent.get("accessionNumber") or []
    forms = recent.get("form") or []
    filing_dates = recent.get("filingDate") or []
    report_dates = recent.get("reportDate") or []
    primary_documents = recent.get("primaryDocument") or []

    def column(values: List[Any], idx: int) -> Optional[Any]:
        return values[idx] if idx < len(values) and values[idx] != "" else None

    rows: List[FilingRow] = []
    for idx, accession in enumerate(accessions):
        if not accession:
            continue
        primary_document = column(primary_documents, idx)
        rows.append(
            FilingRow(
                accession=accession,
                form=column(forms, idx),
                filing_date=column(filing_dates, idx),
                report_date=column(report_dates, idx),
                primary_document=primary_document,
                filing_url=(
                    filing_document_url(cik, accession, primary_document)
                    if primary_document
                    else None
                ),
            )
        )
    return rows


class SecCatalog:
    """Implements the resolver, catalog and content-provider protocols."""

    def __init__(self, client: SecClient) -> None:
        self.client = client
        self._ticker_map: Optional[List[Dict[str, Any]]] = None
        self._ticker_map_loaded_at = 0.0

    def _records(self) -> List[Dict[str, Any]]:
        now = time.monotonic()
        if self._ticker_map is not None and now - self._ticker_map_loaded_at < TICKER_MAP_TTL_SECONDS:
            return self._ticker_map

        payload = self.client.fetch_json(ticker_map_url())
        values = payload.values() if isinstance(payload, dict) else payload
        records = [
            record
            for record in values
            if isinstance(record, dict)
            and isinstance(record.get("cik_str"), int)
            and isinstance(record.get("ticker"), str)
        ]
        self._ticker_map = records
        self._ticker_map_loaded_at = now
        LOGGER.debug("Loaded %d ticker map records", len(records))
        return records

    def resolve(self, entity_id: str, *, strict: bool = False) -> ResolvedEntity:
        """Resolve a ticker or CIK to canonical SEC identity fields."""
        records = self._records()

        if is_likely_cik(entity_id):
            cik = normalize_cik(entity_id)
            cik_numeric = int(cik)
            match = next((r for r in records if r["cik_str"] == cik_numeric), None)
            if match is None and strict:
                raise NotFoundError(f"No SEC ticker-map record found for CIK {cik}")
            return ResolvedEntity(
                input=entity_id,
                cik=cik,
                cik_numeric=cik_numeric,
                ticker=match["ticker"] if match else None,
                title=match.get("title") if match else None,
            )

        ticker = normalize_ticker(entity_id)
        match = next((r for r in records if r["ticker"].upper() == ticker), None)
        if match is None:
            raise NotFoundError(f"No SEC ticker-map record found for ticker {ticker}")
        return ResolvedEntity(
            input=entity_id,
            cik=str(match["cik_str"]).zfill(10),
            cik_numeric=match["cik_str"],
            ticker=match["ticker"],
            title=match.get("title"),
        )

    def _recent_rows(self, cik: str) -> List[FilingRow]:
        submissions = self.client.fetch_json(submissions_url(cik))
        recent = (submissions.get("filings") or {}).get("recent") if isinstance(submissions, dict) else None
        return zip_recent_filings(cik, recent)

    def list(
        self,
        cik: str,
        *,
        form: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[FilingRow]:
        """List recent filings newest first, filtered and paged."""
        wanted_form = form.upper() if form else None
        matches: List[FilingRow] = []
        for row in self._recent_rows(cik):
            if wanted_form and (row.form or "").upper() != wanted_form:
                continue
            if not row.filing_date:
                if date_from or date_to:
                    continue
            elif not date_in_range(row.filing_date, date_from, date_to):
                continue
            matches.append(row)

        end = None if limit is None else offset + limit
        return matches[offset:end]

    def fetch(self, cik: str, accession: str, output_format: str = "markdown") -> str:
        """Fetch a filing's primary document in the requested format."""
        if output_format not in OUTPUT_FORMATS:
            raise ValidationError(f"--format must be one of {'|'.join(OUTPUT_FORMATS)}")
        accession = normalize_accession(accession)

        match = next((row for row in self._recent_rows(cik) if row.accession == accession), None)
        if match is None:
            raise NotFoundError(f"Accession {accession} not found in recent submissions for {cik}")
        if not match.primary_document or not match.filing_url:
            raise NotFoundError(f"No primary document found for accession {accession}")

        if output_format == "url":
            return match.filing_url

        content = self.client.fetch_text(match.filing_url)
        if output_format == "html":
            return content
        if output_format == "text":
            return html_to_text(content)
        return html_to_markdown(content)

    def company_facts(self, cik: str) -> Dict[str, Any]:
        """Fetch the XBRL company facts payload for one company."""
        payload = self.client.fetch_json(company_facts_url(cik))
        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected company facts payload for {cik}")
        return payload
