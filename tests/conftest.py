"""Shared fixtures: an in-memory SEC catalog and sample filings."""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from edgarlens.errors import NotFoundError
from edgarlens.models import FilingRow, ResolvedEntity

CIK = "0000320193"


def days_ago(days: int) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


class FakeCatalog:
    """Stands in for SecCatalog: resolver, catalog and content provider."""

    def __init__(
        self,
        rows: List[FilingRow],
        contents: Dict[str, str],
        facts: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.rows = rows
        self.contents = contents
        self.facts = facts or {}
        self.list_calls: List[tuple] = []
        self.fetch_calls: List[str] = []

    def resolve(self, entity_id: str) -> ResolvedEntity:
        return ResolvedEntity(
            input=entity_id, cik=CIK, cik_numeric=320193, ticker="AAPL", title="Apple Inc."
        )

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
        self.list_calls.append((form, date_from, limit))
        rows = [row for row in self.rows if form is None or row.form == form]
        if date_from:
            rows = [row for row in rows if row.filing_date and row.filing_date >= date_from]
        end = None if limit is None else offset + limit
        return rows[offset:end]

    def fetch(self, cik: str, accession: str, output_format: str = "markdown") -> str:
        self.fetch_calls.append(accession)
        if accession not in self.contents:
            raise NotFoundError(f"No primary document found for accession {accession}")
        return self.contents[accession]

    def company_facts(self, cik: str) -> Dict[str, Any]:
        if not self.facts:
            raise NotFoundError(f"SEC resource not found for CIK {cik}")
        return self.facts


@pytest.fixture
def filing_rows() -> List[FilingRow]:
    return [
        FilingRow("0000320193-26-000111", "8-K", days_ago(5), days_ago(5)),
        FilingRow("0000320193-26-000112", "10-Q", days_ago(20), days_ago(40)),
        FilingRow("0000320193-25-000079", "10-K", days_ago(100), days_ago(120)),
        FilingRow("0000320193-25-000210", "8-K", days_ago(60), days_ago(60)),
        FilingRow("0000320193-24-000001", "8-K", days_ago(400), days_ago(400)),
    ]


@pytest.fixture
def filing_contents() -> Dict[str, str]:
    return {
        "0000320193-26-000111": "## Item 5.02\n\nDirector resigned effective immediately.",
        "0000320193-26-000112": "## Item 2\n\nManagement discussion indicates revenue growth.",
        "0000320193-25-000079": "## Item 1A Risk Factors\n\nSupply chain and macroeconomic risks.",
        "0000320193-25-000210": "## Item 8.01\n\nProduct launch event update.",
        "0000320193-24-000001": "## Item 7.01\n\nOld regulation FD disclosure.",
    }


@pytest.fixture
def company_facts() -> Dict[str, Any]:
    return {
        "cik": 320193,
        "entityName": "Apple Inc.",
        "facts": {
            "dei": {
                "EntityCommonStockSharesOutstanding": {
                    "label": "Entity Common Stock, Shares Outstanding",
                    "units": {
                        "shares": [
                            {"end": "2025-10-17", "val": 14776353000, "filed": "2025-10-31"},
                            {"end": "2026-01-16", "val": 14681140000, "filed": "2026-01-30"},
                        ]
                    },
                }
            },
            "us-gaap": {
                "Revenues": {
                    "label": "Revenues",
                    "description": "Amount of revenue recognized.",
                    "units": {
                        "USD": [
                            {"end": "2025-06-28", "val": 94036000000, "filed": "2025-08-01"},
                            {"end": "2025-12-27", "val": 143756000000, "filed": "2026-01-30"},
                            {"end": "2025-09-27", "val": 102466000000, "filed": "2025-10-31"},
                        ]
                    },
                },
                "AccountsPayableCurrent": {
                    "label": "Accounts Payable, Current",
                    "units": {"USD": []},
                },
            },
            "srt": {
                "SegmentRevenue": {"label": "Segment Revenue", "units": {"USD": []}},
            },
        },
    }


@pytest.fixture
def fake_catalog(filing_rows, filing_contents, company_facts) -> FakeCatalog:
    return FakeCatalog(filing_rows, filing_contents, company_facts)


@pytest.fixture
def resignation_doc(tmp_path: Path) -> Path:
    path = tmp_path / "nvda-8k.md"
    path.write_text(
        "\n".join(
            [
                "# Item 5.02",
                "Persis Drell resigned from the Board effective immediately.",
                "No disagreement with company operations.",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def management_doc(tmp_path: Path) -> Path:
    path = tmp_path / "aapl-10k.md"
    path.write_text(
        "\n".join(
            [
                "# Item 7",
                "Management discussion includes net sales and gross margin analysis.",
                "Risk factors are discussed in Item 1A.",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def quarterly_doc(tmp_path: Path) -> Path:
    path = tmp_path / "msft-10q.md"
    path.write_text(
        "\n".join(
            [
                "For the quarterly period ended December 31, 2025",
                "Securities registered pursuant to Section 12(b) of the Act.",
                "Indicate by check mark whether the registrant has filed all required reports.",
                "| Title of each class | Trading Symbol | Name of exchange |",
                "| --- | --- | --- |",
                "| Common stock | MSFT | Nasdaq |",
                "",
                "Management updated quarterly guidance for cloud gross margin.",
                "The company changed guidance after stronger-than-expected AI demand.",
                "Revenue outlook for the latest quarter increased.",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path
