"""SEC EDGAR URL builders."""

from __future__ import annotations

from edgarlens.sec.normalizers import normalize_accession, normalize_cik

SEC_DATA_HOST = "https://data.sec.gov"
SEC_WWW_HOST = "https://www.sec.gov"


def submissions_url(cik: str) -> str:
    return f"{SEC_DATA_HOST}/submissions/CIK{normalize_cik(cik)}.json"


def ticker_map_url() -> str:
    return f"{SEC_WWW_HOST}/files/company_tickers.json"


def filing_document_url(cik: str, accession: str, primary_document: str) -> str:
    cik_numeric = str(int(normalize_cik(cik)))
    accession_digits = normalize_accession(accession).replace("-", "")
    return f"{SEC_WWW_HOST}/Archives/edgar/data/{cik_numeric}/{accession_digits}/{primary_document}"


def company_facts_url(cik: str) -> str:
    return f"{SEC_DATA_HOST}/api/xbrl/companyfacts/CIK{normalize_cik(cik)}.json"
