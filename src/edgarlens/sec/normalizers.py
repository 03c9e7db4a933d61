"""Identifier and date normalization for SEC inputs."""

from __future__ import annotations

import re
from typing import Optional

from edgarlens.errors import ValidationError

CIK_PATTERN = re.compile(r"^\d{1,10}$")
TICKER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9.-]{0,14}$")
ACCESSION_PATTERN = re.compile(r"^\d{10}-\d{2}-\d{6}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_likely_cik(value: str) -> bool:
    return re.fullmatch(r"[0-9]+", value.strip()) is not None


def normalize_cik(value: str) -> str:
    trimmed = value.strip()
    if not CIK_PATTERN.match(trimmed):
        raise ValidationError(f"Invalid CIK: {value}")
    return trimmed.zfill(10)


def normalize_ticker(value: str) -> str:
    trimmed = value.strip()
    if not TICKER_PATTERN.match(trimmed):
        raise ValidationError(f"Invalid ticker: {value}")
    return trimmed.upper()


def normalize_accession(value: str) -> str:
    trimmed = value.strip()
    if not ACCESSION_PATTERN.match(trimmed):
        raise ValidationError("--accession must match XXXXXXXXXX-XX-XXXXXX")
    return trimmed


def parse_date(value: str, arg_name: str) -> str:
    trimmed = value.strip()
    if not DATE_PATTERN.match(trimmed):
        raise ValidationError(f"{arg_name} must use YYYY-MM-DD")
    return trimmed


def date_in_range(value: str, date_from: Optional[str] = None, date_to: Optional[str] = None) -> bool:
    """Compare ISO dates lexically against optional inclusive bounds."""
    if date_from and value < date_from:
        return False
    if date_to and value > date_to:
        return False
    return True
