"""Projection and truncation of JSON command results."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from edgarlens.errors import ValidationError

VIEWS = ("summary", "full")


def parse_view(raw: Optional[str]) -> str:
    if raw is None:
        return "summary"
    if raw not in VIEWS:
        raise ValidationError("--view must be summary or full")
    return raw


def parse_fields(raw: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated field list, dropping blanks and duplicates."""
    if raw is None:
        return None
    fields = list(dict.fromkeys(part.strip() for part in raw.split(",") if part.strip()))
    if not fields:
        raise ValidationError("--fields requires at least one field")
    return fields


def _project(row: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    return {field: row.get(field) for field in fields}


def apply_fields(data: Any, fields: Sequence[str]) -> Any:
    if isinstance(data, list):
        if not all(isinstance(row, dict) for row in data):
            raise ValidationError(
                "--fields can only be applied to object results or lists of objects"
            )
        return [_project(row, fields) for row in data]
    if isinstance(data, dict):
        return _project(data, fields)
    raise ValidationError("--fields can only be applied to object results or lists of objects")


def shape_data(
    data: Any, *, fields: Optional[Sequence[str]] = None, limit: Optional[int] = None
) -> Tuple[Any, Dict[str, Any]]:
    """Apply ``--fields`` and ``--limit`` to a result.

    Returns the shaped data and the envelope meta entries it adds. Only list
    results are truncated; their meta reports the count before and after.
    """
    meta: Dict[str, Any] = {}
    if isinstance(data, list) and limit is not None:
        if limit < 1:
            raise ValidationError("--limit must be at least 1")
        total = len(data)
        data = data[:limit]
        meta = {
            "total_count": total,
            "returned_count": len(data),
            "truncated": len(data) < total,
        }
    if fields:
        data = apply_fields(data, fields)
    return data, meta
