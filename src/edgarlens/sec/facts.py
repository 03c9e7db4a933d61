"""Summaries and lookups over SEC XBRL company facts."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from edgarlens.errors import NotFoundError, ValidationError
from edgarlens.models import ResolvedEntity

TAXONOMIES = ("us-gaap", "dei")


def validate_taxonomy(taxonomy: Optional[str]) -> Optional[str]:
    if taxonomy is not None and taxonomy not in TAXONOMIES:
        raise ValidationError("--taxonomy must be us-gaap or dei")
    return taxonomy


def concept_summary(taxonomy_facts: Dict[str, Any]) -> List[Dict[str, Any]]:
    """One row per concept with its label and available units, sorted by name."""
    rows = []
    for concept, payload in taxonomy_facts.items():
        units = list((payload.get("units") or {}).keys())
        rows.append(
            {
                "concept": concept,
                "label": payload.get("label"),
                "unit_count": len(units),
                "units": units,
            }
        )
    return sorted(rows, key=lambda row: row["concept"].lower())


def pick_latest(points: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Most recently filed point, falling back to period end when undated."""
    if not points:
        return None
    return max(points, key=lambda point: point.get("filed") or point.get("end") or "")


def select_taxonomy(
    all_facts: Dict[str, Dict[str, Any]], concept: str, taxonomy: Optional[str] = None
) -> str:
    if taxonomy:
        if taxonomy not in all_facts:
            raise NotFoundError(f"Taxonomy {taxonomy} not found")
        return taxonomy

    for candidate in (*TAXONOMIES, *all_facts):
        if concept in all_facts.get(candidate, {}):
            return candidate
    raise NotFoundError(f"Concept {concept} not found in company facts")


def company_facts_view(
    entity: ResolvedEntity,
    payload: Dict[str, Any],
    *,
    taxonomy: Optional[str] = None,
    concept: Optional[str] = None,
    unit: Optional[str] = None,
    latest: bool = False,
) -> Dict[str, Any]:
    """Shape a company facts payload for output.

    Without a concept this summarizes taxonomies, or the concepts of one
    taxonomy. With a concept it returns that concept's points per unit, or
    only the latest point per unit when ``latest`` is set.
    """
    validate_taxonomy(taxonomy)
    all_facts: Dict[str, Dict[str, Any]] = payload.get("facts") or {}
    base = {"cik": entity.cik, "entityName": payload.get("entityName")}

    if not concept:
        if taxonomy:
            if taxonomy not in all_facts:
                raise NotFoundError(f"Taxonomy {taxonomy} not found")
            return {
                **base,
                "taxonomy": taxonomy,
                "concept_count": len(all_facts[taxonomy]),
                "concepts": concept_summary(all_facts[taxonomy]),
            }
        return {
            **base,
            "taxonomies": {
                name: {"concept_count": len(facts)} for name, facts in all_facts.items()
            },
        }

    taxonomy = select_taxonomy(all_facts, concept, taxonomy)
    concept_data = all_facts[taxonomy].get(concept)
    if concept_data is None:
        raise NotFoundError(f"Concept {concept} not found in taxonomy {taxonomy}")

    units: Dict[str, List[Dict[str, Any]]] = concept_data.get("units") or {}
    if unit:
        if unit not in units:
            raise NotFoundError(f"Unit {unit} not found for {taxonomy}:{concept}")
        units = {unit: units[unit]}

    data = {
        **base,
        "taxonomy": taxonomy,
        "concept": concept,
        "label": concept_data.get("label"),
        "description": concept_data.get("description"),
    }
    if latest:
        data["latest"] = {name: pick_latest(points) for name, points in units.items()}
    else:
        data["units"] = units
    return data
