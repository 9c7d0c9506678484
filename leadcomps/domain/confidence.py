# leadcomps/domain/confidence.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from .parsing import ensure_aware_utc
from .property_types import broad_category, clean_type
from .types import Comparable

# (upper bound inclusive, factor); anything past the last bound gets the tail factor.
RECENCY_STEPS: Sequence[tuple[float, float]] = ((6, 1.0), (12, 0.9), (18, 0.8))
RECENCY_TAIL = 0.7

DISTANCE_STEPS: Sequence[tuple[float, float]] = ((0.5, 1.0), (1, 0.95), (2, 0.90), (3, 0.85))
DISTANCE_TAIL = 0.70

BEDROOM_FACTORS = {0: 1.0, 1: 0.9}
BEDROOM_TAIL = 0.8

TYPE_MATCH = 1.0
TYPE_SAME_CATEGORY = 0.95
TYPE_MISMATCH = 0.85

COMPLETENESS_FLOOR = 0.9
COMPLETENESS_WEIGHT = 0.1

_DAYS_PER_MONTH = 30


def _stepped(value: float, steps: Sequence[tuple[float, float]], tail: float) -> float:
    for bound, factor in steps:
        if value <= bound:
            return factor
    return tail


def months_since(sale_date: datetime, now: datetime) -> float:
    delta = ensure_aware_utc(now) - ensure_aware_utc(sale_date)
    return delta.total_seconds() / (60 * 60 * 24 * _DAYS_PER_MONTH)


def recency_factor(sale_date: datetime, now: datetime) -> float:
    return _stepped(months_since(sale_date, now), RECENCY_STEPS, RECENCY_TAIL)


def distance_factor(distance: float | None) -> float:
    if distance is None:
        return 1.0
    return _stepped(distance, DISTANCE_STEPS, DISTANCE_TAIL)


def bedroom_factor(bedrooms: int | None, target_bedrooms: int | None) -> float:
    # 0 is treated as unknown on either side
    if not bedrooms or not target_bedrooms:
        return 1.0
    return BEDROOM_FACTORS.get(abs(bedrooms - target_bedrooms), BEDROOM_TAIL)


def property_type_factor(property_type: str | None, target_property_type: str | None) -> float:
    comp = clean_type(property_type)
    target = clean_type(target_property_type)
    if comp is None or target is None:
        return 1.0
    if comp in target or target in comp:
        return TYPE_MATCH
    category = broad_category(target)
    if category is not None and category == broad_category(comp):
        return TYPE_SAME_CATEGORY
    return TYPE_MISMATCH


def completeness_factor(distance: float | None, floor_area: float | None) -> float:
    completeness = 0.0
    if distance is not None:
        completeness += 0.5
    if floor_area is not None and floor_area > 0:
        completeness += 0.5
    return COMPLETENESS_FLOOR + COMPLETENESS_WEIGHT * completeness


def score_comparable(
    comp: Comparable,
    *,
    target_bedrooms: int | None = None,
    target_property_type: str | None = None,
    now: datetime | None = None,
) -> float:
    """
    Trustworthiness of one comparable as a value signal for the target lead.

    The score is the *product* of recency, distance, bedroom similarity,
    property type similarity and data completeness, so a single weak factor
    pulls the whole score down. Factors whose inputs are unknown contribute 1.0.
    Always within [0, 1].
    """
    now = now or datetime.now(timezone.utc)

    score = 1.0
    score *= recency_factor(comp.sale_date, now)
    score *= distance_factor(comp.distance)
    score *= bedroom_factor(comp.bedrooms, target_bedrooms)
    score *= property_type_factor(comp.property_type, target_property_type)
    score *= completeness_factor(comp.distance, comp.floor_area)

    return max(0.0, min(1.0, score))
