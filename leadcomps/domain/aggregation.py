# leadcomps/domain/aggregation.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .parsing import round2, round_half_up
from .types import Comparable, ComparableSummary, ConfidenceLevel, ValueRange


@dataclass(frozen=True)
class ConfidenceRule:
    level: ConfidenceLevel
    min_count: int
    min_mean_score: float

    def matches(self, count: int, mean_score: float) -> bool:
        return count >= self.min_count and mean_score >= self.min_mean_score


# Evaluated top to bottom; LOW when nothing matches.
CONFIDENCE_RULES: tuple[ConfidenceRule, ...] = (
    ConfidenceRule(ConfidenceLevel.HIGH, min_count=5, min_mean_score=0.8),
    ConfidenceRule(ConfidenceLevel.MEDIUM, min_count=3, min_mean_score=0.6),
)


def classify_confidence(
    count: int,
    mean_score: float | None,
    rules: Sequence[ConfidenceRule] = CONFIDENCE_RULES,
    default: ConfidenceLevel = ConfidenceLevel.LOW,
) -> ConfidenceLevel:
    if count <= 0 or mean_score is None:
        return default
    for rule in rules:
        if rule.matches(count, mean_score):
            return rule.level
    return default


def _mean(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values)


def price_per_sqft(comp: Comparable) -> int | None:
    if comp.floor_area is None or comp.floor_area <= 0:
        return None
    return round_half_up(comp.sale_price / comp.floor_area)


def sort_comparables(comps: Iterable[Comparable]) -> list[Comparable]:
    """Closest first (unknown distance last), then most recent sale first."""
    by_date = sorted(comps, key=lambda c: c.sale_date, reverse=True)
    return sorted(by_date, key=lambda c: (c.distance is None, c.distance or 0.0))


def summarize(
    comps: Sequence[Comparable],
    rules: Sequence[ConfidenceRule] = CONFIDENCE_RULES,
) -> ComparableSummary:
    """
    Reduce a scored comparable set to summary statistics.

    An empty set is a distinct "no data" state: LOW confidence and every
    numeric aggregate None rather than 0. Rental yield figures are computed
    only over comparables that carry a yield.
    """
    if not comps:
        return ComparableSummary(
            count=0,
            avg_price=None,
            price_range=None,
            avg_rental_yield=None,
            rental_yield_range=None,
            mean_confidence=None,
            confidence=ConfidenceLevel.LOW,
        )

    prices = [c.sale_price for c in comps]
    yields = [c.rental_yield for c in comps if c.rental_yield is not None]
    scores = [c.confidence if c.confidence is not None else 0.0 for c in comps]

    mean_score = _mean(scores)

    return ComparableSummary(
        count=len(comps),
        avg_price=round_half_up(_mean(prices)),
        price_range=ValueRange(min=min(prices), max=max(prices)),
        avg_rental_yield=round2(_mean(yields)) if yields else None,
        rental_yield_range=ValueRange(min=min(yields), max=max(yields)) if yields else None,
        mean_confidence=mean_score,
        confidence=classify_confidence(len(comps), mean_score, rules),
    )
