# leadcomps/domain/rental.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Mapping, Sequence

from .parsing import round2, round_half_up
from .postcodes import DEFAULT_POSTCODE_BUCKETS, PROVINCIAL, PostcodeBucket, classify_postcode
from .property_types import KeywordTable, match_keyword_table
from .types import ConfidenceLevel, RentalEstimate

BASE_YIELD_PCT = 6.0
BASE_CONFIDENCE = ConfidenceLevel.MEDIUM

# First matching row wins. Note 'semi-detached' contains 'detached'.
TYPE_YIELDS: KeywordTable[float | None] = (
    (("flat", "apartment"), 6.5),
    (("detached",), 5.0),
    (("terraced",), 6.5),
    (("semi",), 5.5),
)

# Typical UK internal floor area (sq ft) by bedroom count.
BASE_FLOOR_AREAS: Mapping[int, int] = {1: 500, 2: 750, 3: 1000, 4: 1400, 5: 1800}
FLOOR_AREA_PER_BEDROOM = 400

FLOOR_AREA_TYPE_FACTORS: KeywordTable[float] = (
    (("flat", "apartment"), 0.8),
    (("detached",), 1.3),
    (("semi",), 1.1),
    (("terraced",), 0.9),
)


@dataclass(frozen=True)
class RentalInputs:
    asking_price: float
    property_type: str | None = None
    bedrooms: int | None = None
    postcode: str | None = None


@dataclass(frozen=True)
class YieldState:
    yield_pct: float
    confidence: ConfidenceLevel


Adjustment = Callable[[YieldState, RentalInputs], YieldState]


@dataclass(frozen=True)
class Stage:
    name: str
    apply: Adjustment


def property_type_stage(table: KeywordTable[float | None] = TYPE_YIELDS) -> Stage:
    def _apply(state: YieldState, inputs: RentalInputs) -> YieldState:
        pct = match_keyword_table(inputs.property_type, table, None)
        if pct is None:
            return state
        return replace(state, yield_pct=pct)

    return Stage("property_type", _apply)


def postcode_stage(
    buckets: Sequence[PostcodeBucket] = DEFAULT_POSTCODE_BUCKETS,
    fallback: PostcodeBucket = PROVINCIAL,
) -> Stage:
    """Overrides whatever the property type stage decided."""

    def _apply(state: YieldState, inputs: RentalInputs) -> YieldState:
        bucket = classify_postcode(inputs.postcode, buckets, fallback)
        if bucket is None:
            return state
        return YieldState(yield_pct=bucket.yield_pct, confidence=ConfidenceLevel.MEDIUM)

    return Stage("postcode", _apply)


def bedroom_stage() -> Stage:
    """Last stage. Unknown bedrooms forces LOW no matter what came before."""

    def _apply(state: YieldState, inputs: RentalInputs) -> YieldState:
        beds = inputs.bedrooms
        if not beds:
            return replace(state, confidence=ConfidenceLevel.LOW)
        if beds == 1:
            return YieldState(yield_pct=state.yield_pct + 0.5, confidence=ConfidenceLevel.HIGH)
        if beds == 2:
            return replace(state, confidence=ConfidenceLevel.HIGH)
        if beds >= 4:
            return YieldState(yield_pct=state.yield_pct - 0.5, confidence=ConfidenceLevel.MEDIUM)
        return state

    return Stage("bedrooms", _apply)


DEFAULT_STAGES: tuple[Stage, ...] = (property_type_stage(), postcode_stage(), bedroom_stage())


def run_stages(
    inputs: RentalInputs,
    stages: Sequence[Stage] = DEFAULT_STAGES,
) -> tuple[YieldState, list[tuple[str, YieldState]]]:
    """
    Returns the final state plus the state after each named stage.
    """
    state = YieldState(yield_pct=BASE_YIELD_PCT, confidence=BASE_CONFIDENCE)
    trace: list[tuple[str, YieldState]] = []
    for stage in stages:
        state = stage.apply(state, inputs)
        trace.append((stage.name, state))
    return state, trace


def estimate_rental(
    asking_price: float,
    property_type: str | None = None,
    bedrooms: int | None = None,
    postcode: str | None = None,
    *,
    stages: Sequence[Stage] = DEFAULT_STAGES,
) -> RentalEstimate:
    """
    Rule-based rent estimate for when comparables carry no rental data.
    Callers validate asking_price > 0.
    """
    inputs = RentalInputs(
        asking_price=asking_price,
        property_type=property_type,
        bedrooms=bedrooms,
        postcode=postcode,
    )
    state, _ = run_stages(inputs, stages)

    annual = round_half_up(asking_price * state.yield_pct / 100)
    monthly = round_half_up(annual / 12)
    return RentalEstimate(
        monthly_rent=monthly,
        annual_rent=annual,
        estimated_yield=state.yield_pct,
        confidence=state.confidence,
    )


def estimate_floor_area(
    property_type: str | None = None,
    bedrooms: int | None = None,
    *,
    base_sizes: Mapping[int, int] = BASE_FLOOR_AREAS,
    type_factors: KeywordTable[float] = FLOOR_AREA_TYPE_FACTORS,
) -> int | None:
    if not bedrooms:
        return None
    base = base_sizes.get(bedrooms, bedrooms * FLOOR_AREA_PER_BEDROOM)
    factor = match_keyword_table(property_type, type_factors, 1.0)
    return round_half_up(base * factor)


def rent_per_sqft(monthly_rent: float, floor_area: float) -> float:
    if floor_area <= 0:
        return 0.0
    return round2(monthly_rent / floor_area)
