# leadcomps/service_layer/search_config.py
from __future__ import annotations

from dataclasses import dataclass

from ..config import settings
from ..domain.errors import InvalidInput
from .unit_of_work import UnitOfWork

DEFAULT_OWNER = "default"

RADIUS_BOUNDS = (0.25, 10.0)
MAX_RESULTS_BOUNDS = (3, 20)
MAX_AGE_MONTHS_BOUNDS = (6, 24)
BEDROOM_TOLERANCE_BOUNDS = (0, 2)
MIN_CONFIDENCE_BOUNDS = (0.0, 1.0)

DEFAULT_BEDROOM_TOLERANCE = 1
DEFAULT_MIN_CONFIDENCE = 0.7


@dataclass(frozen=True)
class SearchParams:
    search_radius: float
    max_results: int
    max_age_months: int
    # saved with the config; refresh does not filter on these
    bedroom_tolerance: int = DEFAULT_BEDROOM_TOLERANCE
    min_confidence_score: float = DEFAULT_MIN_CONFIDENCE


def _check(name: str, value: float, bounds: tuple[float, float], unit: str = "") -> None:
    lo, hi = bounds
    if value < lo or value > hi:
        suffix = f" {unit}" if unit else ""
        raise InvalidInput(f"{name} must be between {lo:g} and {hi:g}{suffix} (got {value:g})")


def validate_search_params(params: SearchParams) -> SearchParams:
    _check("search_radius", params.search_radius, RADIUS_BOUNDS, "miles")
    _check("max_results", params.max_results, MAX_RESULTS_BOUNDS)
    _check("max_age_months", params.max_age_months, MAX_AGE_MONTHS_BOUNDS, "months")
    _check("bedroom_tolerance", params.bedroom_tolerance, BEDROOM_TOLERANCE_BOUNDS)
    _check("min_confidence_score", params.min_confidence_score, MIN_CONFIDENCE_BOUNDS)
    return params


def default_search_params() -> SearchParams:
    return SearchParams(
        search_radius=float(settings.COMPS_DEFAULT_RADIUS_MILES),
        max_results=int(settings.COMPS_DEFAULT_MAX_RESULTS),
        max_age_months=int(settings.COMPS_DEFAULT_MAX_AGE_MONTHS),
    )


async def get_search_config(uow: UnitOfWork, owner_id: str = DEFAULT_OWNER) -> SearchParams:
    cfg = await uow.configs.get(owner_id)
    if cfg is None:
        return default_search_params()
    return SearchParams(
        search_radius=cfg.search_radius,
        max_results=cfg.max_results,
        max_age_months=cfg.max_age_months,
        bedroom_tolerance=cfg.bedroom_tolerance,
        min_confidence_score=cfg.min_confidence_score,
    )


async def save_search_config(uow: UnitOfWork, params: SearchParams, owner_id: str = DEFAULT_OWNER) -> SearchParams:
    validate_search_params(params)
    await uow.configs.upsert(
        owner_id,
        search_radius=params.search_radius,
        max_results=params.max_results,
        max_age_months=params.max_age_months,
        bedroom_tolerance=params.bedroom_tolerance,
        min_confidence_score=params.min_confidence_score,
    )
    return params


async def resolve_search_params(
    uow: UnitOfWork,
    *,
    owner_id: str = DEFAULT_OWNER,
    radius_miles: float | None = None,
    max_results: int | None = None,
    max_age_months: int | None = None,
) -> SearchParams:
    """
    Explicit request values win over the owner's saved config, which wins over settings.
    """
    base = await get_search_config(uow, owner_id)
    params = SearchParams(
        search_radius=float(radius_miles) if radius_miles is not None else base.search_radius,
        max_results=int(max_results) if max_results is not None else base.max_results,
        max_age_months=int(max_age_months) if max_age_months is not None else base.max_age_months,
        bedroom_tolerance=base.bedroom_tolerance,
        min_confidence_score=base.min_confidence_score,
    )
    return validate_search_params(params)
