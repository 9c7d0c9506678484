# leadcomps/entrypoints/api/routers/comparables.py
from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, Query

from ..deps import get_gateway, get_uow_factory, to_http_error
from ....adapters.gateways.base import ComparableSourceGateway
from ....domain.errors import ComparablesError
from ....schemas import AggregateOut, ComparableOut, RefreshRequest
from ....service_layer.comparables import (
    MAX_LISTING_LIMIT,
    get_comparables,
    list_recent_comparables,
    list_top_yield_comparables,
    refresh_comparables,
)
from ....service_layer.unit_of_work import UnitOfWork

router = APIRouter(tags=["comparables"])


@router.post("/leads/{lead_id}/comparables/refresh", response_model=AggregateOut)
async def refresh_lead_comparables(
    lead_id: int,
    body: RefreshRequest | None = None,
    gateway: ComparableSourceGateway = Depends(get_gateway),
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> AggregateOut:
    body = body or RefreshRequest()
    try:
        res = await refresh_comparables(
            lead_id,
            force_refresh=body.force_refresh,
            radius_miles=body.search_radius,
            max_results=body.max_results,
            max_age_months=body.max_age_months,
            gateway=gateway,
            uow_factory=uow_factory,
        )
    except ComparablesError as e:
        raise to_http_error(e) from e
    return AggregateOut.from_result(lead_id, res)


@router.get("/leads/{lead_id}/comparables", response_model=AggregateOut)
async def read_lead_comparables(
    lead_id: int,
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> AggregateOut:
    try:
        res = await get_comparables(lead_id, uow_factory=uow_factory)
    except ComparablesError as e:
        raise to_http_error(e) from e
    return AggregateOut.from_result(lead_id, res)


@router.get("/comparables/recent", response_model=list[ComparableOut])
async def recent_comparables(
    limit: int = Query(10, ge=1, le=MAX_LISTING_LIMIT),
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> list[ComparableOut]:
    rows = await list_recent_comparables(limit, uow_factory=uow_factory)
    return [ComparableOut.from_domain(c, lead_id=lead_id) for lead_id, c in rows]


@router.get("/comparables/top-yields", response_model=list[ComparableOut])
async def top_yield_comparables(
    limit: int = Query(10, ge=1, le=MAX_LISTING_LIMIT),
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> list[ComparableOut]:
    rows = await list_top_yield_comparables(limit, uow_factory=uow_factory)
    return [ComparableOut.from_domain(c, lead_id=lead_id) for lead_id, c in rows]
