# leadcomps/entrypoints/api/routers/config.py
from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends

from ..deps import get_uow_factory, to_http_error
from ....domain.errors import ComparablesError
from ....schemas import ComparablesConfigIn, ComparablesConfigOut
from ....service_layer.search_config import SearchParams, get_search_config, save_search_config
from ....service_layer.unit_of_work import UnitOfWork

router = APIRouter(tags=["config"])


def _out(p: SearchParams) -> ComparablesConfigOut:
    return ComparablesConfigOut(
        search_radius=p.search_radius,
        max_results=p.max_results,
        max_age_months=p.max_age_months,
        bedroom_tolerance=p.bedroom_tolerance,
        min_confidence_score=p.min_confidence_score,
    )


@router.get("/comparables/config", response_model=ComparablesConfigOut)
async def read_config(
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> ComparablesConfigOut:
    async with uow_factory() as uow:
        params = await get_search_config(uow)
    return _out(params)


@router.put("/comparables/config", response_model=ComparablesConfigOut)
async def update_config(
    body: ComparablesConfigIn,
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> ComparablesConfigOut:
    params = SearchParams(
        search_radius=body.search_radius,
        max_results=body.max_results,
        max_age_months=body.max_age_months,
        bedroom_tolerance=body.bedroom_tolerance,
        min_confidence_score=body.min_confidence_score,
    )
    try:
        async with uow_factory() as uow:
            saved = await save_search_config(uow, params)
    except ComparablesError as e:
        raise to_http_error(e) from e
    return _out(saved)
