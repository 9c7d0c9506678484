# leadcomps/entrypoints/api/deps.py
from __future__ import annotations

from typing import Callable

from fastapi import HTTPException

from ...adapters.gateways.base import ComparableSourceGateway
from ...adapters.gateways.factory import build_gateway
from ...domain.errors import ComparablesError, InvalidInput, NotFound, SourceUnavailable
from ...service_layer.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork


def get_gateway() -> ComparableSourceGateway:
    # Overridden in tests via app.dependency_overrides
    return build_gateway()


def get_uow_factory() -> Callable[[], UnitOfWork]:
    return SqlAlchemyUnitOfWork


def to_http_error(e: ComparablesError) -> HTTPException:
    if isinstance(e, InvalidInput):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SourceUnavailable):
        return HTTPException(status_code=503, detail=f"Comparable source unavailable: {e}")
    return HTTPException(status_code=500, detail=str(e))
