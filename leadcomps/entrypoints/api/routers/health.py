# leadcomps/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from ....config import settings
from ....service_layer.comparables import reset_global_stats, snapshot_global_stats

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/cache-stats")
def debug_cache_stats(reset: bool = Query(default=False)) -> dict[str, Any]:
    stats = snapshot_global_stats()
    if reset:
        reset_global_stats()
    return {
        "comparables_cache": stats,
        "freshness_hours": settings.COMPS_FRESHNESS_HOURS,
        "source": settings.COMPARABLES_SOURCE,
    }
