# scripts/smoke_refresh_local.py
import asyncio
import logging
import os

from leadcomps.adapters.gateways.factory import build_gateway
from leadcomps.config import settings
from leadcomps.service_layer.comparables import CacheStats, refresh_comparables


async def main():
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    lead_id = int(os.environ.get("LEAD_ID", "1"))
    stats = CacheStats()
    res = await refresh_comparables(
        lead_id,
        force_refresh=os.environ.get("FORCE", "0") == "1",
        radius_miles=float(os.environ["RADIUS"]) if os.environ.get("RADIUS") else None,
        gateway=build_gateway(),
        stats=stats,
    )
    print(
        f"count={res.count} avg_price={res.avg_price} avg_yield={res.avg_rental_yield} "
        f"confidence={res.confidence.value} cached={res.cached} stale={res.stale} "
        f"credits={res.credits_used} excluded={res.excluded}"
    )
    if res.message:
        print(res.message)
    print(stats.snapshot())


if __name__ == "__main__":
    asyncio.run(main())
