# scripts/populate_rental_estimates.py
from __future__ import annotations

import argparse
import asyncio
import logging

from leadcomps.config import settings
from leadcomps.service_layer.rental import populate_rental_estimates


async def main() -> None:
    parser = argparse.ArgumentParser(description="Fill heuristic rent estimates for leads missing one.")
    parser.add_argument("--limit", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    res = await populate_rental_estimates(limit=args.limit)
    print(f"Updated {res['updated']} of {res['candidates']} leads with rental estimates.")


if __name__ == "__main__":
    asyncio.run(main())
