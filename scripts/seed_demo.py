# scripts/seed_demo.py
from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import select

from leadcomps.db import create_all
from leadcomps.models import Lead
from leadcomps.service_layer.unit_of_work import SqlAlchemyUnitOfWork

DEMO_LEADS = [
    {"address": "10 Downing Street, London SW1A 2AA", "bedrooms": 2, "property_type": "flat", "asking_price": 650000},
    {"address": "1 Piccadilly, Manchester M1 1RG", "bedrooms": 3, "property_type": "terraced", "asking_price": 240000},
    {"address": "4 Mill Lane, Truro TR1 2AB", "bedrooms": 4, "property_type": "detached house", "asking_price": 420000},
]


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--force", action="store_true", help="Insert demo leads even if addresses already exist")
    args = parser.parse_args()

    await create_all()

    created = 0
    async with SqlAlchemyUnitOfWork() as uow:
        for payload in DEMO_LEADS:
            # naive idempotency: match on address
            existing = (
                await uow.session.execute(select(Lead).where(Lead.address == payload["address"]))
            ).scalars().first()
            if existing and not args.force:
                continue
            lead = await uow.leads.create(**payload)
            created += 1
            print(f"lead {lead.id}: {lead.address} postcode={lead.postcode}")

    print(f"Seeded {created} demo leads.")


if __name__ == "__main__":
    asyncio.run(main())
