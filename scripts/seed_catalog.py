#!/usr/bin/env python3
"""Seed a bookable vehicle and the sequence counters for local testing."""

import asyncio

from sqlalchemy import select

from app.database import async_session_maker
from app.models.vehicle import Vehicle
from app.services.sequence_service import sequence_service


async def seed_catalog(name: str = "Toyota Yaris", code: str = "YARIS") -> None:
    """Create the vehicle if it doesn't exist and make sure counters exist."""
    async with async_session_maker() as session:
        await sequence_service.ensure_counters(session)

        result = await session.execute(select(Vehicle).where(Vehicle.code == code))
        vehicle = result.scalar_one_or_none()

        if vehicle:
            vehicle.visible = True
            vehicle.name = name
            print(f"Updated existing vehicle: {code}")
        else:
            vehicle = Vehicle(name=name, code=code, visible=True)
            session.add(vehicle)
            print(f"Created vehicle: {code}")

        await session.commit()
        print(f"Vehicle ID: {vehicle.id}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed a bookable vehicle")
    parser.add_argument("--name", default="Toyota Yaris", help="Display name")
    parser.add_argument("--code", default="YARIS", help="Catalog code")

    args = parser.parse_args()

    asyncio.run(seed_catalog(name=args.name, code=args.code))
