#!/usr/bin/env python3
"""
Script to seed demo profiles around a city center and list discovery results.
"""

import asyncio
import os
import random
import sys
from datetime import date

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apps.engine.discovery import DiscoveryService
from apps.engine.profiles import ProfileData, ProfileService
from core.db import AsyncSessionLocal

# Berlin Mitte
CENTER_LAT = 52.5200
CENTER_LON = 13.4050

NAMES = ["Alex", "Sam", "Jordan", "Taylor", "Robin", "Kim", "Noa", "Charlie", "Jamie", "Luca"]
INTERESTS = ["hiking", "coffee", "jazz", "climbing", "cooking", "films", "books", "running"]


def demo_profile(index: int) -> ProfileData:
    """Random but plausible onboarding data near the center."""
    rng = random.Random(index)
    return ProfileData(
        name=NAMES[index % len(NAMES)],
        date_of_birth=date(rng.randint(1985, 2004), rng.randint(1, 12), rng.randint(1, 28)),
        gender=rng.choice(["male", "female", "other"]),
        looking_for=rng.choice(["male", "female", "everyone"]),
        age_min=18,
        age_max=rng.randint(30, 45),
        distance_radius_km=rng.choice([10.0, 25.0, 50.0]),
        bio="Demo profile",
        interests=rng.sample(INTERESTS, 3),
        city="Berlin",
        latitude=CENTER_LAT + rng.uniform(-0.15, 0.15),
        longitude=CENTER_LON + rng.uniform(-0.2, 0.2),
    )


async def seed(count: int) -> None:
    """Create count demo profiles, then show what the first one discovers."""
    async with AsyncSessionLocal() as db:
        service = ProfileService(db)
        for index in range(count):
            uid = f"demo-{index:03d}"
            profile = await service.save_profile(uid, f"{uid}@example.com", demo_profile(index))
            print(f"✅ {uid}: {profile.name}, {profile.age}, {profile.gender} -> {profile.looking_for}")

        print()
        candidates = await DiscoveryService(db).fetch_profiles("demo-000", 10)
        print(f"📝 demo-000 discovers {len(candidates)} profiles:")
        for candidate in candidates:
            print(f"   • {candidate.profile.uid} {candidate.profile.name} ({candidate.distance_km:.1f} km)")


def main() -> None:
    """Main entry point."""
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 20
    asyncio.run(seed(count))


if __name__ == "__main__":
    main()
