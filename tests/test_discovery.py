from datetime import datetime, timedelta

import pytest

from apps.engine.discovery import DiscoveryService, is_compatible
from apps.engine.swipes import SwipeService
from core.errors import NotFoundError, ValidationError

# ~50 km north of the default Berlin location
FIFTY_KM_NORTH = {"latitude": 52.52 + 0.4497, "longitude": 13.405}


def uids(candidates) -> list[str]:
    return [candidate.profile.uid for candidate in candidates]


async def test_compatible_pair_discovers_each_other(db, add_profile):
    await add_profile("alice", gender="female", looking_for="male")
    await add_profile("bob", gender="male", looking_for="female")
    service = DiscoveryService(db)

    assert uids(await service.fetch_profiles("alice", 10)) == ["bob"]
    assert uids(await service.fetch_profiles("bob", 10)) == ["alice"]


async def test_requester_never_sees_self(db, add_profile):
    await add_profile("alice")
    assert await DiscoveryService(db).fetch_profiles("alice", 10) == []


async def test_swiped_profiles_are_excluded(db, add_profile):
    for uid in ("alice", "bob", "carol", "dave"):
        await add_profile(uid)
    swipes = SwipeService(db)
    await swipes.record_swipe("alice", "bob", "pass")
    await swipes.record_swipe("alice", "carol", "like")

    assert uids(await DiscoveryService(db).fetch_profiles("alice", 10)) == ["dave"]


async def test_being_swiped_on_does_not_exclude(db, add_profile):
    await add_profile("alice")
    await add_profile("bob")
    await SwipeService(db).record_swipe("bob", "alice", "pass")

    assert uids(await DiscoveryService(db).fetch_profiles("alice", 10)) == ["bob"]


async def test_unswiped_profiles_resurface(db, add_profile):
    await add_profile("alice")
    await add_profile("bob")
    service = DiscoveryService(db)

    assert uids(await service.fetch_profiles("alice", 10)) == ["bob"]
    assert uids(await service.fetch_profiles("alice", 10)) == ["bob"]


async def test_tighter_radius_governs(db, add_profile):
    await add_profile("alice", distance_radius_km=10.0)
    await add_profile("bob", distance_radius_km=100.0, **FIFTY_KM_NORTH)
    service = DiscoveryService(db)

    assert await service.fetch_profiles("alice", 10) == []
    assert await service.fetch_profiles("bob", 10) == []


async def test_distance_within_both_radii(db, add_profile):
    await add_profile("alice", distance_radius_km=60.0)
    await add_profile("bob", distance_radius_km=100.0, **FIFTY_KM_NORTH)

    candidates = await DiscoveryService(db).fetch_profiles("alice", 10)

    assert uids(candidates) == ["bob"]
    assert candidates[0].distance_km == pytest.approx(50.0, abs=0.5)


async def test_male_seeker_and_nearby_match_discover_each_other(db, add_profile):
    await add_profile("a", gender="male", looking_for="everyone", age=25, age_min=18, age_max=30, distance_radius_km=50.0)
    # 0.08993 degrees of latitude is about 10 km
    await add_profile(
        "b", gender="female", looking_for="male", age=25, distance_radius_km=100.0, latitude=52.52 + 0.08993
    )
    service = DiscoveryService(db)

    found = await service.fetch_profiles("a", 10)
    assert uids(found) == ["b"]
    assert found[0].distance_km == pytest.approx(10.0, abs=0.1)
    assert uids(await service.fetch_profiles("b", 10)) == ["a"]


async def test_gender_preference_must_be_mutual(db, add_profile):
    await add_profile("alice", gender="female", looking_for="male")
    await add_profile("bob", gender="male", looking_for="male")
    await add_profile("chris", gender="other", looking_for="everyone")
    await add_profile("dave", gender="other", looking_for="everyone")
    service = DiscoveryService(db)

    # bob is not looking for women; chris and dave are not male
    assert await service.fetch_profiles("alice", 10) == []
    assert uids(await service.fetch_profiles("chris", 10)) == ["dave"]


async def test_age_range_must_be_mutual(db, add_profile):
    await add_profile("alice", age=25, age_min=30, age_max=40)
    await add_profile("bob", age=35, age_min=18, age_max=30)
    await add_profile("carol", age=45, age_min=18, age_max=30)
    service = DiscoveryService(db)

    assert uids(await service.fetch_profiles("alice", 10)) == ["bob"]
    # carol is 45, outside bob's range
    assert uids(await service.fetch_profiles("bob", 10)) == ["alice"]
    assert await service.fetch_profiles("carol", 10) == []


async def test_incomplete_profiles_are_not_candidates(db, add_profile):
    await add_profile("alice")
    await add_profile("bob", profile_complete=False)

    assert await DiscoveryService(db).fetch_profiles("alice", 10) == []


async def test_profiles_without_coordinates_are_excluded(db, add_profile):
    await add_profile("alice")
    await add_profile("bob", latitude=None, longitude=None)

    assert await DiscoveryService(db).fetch_profiles("alice", 10) == []


async def test_results_follow_recent_activity(db, add_profile):
    now = datetime.utcnow()
    await add_profile("alice", last_active=now)
    await add_profile("bob", last_active=now - timedelta(hours=5))
    await add_profile("carol", last_active=now - timedelta(minutes=1))
    await add_profile("dave", last_active=now - timedelta(days=2))

    assert uids(await DiscoveryService(db).fetch_profiles("alice", 10)) == ["carol", "bob", "dave"]


async def test_batch_size_caps_results(db, add_profile):
    now = datetime.utcnow()
    await add_profile("alice", last_active=now)
    for index in range(5):
        await add_profile(f"user-{index}", last_active=now - timedelta(minutes=index + 1))

    assert uids(await DiscoveryService(db).fetch_profiles("alice", 2)) == ["user-0", "user-1"]


async def test_exclusions_do_not_starve_the_batch(db, add_profile):
    now = datetime.utcnow()
    await add_profile("alice", last_active=now)
    for index in range(6):
        await add_profile(f"user-{index}", last_active=now - timedelta(minutes=index + 1))
    swipes = SwipeService(db)
    for index in range(3):
        await swipes.record_swipe("alice", f"user-{index}", "pass")

    assert uids(await DiscoveryService(db).fetch_profiles("alice", 3)) == ["user-3", "user-4", "user-5"]


@pytest.mark.parametrize("max_count", [0, -1, 101])
async def test_max_count_out_of_range(db, add_profile, max_count):
    await add_profile("alice")
    with pytest.raises(ValidationError):
        await DiscoveryService(db).fetch_profiles("alice", max_count)


async def test_missing_requester(db):
    with pytest.raises(NotFoundError):
        await DiscoveryService(db).fetch_profiles("ghost", 10)


async def test_incomplete_requester(db, add_profile):
    await add_profile("alice", profile_complete=False)
    with pytest.raises(NotFoundError):
        await DiscoveryService(db).fetch_profiles("alice", 10)


async def test_is_compatible_returns_distance(db, add_profile):
    alice = await add_profile("alice")
    bob = await add_profile("bob")

    assert is_compatible(alice, bob) == 0.0
