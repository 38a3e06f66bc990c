"""Discovery: the queue of candidate profiles a user can swipe on."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.engine.swipes import SwipeService
from core.config import settings
from core.db import storage_call
from core.errors import NotFoundError, ValidationError
from core.geo import haversine_km
from core.metrics import discovery_candidates, discovery_requests_total
from models.user import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A discoverable profile and its distance from the requester."""

    profile: UserProfile
    distance_km: float


def wants_gender(seeker: UserProfile, gender: str) -> bool:
    return seeker.looking_for == "everyone" or seeker.looking_for == gender


def accepts_age(seeker: UserProfile, age: int) -> bool:
    return seeker.age_min <= age <= seeker.age_max


def is_compatible(requester: UserProfile, candidate: UserProfile) -> float | None:
    """
    Mutual compatibility filter.

    Checks run in order and stop at the first failure:
    1. Requester wants the candidate's gender
    2. Candidate wants the requester's gender
    3. Candidate's age is in the requester's range
    4. Requester's age is in the candidate's range
    5. Distance is within both radii (the tighter one governs)

    Returns:
        Distance in km if compatible, None otherwise
    """
    if not wants_gender(requester, candidate.gender):
        return None
    if not wants_gender(candidate, requester.gender):
        return None
    if not accepts_age(requester, candidate.age):
        return None
    if not accepts_age(candidate, requester.age):
        return None

    # Distance cannot be verified without both coordinate pairs
    if not requester.has_coordinates or not candidate.has_coordinates:
        return None

    distance = haversine_km(requester.latitude, requester.longitude, candidate.latitude, candidate.longitude)
    if distance > requester.distance_radius_km or distance > candidate.distance_radius_km:
        return None
    return distance


class DiscoveryService:
    """Builds the swipe queue."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_call
    async def fetch_profiles(self, requester_id: str, max_count: int | None = None) -> list[Candidate]:
        """
        Fetch up to max_count compatible profiles the requester has not swiped on.

        Scans complete profiles by last activity, newest first. The scan window
        is over-fetched by the size of the exclusion set so exclusions do not
        starve the batch. Results keep scan order; they are not re-sorted by
        distance. There is no cursor: each call re-scans from the top, so
        profiles shown but not swiped on can come back on the next call.

        Args:
            requester_id: User asking for candidates
            max_count: Batch size (defaults to settings.discovery_default_batch)

        Returns:
            Candidates in scan order

        Raises:
            ValidationError: If max_count is out of range
            NotFoundError: If the requester has no complete profile
        """
        if max_count is None:
            max_count = settings.discovery_default_batch
        if not 1 <= max_count <= settings.discovery_max_batch:
            raise ValidationError(f"max_count must be between 1 and {settings.discovery_max_batch}")

        discovery_requests_total.inc()

        requester = await self.db.get(UserProfile, requester_id, populate_existing=True)
        if requester is None or not requester.profile_complete:
            raise NotFoundError(f"User profile {requester_id} not found. Please complete onboarding first.")

        swiped_ids = await SwipeService(self.db).get_swiped_user_ids(requester_id)

        window = max_count + len(swiped_ids) + 1
        result = await self.db.execute(
            select(UserProfile)
            .where(UserProfile.profile_complete.is_(True))
            .order_by(UserProfile.last_active.desc(), UserProfile.uid)
            .limit(window)
        )

        candidates: list[Candidate] = []
        for profile in result.scalars().all():
            if profile.uid == requester_id or profile.uid in swiped_ids:
                continue

            distance = is_compatible(requester, profile)
            if distance is None:
                continue

            candidates.append(Candidate(profile=profile, distance_km=distance))
            if len(candidates) >= max_count:
                break

        discovery_candidates.observe(len(candidates))
        logger.debug(f"Discovery for {requester_id}: scanned window={window}, returned={len(candidates)}")
        return candidates
