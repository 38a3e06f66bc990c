"""Match table access: idempotent creation and per-user listings."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.db import storage_call
from core.errors import NotFoundError, ValidationError
from core.keys import match_key
from models.match import Match
from models.user import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchWithUser:
    """A match as seen by one of its members."""

    match: Match
    other_user: UserProfile


class MatchService:
    """Creates and reads matches."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_call
    async def create_match(self, user_id_1: str, user_id_2: str) -> tuple[Match, bool]:
        """
        Create the match for a pair if it does not exist yet.

        The key is the sorted pair, so two concurrent evaluations of the same
        mutual like converge on one row: the loser's insert hits the primary
        key and it reads the winner's row instead.

        Args:
            user_id_1: One member
            user_id_2: The other member

        Returns:
            (match, created) where created is False if the row already existed
        """
        if user_id_1 == user_id_2:
            raise ValidationError("A user cannot match with themselves")

        key = match_key(user_id_1, user_id_2)
        existing = await self.db.get(Match, key, populate_existing=True)
        if existing is not None:
            return existing, False

        u_lo, u_hi = sorted([user_id_1, user_id_2])
        match = Match(id=key, user_lo=u_lo, user_hi=u_hi, created_at=datetime.utcnow())

        try:
            self.db.add(match)
            await self.db.commit()
            logger.info(f"Created match {key}")
            return match, True
        except IntegrityError:
            # Handle duplicate match race condition
            await self.db.rollback()
            logger.info(f"Match {key} was created concurrently, using existing row")
            existing = await self.db.get(Match, key, populate_existing=True)
            if existing is None:
                raise
            return existing, False

    @storage_call
    async def get_match(self, match_id: str) -> Match:
        """Return the match or raise NotFoundError."""
        match = await self.db.get(Match, match_id, populate_existing=True)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    @storage_call
    async def get_match_for_user(self, match_id: str, user_id: str) -> MatchWithUser:
        """
        Return a match together with the other member's profile.

        Raises:
            NotFoundError: If the match does not exist, user_id is not a member,
                or the other member's profile is gone
        """
        match = await self.db.get(Match, match_id, populate_existing=True)
        if match is None or not match.has_member(user_id):
            raise NotFoundError(f"Match {match_id} not found")

        other_user = await self.db.get(UserProfile, match.other_user(user_id))
        if other_user is None:
            raise NotFoundError(f"Match {match_id} not found")

        return MatchWithUser(match=match, other_user=other_user)

    @storage_call
    async def get_matches(self, user_id: str) -> list[MatchWithUser]:
        """All matches of a user, newest first. Matches whose other profile is gone are skipped."""
        result = await self.db.execute(
            select(Match)
            .where(or_(Match.user_lo == user_id, Match.user_hi == user_id))
            .order_by(Match.created_at.desc(), Match.id)
        )
        matches = result.scalars().all()
        if not matches:
            return []

        other_ids = {match.other_user(user_id) for match in matches}
        profiles_result = await self.db.execute(select(UserProfile).where(UserProfile.uid.in_(other_ids)))
        profiles = {profile.uid: profile for profile in profiles_result.scalars().all()}

        listed = []
        for match in matches:
            other_user = profiles.get(match.other_user(user_id))
            if other_user is None:
                logger.warning(f"Skipping match {match.id}: profile of other user is missing")
                continue
            listed.append(MatchWithUser(match=match, other_user=other_user))
        return listed

    async def get_recent_matches(self, user_id: str, now: datetime | None = None) -> list[MatchWithUser]:
        """Matches created within the recent-match window (24 hours by default)."""
        now = now or datetime.utcnow()
        cutoff = now - timedelta(hours=settings.recent_match_window_hours)
        return [item for item in await self.get_matches(user_id) if item.match.created_at > cutoff]

    @storage_call
    async def check_for_match(self, user_id: str, target_user_id: str) -> bool:
        match = await self.db.get(Match, match_key(user_id, target_user_id))
        return match is not None
