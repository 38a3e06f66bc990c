"""Swipe recording and mutual-like detection."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.engine.matches import MatchService
from apps.workers.notifier import Notifier
from core.db import storage_call
from core.errors import NotFoundError, ValidationError
from core.keys import swipe_key
from core.metrics import matches_created_total, swipes_total
from models.match import Match
from models.swipe import SWIPE_ACTIONS, Swipe
from models.user import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwipeResult:
    """Outcome of a swipe."""

    matched: bool
    match_id: str | None = None


class SwipeService:
    """Records swipes and creates a match on a mutual like."""

    def __init__(self, db: AsyncSession, notifier: Notifier | None = None) -> None:
        self.db = db
        self.notifier = notifier

    async def record_swipe(self, user_id: str, target_user_id: str, action: str) -> SwipeResult:
        """
        Record a swipe and check for a mutual like.

        Match notifications go out after the storage work has finished, outside
        its timeout, so a slow or failing push never fails the swipe.

        Args:
            user_id: User swiping
            target_user_id: User being swiped on
            action: like, pass or superlike

        Returns:
            SwipeResult with matched=True and the match id on a mutual like

        Raises:
            ValidationError: On an unknown action or a self-swipe
            NotFoundError: If either profile does not exist
        """
        result, new_match = await self._record(user_id, target_user_id, action)
        if new_match is not None:
            await self._notify_match(new_match)
        return result

    @storage_call
    async def _record(self, user_id: str, target_user_id: str, action: str) -> tuple[SwipeResult, Match | None]:
        if action not in SWIPE_ACTIONS:
            raise ValidationError(f"Invalid action. Must be one of: {SWIPE_ACTIONS}")
        if user_id == target_user_id:
            raise ValidationError("A user cannot swipe on themselves")

        result = await self.db.execute(
            select(UserProfile.uid).where(UserProfile.uid.in_([user_id, target_user_id]))
        )
        found = set(result.scalars().all())
        for uid in (user_id, target_user_id):
            if uid not in found:
                raise NotFoundError(f"User profile {uid} not found")

        await self._upsert_swipe(user_id, target_user_id, action)
        swipes_total.labels(action=action).inc()

        # Passes never trigger match evaluation
        if action == "pass":
            return SwipeResult(matched=False), None

        reverse = await self.db.get(Swipe, swipe_key(target_user_id, user_id), populate_existing=True)
        if reverse is None or not reverse.is_positive:
            return SwipeResult(matched=False), None

        match, created = await MatchService(self.db).create_match(user_id, target_user_id)
        if created:
            matches_created_total.inc()

        return SwipeResult(matched=True, match_id=match.id), (match if created else None)

    @storage_call
    async def get_swiped_user_ids(self, user_id: str) -> set[str]:
        """Every user this user has swiped on, whatever the action."""
        result = await self.db.execute(select(Swipe.target_user_id).where(Swipe.user_id == user_id))
        return set(result.scalars().all())

    @storage_call
    async def get_swipe(self, user_id: str, target_user_id: str) -> Swipe | None:
        return await self.db.get(Swipe, swipe_key(user_id, target_user_id), populate_existing=True)

    async def _upsert_swipe(self, user_id: str, target_user_id: str, action: str) -> None:
        """Write the swipe at its ordered-pair key; a repeat swipe overwrites action and timestamp."""
        key = swipe_key(user_id, target_user_id)
        now = datetime.utcnow()

        swipe = await self.db.get(Swipe, key, populate_existing=True)
        if swipe is None:
            self.db.add(Swipe(id=key, user_id=user_id, target_user_id=target_user_id, action=action, timestamp=now))
            try:
                await self.db.commit()
                return
            except IntegrityError:
                # Another session inserted the same pair first; overwrite it
                await self.db.rollback()
                logger.info(f"Swipe {key} was inserted concurrently, overwriting")
                swipe = await self.db.get(Swipe, key, populate_existing=True)
                if swipe is None:
                    raise

        swipe.action = action
        swipe.timestamp = now
        await self.db.commit()

    async def _notify_match(self, match: Match) -> None:
        """Best-effort notification to both members; never raises."""
        if self.notifier is None:
            return
        # Sequential: both calls share this request's session
        await self.notifier.send_match_notification(self.db, match.user_lo, match.user_hi, match.id)
        await self.notifier.send_match_notification(self.db, match.user_hi, match.user_lo, match.id)
