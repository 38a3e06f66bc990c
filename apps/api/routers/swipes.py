"""Swipe endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db, get_notifier
from apps.engine.swipes import SwipeService
from apps.workers.notifier import Notifier
from core.auth import Identity, client_auth

router = APIRouter()


class SwipeRequest(BaseModel):
    """Request to record a swipe."""

    target_user_id: str
    action: Literal["like", "pass", "superlike"]


class SwipeResponse(BaseModel):
    matched: bool
    match_id: str | None = None


@router.post("", response_model=SwipeResponse)
async def record_swipe(
    request: SwipeRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    identity: Identity = Depends(client_auth),
) -> SwipeResponse:
    """Record the caller's swipe; reports the match on a mutual like."""
    result = await SwipeService(db, notifier).record_swipe(identity.uid, request.target_user_id, request.action)
    return SwipeResponse(matched=result.matched, match_id=result.match_id)
