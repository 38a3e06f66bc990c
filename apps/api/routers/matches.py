"""Match endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db
from apps.api.schemas import LastMessageOut, MatchOut, ProfileOut
from apps.engine.matches import MatchService, MatchWithUser
from core.auth import Identity, client_auth

router = APIRouter()


def to_match_out(item: MatchWithUser) -> MatchOut:
    match = item.match
    last_message = None
    if match.last_message_at is not None:
        last_message = LastMessageOut(
            text=match.last_message_text or "",
            sender_id=match.last_message_sender_id or "",
            timestamp=match.last_message_at,
        )
    return MatchOut(
        id=match.id,
        users=list(match.users),
        created_at=match.created_at,
        last_message=last_message,
        other_user=ProfileOut.model_validate(item.other_user),
    )


@router.get("", response_model=list[MatchOut])
async def list_matches(db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)) -> list[MatchOut]:
    """All of the caller's matches, newest first."""
    return [to_match_out(item) for item in await MatchService(db).get_matches(identity.uid)]


@router.get("/recent", response_model=list[MatchOut])
async def list_recent_matches(
    db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> list[MatchOut]:
    """Matches made in the last 24 hours."""
    return [to_match_out(item) for item in await MatchService(db).get_recent_matches(identity.uid)]


@router.get("/{match_id}", response_model=MatchOut)
async def get_match(
    match_id: str, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> MatchOut:
    return to_match_out(await MatchService(db).get_match_for_user(match_id, identity.uid))
