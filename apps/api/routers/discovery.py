"""Discovery endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db
from apps.api.schemas import CandidateOut, ProfileOut
from apps.engine.discovery import DiscoveryService
from core.auth import Identity, client_auth

router = APIRouter()


@router.get("", response_model=list[CandidateOut])
async def discover_profiles(
    limit: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(client_auth),
) -> list[CandidateOut]:
    """Candidates for the caller to swipe on, most recently active first."""
    candidates = await DiscoveryService(db).fetch_profiles(identity.uid, limit)
    return [
        CandidateOut(profile=ProfileOut.model_validate(candidate.profile), distance_km=round(candidate.distance_km, 2))
        for candidate in candidates
    ]
