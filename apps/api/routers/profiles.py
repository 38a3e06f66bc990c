"""Profile endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db
from apps.api.schemas import ProfileIn, ProfileOut
from apps.engine.profiles import ProfileService
from core.auth import Identity, client_auth

router = APIRouter()


class MyProfileOut(ProfileOut):
    """The caller's own profile, with preferences and metadata."""

    email: str | None = None
    date_of_birth: date
    latitude: float | None = None
    longitude: float | None = None
    looking_for: str
    age_min: int
    age_max: int
    distance_radius_km: float
    created_at: datetime
    profile_complete: bool
    onboarding_completed: bool


class PreferencesIn(BaseModel):
    """Partial preferences update."""

    looking_for: str | None = None
    age_min: int | None = None
    age_max: int | None = None
    distance_radius_km: float | None = None


class PushTokenIn(BaseModel):
    token: str


@router.put("/me", response_model=MyProfileOut)
async def save_my_profile(
    body: ProfileIn, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> MyProfileOut:
    """Save the caller's profile at onboarding completion."""
    profile = await ProfileService(db).save_profile(identity.uid, body.email, body.to_profile_data())
    return MyProfileOut.model_validate(profile)


@router.get("/me", response_model=MyProfileOut)
async def get_my_profile(db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)) -> MyProfileOut:
    profile = await ProfileService(db).require_profile(identity.uid)
    return MyProfileOut.model_validate(profile)


@router.patch("/me/preferences", response_model=MyProfileOut)
async def update_my_preferences(
    body: PreferencesIn, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> MyProfileOut:
    profile = await ProfileService(db).update_preferences(
        identity.uid,
        looking_for=body.looking_for,
        age_min=body.age_min,
        age_max=body.age_max,
        distance_radius_km=body.distance_radius_km,
    )
    return MyProfileOut.model_validate(profile)


@router.put("/me/push-token")
async def save_my_push_token(
    body: PushTokenIn, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> dict[str, str]:
    """Register the device push token (sign-in)."""
    await ProfileService(db).save_push_token(identity.uid, body.token)
    return {"status": "saved"}


@router.delete("/me/push-token")
async def remove_my_push_token(
    db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> dict[str, str]:
    """Forget the device push token (sign-out)."""
    await ProfileService(db).remove_push_token(identity.uid)
    return {"status": "removed"}


@router.get("/{uid}", response_model=ProfileOut)
async def get_profile(
    uid: str, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> ProfileOut:
    profile = await ProfileService(db).require_profile(uid)
    return ProfileOut.model_validate(profile)
