"""Profile store: onboarding saves, preference updates and sign-in lifecycle."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from core.db import storage_call
from core.errors import NotFoundError, ValidationError
from models.user import GENDERS, LOOKING_FOR, UserProfile

logger = logging.getLogger(__name__)

MIN_AGE = 18
MAX_AGE = 100
MAX_DISTANCE_KM = 20_000.0  # Roughly half of Earth's circumference


def column_length(column: str) -> int:
    """Declared length of a String column on the profiles table."""
    return UserProfile.__table__.c[column].type.length


def check_length(label: str, value: str | None, column: str) -> None:
    """
    Reject values that would not fit their column.

    Raises:
        ValidationError: If value is longer than the column allows
    """
    limit = column_length(column)
    if value is not None and len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters")


@dataclass
class ProfileData:
    """Everything onboarding collects; saved in one piece."""

    name: str
    date_of_birth: date
    gender: str
    looking_for: str
    age_min: int
    age_max: int
    distance_radius_km: float
    bio: str = ""
    photos: list[str] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    city: str = ""
    latitude: float | None = None
    longitude: float | None = None
    height: int | None = None
    education: str | None = None
    occupation: str | None = None


def calculate_age(date_of_birth: date, today: date | None = None) -> int:
    """Whole years between date_of_birth and today, counting the birthday itself."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def validate_preferences(looking_for: str, age_min: int, age_max: int, distance_radius_km: float) -> None:
    """
    Validate discovery preferences.

    Raises:
        ValidationError: If any preference is out of range
    """
    if looking_for not in LOOKING_FOR:
        raise ValidationError(f"looking_for must be one of {LOOKING_FOR}")
    if not MIN_AGE <= age_min <= MAX_AGE or not MIN_AGE <= age_max <= MAX_AGE:
        raise ValidationError(f"Age range bounds must be between {MIN_AGE} and {MAX_AGE}")
    if age_min > age_max:
        raise ValidationError("Age range minimum must not exceed maximum")
    if not 0 < distance_radius_km <= MAX_DISTANCE_KM:
        raise ValidationError(f"Distance radius must be in (0, {MAX_DISTANCE_KM:g}] km")


def validate_profile(data: ProfileData, today: date | None = None) -> int:
    """
    Validate onboarding data and return the derived age.

    Raises:
        ValidationError: If the profile is incomplete or out of range
    """
    if not data.name or not data.name.strip():
        raise ValidationError("Name is required")
    check_length("Name", data.name.strip(), "name")
    check_length("City", data.city, "city")
    check_length("Education", data.education, "education")
    check_length("Occupation", data.occupation, "occupation")
    if data.gender not in GENDERS:
        raise ValidationError(f"gender must be one of {GENDERS}")

    age = calculate_age(data.date_of_birth, today)
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValidationError(f"Age must be between {MIN_AGE} and {MAX_AGE}")

    if (data.latitude is None) != (data.longitude is None):
        raise ValidationError("Latitude and longitude must be given together")
    if data.latitude is not None and not -90.0 <= data.latitude <= 90.0:
        raise ValidationError("Latitude must be between -90 and 90")
    if data.longitude is not None and not -180.0 <= data.longitude <= 180.0:
        raise ValidationError("Longitude must be between -180 and 180")

    validate_preferences(data.looking_for, data.age_min, data.age_max, data.distance_radius_km)
    return age


class ProfileService:
    """Reads and writes user profiles."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_call
    async def get_profile(self, uid: str) -> UserProfile | None:
        return await self.db.get(UserProfile, uid, populate_existing=True)

    async def require_profile(self, uid: str) -> UserProfile:
        """Return the profile or raise NotFoundError."""
        profile = await self.get_profile(uid)
        if profile is None:
            raise NotFoundError(f"User profile {uid} not found. Please complete onboarding first.")
        return profile

    @storage_call
    async def save_profile(self, uid: str, email: str | None, data: ProfileData) -> UserProfile:
        """
        Save a fully populated profile at onboarding completion.

        Age is recomputed from the date of birth on every save. Saving over an
        existing profile replaces its fields but keeps created_at and push_token.

        Args:
            uid: User ID
            email: Account email
            data: Onboarding data

        Returns:
            The saved profile

        Raises:
            ValidationError: If the data is incomplete or out of range
        """
        check_length("User ID", uid, "uid")
        check_length("Email", email, "email")
        age = validate_profile(data)
        now = datetime.utcnow()

        profile = await self.db.get(UserProfile, uid, populate_existing=True)
        if profile is None:
            profile = UserProfile(uid=uid, created_at=now)
            self.db.add(profile)

        profile.email = email
        profile.name = data.name.strip()
        profile.date_of_birth = data.date_of_birth
        profile.age = age
        profile.gender = data.gender
        profile.bio = data.bio
        profile.photos = list(data.photos)
        profile.interests = list(data.interests)
        profile.city = data.city
        profile.latitude = data.latitude
        profile.longitude = data.longitude
        profile.height = data.height
        profile.education = data.education or None
        profile.occupation = data.occupation or None
        profile.looking_for = data.looking_for
        profile.age_min = data.age_min
        profile.age_max = data.age_max
        profile.distance_radius_km = data.distance_radius_km
        profile.last_active = now
        profile.profile_complete = True
        profile.onboarding_completed = True

        await self.db.commit()
        logger.info(f"Saved profile for user {uid} (age={age}, gender={data.gender})")
        return profile

    @storage_call
    async def update_preferences(
        self,
        uid: str,
        looking_for: str | None = None,
        age_min: int | None = None,
        age_max: int | None = None,
        distance_radius_km: float | None = None,
    ) -> UserProfile:
        """Apply a partial preferences update; the merged result is validated as a whole."""
        profile = await self.require_profile(uid)

        merged_looking_for = looking_for if looking_for is not None else profile.looking_for
        merged_age_min = age_min if age_min is not None else profile.age_min
        merged_age_max = age_max if age_max is not None else profile.age_max
        merged_radius = distance_radius_km if distance_radius_km is not None else profile.distance_radius_km
        validate_preferences(merged_looking_for, merged_age_min, merged_age_max, merged_radius)

        profile.looking_for = merged_looking_for
        profile.age_min = merged_age_min
        profile.age_max = merged_age_max
        profile.distance_radius_km = merged_radius
        profile.last_active = datetime.utcnow()

        await self.db.commit()
        return profile

    @storage_call
    async def update_last_active(self, uid: str) -> None:
        profile = await self.require_profile(uid)
        profile.last_active = datetime.utcnow()
        await self.db.commit()

    @storage_call
    async def save_push_token(self, uid: str, token: str) -> None:
        """Store the push token on sign-in."""
        if not token or not token.strip():
            raise ValidationError("Push token must not be empty")
        check_length("Push token", token, "push_token")
        profile = await self.require_profile(uid)
        profile.push_token = token
        profile.last_active = datetime.utcnow()
        await self.db.commit()

    @storage_call
    async def remove_push_token(self, uid: str) -> None:
        """Clear the push token on sign-out."""
        profile = await self.require_profile(uid)
        profile.push_token = None
        await self.db.commit()
