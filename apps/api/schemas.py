"""Response and request models shared across routers."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from apps.engine.profiles import ProfileData


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class Location(BaseModel):
    city: str = ""
    coordinates: Coordinates | None = None


class ProfileIn(BaseModel):
    """Onboarding payload."""

    name: str
    date_of_birth: date
    gender: Literal["male", "female", "other"]
    bio: str = ""
    photos: list[str] = Field(default_factory=list)
    location: Location = Field(default_factory=Location)
    interests: list[str] = Field(default_factory=list)
    height: int | None = None
    education: str | None = None
    occupation: str | None = None
    looking_for: Literal["male", "female", "everyone"]
    age_min: int = 18
    age_max: int = 50
    distance_radius_km: float = 50.0
    email: str | None = None

    def to_profile_data(self) -> ProfileData:
        coordinates = self.location.coordinates
        return ProfileData(
            name=self.name,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            looking_for=self.looking_for,
            age_min=self.age_min,
            age_max=self.age_max,
            distance_radius_km=self.distance_radius_km,
            bio=self.bio,
            photos=self.photos,
            interests=self.interests,
            city=self.location.city,
            latitude=coordinates.latitude if coordinates else None,
            longitude=coordinates.longitude if coordinates else None,
            height=self.height,
            education=self.education,
            occupation=self.occupation,
        )


class ProfileOut(BaseModel):
    """Public view of a profile (no email, no push token)."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    name: str
    age: int
    gender: str
    bio: str
    photos: list[str]
    interests: list[str]
    city: str
    height: int | None = None
    education: str | None = None
    occupation: str | None = None
    last_active: datetime


class CandidateOut(BaseModel):
    profile: ProfileOut
    distance_km: float


class LastMessageOut(BaseModel):
    text: str
    sender_id: str
    timestamp: datetime


class MatchOut(BaseModel):
    id: str
    users: list[str]
    created_at: datetime
    last_message: LastMessageOut | None = None
    other_user: ProfileOut


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    match_id: str
    sender_id: str
    receiver_id: str
    text: str
    timestamp: datetime
    read: bool


class ConversationOut(BaseModel):
    match_id: str
    last_message: MessageOut | None = None
    unread_count: int
