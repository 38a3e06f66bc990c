from datetime import date, datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base

GENDERS = ("male", "female", "other")
LOOKING_FOR = ("male", "female", "everyone")


class UserProfile(Base):
    """User profile with discovery preferences and lifecycle metadata."""

    __tablename__ = "user_profiles"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Profile
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)  # Recomputed on every save
    gender: Mapped[str] = mapped_column(String(16), nullable=False)  # male, female, other
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    interests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    city: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cm
    education: Mapped[str | None] = mapped_column(String(128), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Preferences
    looking_for: Mapped[str] = mapped_column(String(16), nullable=False)  # male, female, everyone
    age_min: Mapped[int] = mapped_column(Integer, nullable=False)
    age_max: Mapped[int] = mapped_column(Integer, nullable=False)
    distance_radius_km: Mapped[float] = mapped_column(Float, nullable=False)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    last_active: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    profile_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    push_token: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("gender IN ('male','female','other')", name="chk_profile_gender"),
        CheckConstraint("looking_for IN ('male','female','everyone')", name="chk_profile_looking_for"),
        CheckConstraint("age_min <= age_max", name="chk_profile_age_range"),
        CheckConstraint("distance_radius_km > 0", name="chk_profile_distance_radius"),
        # Discovery scans complete profiles, most recently active first
        Index("idx_profiles_discovery", "profile_complete", "last_active"),
    )

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self) -> str:
        return f"<UserProfile(uid={self.uid}, name={self.name}, age={self.age})>"
