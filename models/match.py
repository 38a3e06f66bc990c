from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


class Match(Base):
    """Mutual like between two users."""

    __tablename__ = "matches"

    # "{u_lo}_{u_hi}"; both sides of a mutual like converge on the same key
    id: Mapped[str] = mapped_column(String(257), primary_key=True)
    # Ordered pair: user_lo = min(u1, u2), user_hi = max(u1, u2)
    user_lo: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_hi: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Last message cache for list views
    last_message_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_sender_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        # Prevent self-matching
        CheckConstraint("user_lo <> user_hi", name="chk_match_no_self"),
    )

    @property
    def users(self) -> tuple[str, str]:
        return (self.user_lo, self.user_hi)

    def has_member(self, user_id: str) -> bool:
        return user_id in (self.user_lo, self.user_hi)

    def other_user(self, user_id: str) -> str:
        """Return the member that is not user_id."""
        if user_id == self.user_lo:
            return self.user_hi
        if user_id == self.user_hi:
            return self.user_lo
        raise ValueError(f"User {user_id} is not part of match {self.id}")

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, user_lo={self.user_lo}, user_hi={self.user_hi})>"
