from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base

SWIPE_ACTIONS = ("like", "pass", "superlike")
POSITIVE_ACTIONS = frozenset({"like", "superlike"})


class Swipe(Base):
    """Swipe decision, one row per ordered (swiper, target) pair."""

    __tablename__ = "swipes"

    # "{user_id}_{target_user_id}"; a repeat swipe overwrites the row
    id: Mapped[str] = mapped_column(String(257), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    target_user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(16), nullable=False)  # like, pass, superlike
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("action IN ('like','pass','superlike')", name="chk_swipe_action"),
        CheckConstraint("user_id <> target_user_id", name="chk_swipe_no_self"),
    )

    @property
    def is_positive(self) -> bool:
        return self.action in POSITIVE_ACTIONS

    def __repr__(self) -> str:
        return f"<Swipe(user_id={self.user_id}, target_user_id={self.target_user_id}, action={self.action})>"
