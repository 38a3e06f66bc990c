from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


class Message(Base):
    """Chat message within a match."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    match_id: Mapped[str] = mapped_column(String(257), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(128), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(128), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)  # Only ever flips false -> true

    __table_args__ = (
        Index("idx_messages_match_ts", "match_id", "timestamp"),
        Index("idx_messages_unread", "match_id", "receiver_id", "read"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, match_id={self.match_id}, sender_id={self.sender_id}, read={self.read})>"
