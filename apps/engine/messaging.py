"""Messaging within a match: send, read state and conversation summaries."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.workers.notifier import Notifier
from core.config import settings
from core.db import storage_call
from core.errors import NotFoundError, ValidationError
from core.metrics import messages_read_total, messages_sent_total
from core.pubsub import ChangeBus, message_channel
from models.match import Match
from models.message import Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conversation:
    """Per-match summary, derived on read."""

    match_id: str
    last_message: Message | None
    unread_count: int

    @property
    def last_activity(self) -> datetime:
        return self.last_message.timestamp if self.last_message else datetime.min


class MessagingService:
    """Message persistence, read state and conversation aggregation."""

    def __init__(self, db: AsyncSession, bus: ChangeBus | None = None, notifier: Notifier | None = None) -> None:
        self.db = db
        self.bus = bus
        self.notifier = notifier

    async def send_message(self, match_id: str, sender_id: str, receiver_id: str, text: str) -> Message:
        """
        Send a message within a match.

        The message row and the match's last-message cache are committed
        together. Live feeds and the receiver's push notification are told
        afterwards; neither can fail the send.

        Args:
            match_id: Match ID
            sender_id: Sending member
            receiver_id: Receiving member
            text: Message text

        Returns:
            The persisted message (read=False)

        Raises:
            ValidationError: On empty or oversized text, or if sender/receiver
                are not the match's two members
            NotFoundError: If the match does not exist
        """
        message = await self._persist(match_id, sender_id, receiver_id, text)
        messages_sent_total.inc()

        await self._publish(match_id)
        if self.notifier is not None:
            await self.notifier.send_message_notification(self.db, receiver_id, sender_id, match_id, text)

        return message

    @storage_call
    async def _persist(self, match_id: str, sender_id: str, receiver_id: str, text: str) -> Message:
        if not text or not text.strip():
            raise ValidationError("Message text must not be empty")
        if len(text) > settings.message_max_length:
            raise ValidationError(f"Message text must be at most {settings.message_max_length} characters")

        match = await self.db.get(Match, match_id, populate_existing=True)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        if sender_id == receiver_id or not match.has_member(sender_id) or not match.has_member(receiver_id):
            raise ValidationError("Sender and receiver must be the two members of the match")

        now = datetime.utcnow()
        message = Message(
            id=uuid.uuid4().hex,
            match_id=match_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            text=text,
            timestamp=now,
            read=False,
        )
        self.db.add(message)

        # Update last message in match
        match.last_message_text = text
        match.last_message_sender_id = sender_id
        match.last_message_at = now

        await self.db.commit()
        return message

    @storage_call
    async def get_messages(self, match_id: str) -> list[Message]:
        """All messages of a match, oldest first."""
        result = await self.db.execute(
            select(Message).where(Message.match_id == match_id).order_by(Message.timestamp, Message.id)
        )
        return list(result.scalars().all())

    async def mark_messages_as_read(self, match_id: str, reader_id: str) -> int:
        """
        Mark every unread message addressed to reader_id in the match as read.

        Idempotent: a second call finds nothing unread and changes nothing.
        A message sent concurrently may stay unread until the next call.

        Returns:
            Number of messages flipped to read

        Raises:
            NotFoundError: If the match does not exist
            ValidationError: If reader_id is not a member
        """
        flipped = await self._flip_read(match_id, reader_id)
        if flipped:
            messages_read_total.inc(flipped)
            await self._publish(match_id)
        return flipped

    @storage_call
    async def _flip_read(self, match_id: str, reader_id: str) -> int:
        match = await self.db.get(Match, match_id, populate_existing=True)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        if not match.has_member(reader_id):
            raise ValidationError(f"User {reader_id} is not part of match {match_id}")

        result = await self.db.execute(
            select(Message).where(
                Message.match_id == match_id,
                Message.receiver_id == reader_id,
                Message.read.is_(False),
            )
        )
        unread = result.scalars().all()
        if not unread:
            return 0

        for message in unread:
            message.read = True
        await self.db.commit()
        return len(unread)

    @storage_call
    async def get_unread_count(self, match_id: str, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Message.id)).where(
                Message.match_id == match_id,
                Message.receiver_id == user_id,
                Message.read.is_(False),
            )
        )
        return int(result.scalar() or 0)

    @storage_call
    async def get_last_message(self, match_id: str) -> Message | None:
        result = await self.db.execute(
            select(Message)
            .where(Message.match_id == match_id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_conversations(self, requester_id: str, match_ids: list[str]) -> list[Conversation]:
        """
        Summarize each match: latest message and unread count for the requester.

        Sorted by latest message timestamp, newest first; matches without
        messages sort last and keep their input order.
        """
        conversations = []
        for match_id in match_ids:
            last_message = await self.get_last_message(match_id)
            unread_count = await self.get_unread_count(match_id, requester_id)
            conversations.append(Conversation(match_id=match_id, last_message=last_message, unread_count=unread_count))

        conversations.sort(key=lambda conversation: conversation.last_activity, reverse=True)
        return conversations

    async def _publish(self, match_id: str) -> None:
        """Tell live feeds the message set changed. Feeds catch up on the next change if this fails."""
        if self.bus is None:
            return
        try:
            await self.bus.publish(message_channel(match_id))
        except Exception as e:
            logger.error(f"Failed to publish message change for match {match_id}: {e}")
