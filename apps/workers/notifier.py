"""Notification service for sending push notifications to users via Expo."""

import logging
from typing import Any, Protocol

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import NotificationDeliveryError
from core.metrics import notifications_failed_total, notifications_sent_total
from models import UserProfile

logger = logging.getLogger(__name__)


class PushDispatcher(Protocol):
    """Delivers one push notification to one device token."""

    async def send(self, token: str, title: str, body: str, data: dict[str, Any] | None = None) -> None: ...


class ExpoPushClient:
    """HTTP client for the Expo push API."""

    def __init__(self, url: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.url = url or settings.expo_push_url
        self.client = client or httpx.AsyncClient(timeout=settings.push_timeout_seconds)

    async def send(self, token: str, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        """
        Send one push notification.

        Args:
            token: Expo push token of the receiving device
            title: Notification title
            body: Notification body
            data: Extra payload delivered to the app

        Raises:
            NotificationDeliveryError: On transport failure or an error ticket
        """
        payload = {
            "to": token,
            "title": title,
            "body": body,
            "data": data or {},
            "sound": "default",
            "priority": "high",
            "badge": 1,
            "channelId": "default",
        }

        try:
            response = await self.client.post(
                self.url,
                json=payload,
                headers={"Accept": "application/json", "Accept-Encoding": "gzip, deflate"},
            )
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotificationDeliveryError(f"Push request failed: {e}") from e

        ticket = result.get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            raise NotificationDeliveryError(f"Push ticket error: {ticket.get('message', 'unknown error')}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def truncate_preview(text: str, limit: int | None = None) -> str:
    """Shorten message text for a notification body."""
    limit = limit or settings.push_preview_length
    return f"{text[:limit]}..." if len(text) > limit else text


class Notifier:
    """Service for sending match and message notifications. Never raises."""

    def __init__(self, dispatcher: PushDispatcher) -> None:
        self.dispatcher = dispatcher

    async def send_match_notification(self, db: AsyncSession, user_id: str, partner_id: str, match_id: str) -> bool:
        """
        Tell a user they matched with partner.

        Args:
            db: Database session
            user_id: User receiving notification
            partner_id: The other member of the match
            match_id: Match ID

        Returns:
            True if sent successfully
        """
        try:
            user = await db.get(UserProfile, user_id)
            partner = await db.get(UserProfile, partner_id)

            if not user or not partner:
                logger.error(f"User or partner not found: user={user_id}, partner={partner_id}")
                return False

            if not user.push_token:
                logger.info(f"User {user_id} has no push token, skipping match notification")
                return False

            await self.dispatcher.send(
                user.push_token,
                "It's a Match!",
                f"You and {partner.name} liked each other!",
                {"type": "match", "matchId": match_id, "userId": partner_id},
            )
            notifications_sent_total.labels(kind="match").inc()
            return True

        except Exception as e:
            notifications_failed_total.labels(kind="match").inc()
            logger.error(f"Failed to send match notification to user {user_id}: {e}")
            return False

    async def send_message_notification(
        self, db: AsyncSession, receiver_id: str, sender_id: str, match_id: str, text: str
    ) -> bool:
        """
        Tell the receiver about a new chat message.

        Returns:
            True if sent successfully
        """
        try:
            receiver = await db.get(UserProfile, receiver_id)
            sender = await db.get(UserProfile, sender_id)

            if not receiver or not sender:
                logger.error(f"Receiver or sender not found: receiver={receiver_id}, sender={sender_id}")
                return False

            if not receiver.push_token:
                logger.info(f"User {receiver_id} has no push token, skipping message notification")
                return False

            await self.dispatcher.send(
                receiver.push_token,
                sender.name,
                truncate_preview(text),
                {"type": "message", "matchId": match_id, "senderId": sender_id},
            )
            notifications_sent_total.labels(kind="message").inc()
            return True

        except Exception as e:
            notifications_failed_total.labels(kind="message").inc()
            logger.error(f"Failed to send message notification to user {receiver_id}: {e}")
            return False


# Global notifier instance
notifier = Notifier(ExpoPushClient())
