"""Live message feed: full ordered snapshots pushed on every change."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apps.engine.messaging import MessagingService
from core.metrics import feed_subscriptions_total
from core.pubsub import ChangeBus, ChannelListener, message_channel
from models.message import Message

logger = logging.getLogger(__name__)

OnUpdate = Callable[[list[Message]], Awaitable[None]]
OnError = Callable[[Exception], Awaitable[None]]


class FeedSubscription:
    """Handle for one live subscription. Call unsubscribe() to cancel it."""

    def __init__(
        self,
        match_id: str,
        listener: ChannelListener,
        load: Callable[[str], Awaitable[list[Message]]],
        on_update: OnUpdate,
        on_error: OnError | None = None,
    ) -> None:
        self.match_id = match_id
        self._listener = listener
        self._load = load
        self._on_update = on_update
        self._on_error = on_error
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.error: Exception | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Deliver the current snapshot, then follow changes in the background."""
        await self._deliver()
        self._task = asyncio.create_task(self._run(), name=f"message-feed:{self.match_id}")

    async def unsubscribe(self) -> None:
        """
        Stop the subscription and release its channel.

        Once this returns no further callback runs. Safe to call more than
        once and from inside the callback itself.
        """
        if self._closed:
            return
        self._closed = True

        task = self._task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await self._listener.close()
        logger.debug(f"Closed message feed for match {self.match_id}")

    async def _run(self) -> None:
        while not self._closed:
            try:
                await self._listener.get()
                # One reload covers every change queued meanwhile
                await self._listener.drain()
            except Exception as e:
                logger.exception(f"Lost change stream for match {self.match_id}")
                await self._fail(e)
                return
            try:
                await self._deliver()
            except Exception:
                # Keep following; the next change brings a fresh snapshot
                logger.exception(f"Failed to deliver message snapshot for match {self.match_id}")

    async def _fail(self, error: Exception) -> None:
        """Close after the change stream broke and tell the subscriber."""
        self._closed = True
        self.error = error
        try:
            await self._listener.close()
        except Exception as e:
            logger.warning(f"Failed to release change listener for match {self.match_id}: {e}")

        if self._on_error is None:
            return
        try:
            await self._on_error(error)
        except Exception:
            logger.exception(f"Error callback failed for match {self.match_id}")

    async def _deliver(self) -> None:
        snapshot = await self._load(self.match_id)
        if self._closed:
            return
        await self._on_update(snapshot)


class MessageFeed:
    """Opens live subscriptions on a match's messages."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], bus: ChangeBus) -> None:
        self.session_factory = session_factory
        self.bus = bus

    async def subscribe(
        self, match_id: str, on_update: OnUpdate, on_error: OnError | None = None
    ) -> FeedSubscription:
        """
        Subscribe to a match's messages.

        on_update receives the full list ordered by timestamp, first right away
        and then after every change (new message, read-state flip).

        Args:
            match_id: Match ID
            on_update: Async callback taking the ordered message list
            on_error: Async callback run once if the change stream breaks;
                the subscription is already closed by then

        Returns:
            Subscription handle
        """
        # Register before the first load so no change slips in between
        listener = await self.bus.listen(message_channel(match_id))
        subscription = FeedSubscription(match_id, listener, self._load, on_update, on_error)
        try:
            await subscription.start()
        except BaseException:
            await listener.close()
            raise

        feed_subscriptions_total.inc()
        return subscription

    async def _load(self, match_id: str) -> list[Message]:
        async with self.session_factory() as db:
            return await MessagingService(db).get_messages(match_id)
