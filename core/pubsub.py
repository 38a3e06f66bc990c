"""Change notification bus used to fan out message-set changes to live feeds."""

import asyncio
import logging
from collections import defaultdict
from typing import Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def message_channel(match_id: str) -> str:
    """Channel carrying change events for one match's message set."""
    return f"messages:{match_id}"


class ChannelListener(Protocol):
    """A registered listener on one channel."""

    async def get(self) -> str: ...

    async def drain(self) -> int: ...

    async def close(self) -> None: ...


class ChangeBus(Protocol):
    """Publish/subscribe transport for change events."""

    async def publish(self, channel: str, payload: str = "changed") -> None: ...

    async def listen(self, channel: str) -> ChannelListener: ...


class _QueueListener:
    def __init__(self, bus: "InMemoryChangeBus", channel: str) -> None:
        self._bus = bus
        self._channel = channel
        self.queue: asyncio.Queue[str] = asyncio.Queue()

    async def get(self) -> str:
        return await self.queue.get()

    async def drain(self) -> int:
        """Discard events already queued; returns how many were dropped."""
        dropped = 0
        while not self.queue.empty():
            self.queue.get_nowait()
            dropped += 1
        return dropped

    async def close(self) -> None:
        self._bus._detach(self._channel, self)


class InMemoryChangeBus:
    """Single-process bus: every listener gets its own queue."""

    def __init__(self) -> None:
        self._listeners: dict[str, set[_QueueListener]] = defaultdict(set)

    async def publish(self, channel: str, payload: str = "changed") -> None:
        for listener in list(self._listeners.get(channel, ())):
            listener.queue.put_nowait(payload)

    async def listen(self, channel: str) -> ChannelListener:
        listener = _QueueListener(self, channel)
        self._listeners[channel].add(listener)
        return listener

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    def _detach(self, channel: str, listener: _QueueListener) -> None:
        listeners = self._listeners.get(channel)
        if listeners is None:
            return
        listeners.discard(listener)
        if not listeners:
            del self._listeners[channel]


class _RedisListener:
    def __init__(self, pubsub: redis.client.PubSub) -> None:
        self._pubsub = pubsub

    async def get(self) -> str:
        while True:
            message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=None)
            if message is not None and message["type"] == "message":
                return str(message["data"])

    async def drain(self) -> int:
        dropped = 0
        while await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=0.0) is not None:
            dropped += 1
        return dropped

    async def close(self) -> None:
        await self._pubsub.unsubscribe()
        await self._pubsub.aclose()


class RedisChangeBus:
    """Multi-process bus backed by Redis pub/sub."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def publish(self, channel: str, payload: str = "changed") -> None:
        await self._client.publish(channel, payload)

    async def listen(self, channel: str) -> ChannelListener:
        pubsub = self._client.pubsub()
        await pubsub.subscribe(channel)
        logger.debug(f"Subscribed to Redis channel {channel}")
        return _RedisListener(pubsub)
