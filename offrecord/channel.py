"""Relay-side channels and the channel registry.

Thread-Safety:
    Channels and the registry are owned by the asyncio event loop. None of
    their methods await, so each call runs to completion before any other
    handler gets a turn. Listeners only queue outgoing frames; the actual
    socket writes happen in the listener's own writer task.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Protocol

from .constants import HISTORY_LIMIT, K_CLEARED, K_COUNT
from .envelope import now_ms

logger = logging.getLogger(__name__)


class Listener(Protocol):
    """Anything a channel can push text frames to."""

    @property
    def closed(self) -> bool: ...

    def send(self, data: str) -> None: ...


def attempt_send(listener: Listener, data: str) -> None:
    """Send to a listener if it is still open, otherwise drop silently."""
    if not listener.closed:
        listener.send(data)


class Channel:
    """A named pub/sub group with a bounded history and a listener set."""

    def __init__(
        self,
        topic: str,
        registry: ChannelRegistry | None = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        """Initialize a channel.

        Args:
            topic: Opaque channel identifier
            registry: Registry to notify when the last listener leaves
            history_limit: Number of messages kept
        """
        self.topic = topic
        self.registry = registry
        self.listeners: set[Listener] = set()
        self.log: deque[tuple[int, Any]] = deque(maxlen=history_limit)

    def __repr__(self) -> str:
        return f"<Channel {self.topic[:8]}... listeners={len(self.listeners)} log={len(self.log)}>"

    def post(self, payload: Any) -> None:
        """Append a payload to the history and broadcast it.

        Args:
            payload: Opaque JSON-serializable value
        """
        entry = (now_ms(), payload)
        self.log.append(entry)
        self._broadcast(json.dumps([entry]))

    def clear(self) -> None:
        """Wipe the history and tell every listener."""
        self.log.clear()
        logger.info("Channel %s... cleared", self.topic[:8])
        self._broadcast(json.dumps({K_CLEARED: True}))

    def on_join(self, listener: Listener) -> None:
        """Register a listener, send it the history, then update presence."""
        self.listeners.add(listener)
        attempt_send(listener, json.dumps(list(self.log)))
        self.announce_presence()

    def on_leave(self, listener: Listener) -> None:
        """Unregister a listener; release the channel when it was the last one."""
        self.listeners.discard(listener)
        if not self.listeners:
            if self.registry is not None:
                self.registry.release(self.topic, self)
        else:
            self.announce_presence()

    def announce_presence(self) -> None:
        """Broadcast the current listener count."""
        self._broadcast(json.dumps({K_COUNT: len(self.listeners)}))

    def _broadcast(self, data: str) -> None:
        for listener in list(self.listeners):
            attempt_send(listener, data)


class ChannelRegistry:
    """Maps channel identifiers to live channels.

    Channels are created on first use and dropped as soon as they have no
    listeners. Nothing is persisted.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        """Initialize an empty registry.

        Args:
            history_limit: History bound for channels created by this registry
        """
        self.history_limit = history_limit
        self._channels: dict[str, Channel] = {}

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, topic: object) -> bool:
        return topic in self._channels

    def get(self, topic: str) -> Channel | None:
        """Look up a channel without creating it."""
        return self._channels.get(topic)

    def resolve(self, topic: str) -> Channel:
        """Return the channel for a topic, creating it if needed.

        Args:
            topic: Opaque channel identifier

        Returns:
            Existing or newly created Channel
        """
        channel = self._channels.get(topic)
        if channel is None:
            channel = Channel(topic, registry=self, history_limit=self.history_limit)
            self._channels[topic] = channel
            logger.info("Created channel %s... (total: %d)", topic[:8], len(self._channels))
        return channel

    def release(self, topic: str, channel: Channel | None = None) -> None:
        """Drop a channel if it still has no listeners.

        Args:
            topic: Channel identifier to release
            channel: If given, only release when it is still the registered instance
        """
        current = self._channels.get(topic)
        if current is None or current.listeners:
            return
        if channel is not None and current is not channel:
            return
        del self._channels[topic]
        logger.info("Removed empty channel %s... (total: %d)", topic[:8], len(self._channels))

    def channels(self) -> list[Channel]:
        """Snapshot of the live channels."""
        return list(self._channels.values())
