"""Periodic presence re-announcement for every live channel."""

from __future__ import annotations

import asyncio
import logging

from .channel import ChannelRegistry
from .constants import PRESENCE_INTERVAL

logger = logging.getLogger(__name__)


class Heartbeat:
    """Re-broadcasts listener counts on a fixed interval.

    Keeps presence counts flowing even when nobody joins or leaves. This is
    not a transport ping; dead sockets are detected by aiohttp's own
    WebSocket heartbeat.
    """

    def __init__(self, registry: ChannelRegistry, interval: float = PRESENCE_INTERVAL):
        """Initialize the heartbeat.

        Args:
            registry: Registry whose channels are announced
            interval: Seconds between announcements
        """
        self.registry = registry
        self.interval = interval
        self.task: asyncio.Task | None = None

    def tick(self) -> None:
        """Announce presence on every channel currently registered."""
        for channel in self.registry.channels():
            channel.announce_presence()

    async def _run(self) -> None:
        """Background task that ticks forever."""
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.tick()
        except asyncio.CancelledError:
            logger.debug("Heartbeat task cancelled")
            raise

    def start(self) -> None:
        """Start the background task on the running loop."""
        if self.task is None:
            self.task = asyncio.get_running_loop().create_task(self._run())
            logger.info("Presence heartbeat started (every %.1fs)", self.interval)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        self.task = None
        logger.info("Presence heartbeat stopped")
