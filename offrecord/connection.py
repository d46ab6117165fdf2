"""Per-connection relay protocol."""

from __future__ import annotations

import asyncio
import base64
import enum
import json
import logging

from aiohttp import web

from .channel import Channel, ChannelRegistry
from .constants import (
    CLOSE_MESSAGE_TOO_LARGE,
    CLOSE_PROTOCOL_FAILURE,
    CLOSE_TRY_AGAIN_LATER,
    K_CLEAR,
    MAX_CLOSE_REASON,
    MAX_FRAME_SIZE,
    MAX_PENDING_FRAMES,
)

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> None:
    # Only strict JSON is relayed: NaN and Infinity are refused
    raise ValueError(f"invalid constant {name}")


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class WebSocketListener:
    """Channel listener backed by an aiohttp WebSocket.

    Frames are queued and written by a dedicated task, so a channel never
    waits on a slow socket and every listener sees frames in the order they
    were queued. A listener that falls more than max_pending frames behind
    is closed with 1013 instead of buffering without bound.
    """

    def __init__(self, ws: web.WebSocketResponse, max_pending: int = MAX_PENDING_FRAMES):
        self.ws = ws
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self.task: asyncio.Task | None = None
        self.close_task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self.ws.closed

    def send(self, data: str) -> None:
        if self.closed:
            return
        try:
            self.queue.put_nowait(data)
        except asyncio.QueueFull:
            logger.warning("Dropping listener with %d pending frames", self.queue.qsize())
            self._closed = True
            self.close_task = asyncio.get_running_loop().create_task(
                self.ws.close(code=CLOSE_TRY_AGAIN_LATER, message=b"Too slow")
            )

    def start(self) -> None:
        if self.task is None:
            self.task = asyncio.get_running_loop().create_task(self._pump())

    async def stop(self) -> None:
        self._closed = True
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        self.task = None

    async def _pump(self) -> None:
        while True:
            data = await self.queue.get()
            if self.closed:
                continue
            try:
                await self.ws.send_str(data)
            except ConnectionResetError:
                logger.debug("Dropped frame to closing WebSocket")
            except Exception as e:
                logger.warning("Error sending to WebSocket: %s", e)


class Connection:
    """Drives one client WebSocket through CONNECTING -> OPEN -> CLOSED.

    Frames are validated here before anything reaches the channel: oversize
    frames close the socket with 1009 and unparseable text closes it with
    1007. Valid frames are posted (or clear the channel) verbatim.
    """

    def __init__(
        self,
        ws: web.WebSocketResponse,
        registry: ChannelRegistry,
        topic: str,
        max_frame_size: int = MAX_FRAME_SIZE,
    ):
        """Initialize a connection.

        Args:
            ws: Prepared WebSocket response
            registry: Channel registry
            topic: Channel identifier taken from the request path
            max_frame_size: Largest accepted frame in bytes
        """
        self.ws = ws
        self.registry = registry
        self.topic = topic
        self.max_frame_size = max_frame_size
        self.listener = WebSocketListener(ws)
        self.channel: Channel | None = None
        self.state = ConnectionState.CONNECTING

    def open(self) -> None:
        """Join the addressed channel."""
        if self.state is not ConnectionState.CONNECTING:
            return
        self.listener.start()
        self.channel = self.registry.resolve(self.topic)
        self.state = ConnectionState.OPEN
        self.channel.on_join(self.listener)

    async def run(self) -> None:
        """Open the connection and process frames until the socket closes."""
        self.open()
        try:
            async for msg in self.ws:
                if msg.type == web.WSMsgType.TEXT:
                    await self.handle_text(msg.data)
                elif msg.type == web.WSMsgType.BINARY:
                    await self.handle_binary(msg.data)
                elif msg.type == web.WSMsgType.ERROR:
                    logger.error("WebSocket error: %s", self.ws.exception())
        except asyncio.CancelledError:
            logger.info("WebSocket handler cancelled")
            raise
        except ConnectionResetError:
            logger.info("WebSocket connection reset by client")
        except Exception as e:
            logger.error("WebSocket handler error: %s", e, exc_info=True)
        finally:
            await self.closed()

    async def handle_text(self, data: str) -> None:
        """Handle a text frame: clear request or opaque JSON payload."""
        if self.state is not ConnectionState.OPEN or self.channel is None:
            return

        if len(data.encode("utf-8")) > self.max_frame_size:
            await self.close(CLOSE_MESSAGE_TOO_LARGE, "Message too large")
            return

        try:
            payload = json.loads(data, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            logger.warning("Invalid JSON on channel %s...: %s", self.topic[:8], e)
            await self.close(CLOSE_PROTOCOL_FAILURE, f"Failure: {e}")
            return

        if isinstance(payload, dict) and payload.get(K_CLEAR):
            self.channel.clear()
        else:
            self.channel.post(payload)

    async def handle_binary(self, data: bytes) -> None:
        """Handle a binary frame: stored as base64 text."""
        if self.state is not ConnectionState.OPEN or self.channel is None:
            return

        if len(data) > self.max_frame_size:
            await self.close(CLOSE_MESSAGE_TOO_LARGE, "Message too large")
            return

        self.channel.post(base64.b64encode(data).decode("ascii"))

    async def close(self, code: int, reason: str) -> None:
        """Close the socket with a code and a (truncated) reason."""
        message = reason.encode("utf-8")[:MAX_CLOSE_REASON].decode("utf-8", "ignore").encode("utf-8")
        logger.info("Closing connection on channel %s... (%d: %s)", self.topic[:8], code, reason)
        await self.ws.close(code=code, message=message)

    async def closed(self) -> None:
        """Leave the channel once; safe to call more than once."""
        if self.state is ConnectionState.CLOSED:
            return
        was_open = self.state is ConnectionState.OPEN
        self.state = ConnectionState.CLOSED
        if was_open and self.channel is not None:
            self.channel.on_leave(self.listener)
        await self.listener.stop()
