"""offrecord channel client."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

import aiohttp

from .constants import K_CLEAR, K_CLEARED, K_COUNT, MAX_FRAME_SIZE, WS_PATH_PREFIX
from .envelope import ChatMessage, open_entry, seal_message
from .keys import ChannelKeys, derive_keys
from .utils import random_nickname

logger = logging.getLogger(__name__)


class MessageTooLargeError(RuntimeError):
    """Raised when a sealed message exceeds the relay frame limit."""

    pass


class NotConnectedError(RuntimeError):
    """Raised when sending without an open channel connection."""

    pass


class ChannelClient:
    """Client for one passphrase-addressed channel at a time.

    The passphrase never leaves the process: only the derived channel
    identifier appears in the connection URL, and every message is sealed
    with the derived keys before it is sent.

    Callbacks (on_messages, on_clear, on_count, on_close) run on the event
    loop from the reader task and must not block.
    """

    def __init__(
        self,
        relay_url: str,
        nickname: str | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> None:
        """Initialize the client.

        Args:
            relay_url: Relay base URL, e.g. ``ws://localhost:8084``
            nickname: Display name sent inside every sealed message
            session: Optional aiohttp session to reuse
            max_frame_size: Largest frame the relay accepts
        """
        self.relay_url = relay_url.rstrip("/")
        self.nickname = nickname or random_nickname()
        self.max_frame_size = max_frame_size

        self.passphrase: str | None = None
        self.keys: ChannelKeys | None = None
        self.ws: aiohttp.ClientWebSocketResponse | None = None
        self.messages: list[ChatMessage] = []
        self.count: int | None = None

        self._session = session
        self._owns_session = session is None
        self._reader: asyncio.Task | None = None

        self.on_messages: Callable[[list[ChatMessage]], None] | None = None
        self.on_clear: Callable[[], None] | None = None
        self.on_count: Callable[[int], None] | None = None
        self.on_close: Callable[[int | None], None] | None = None

    @property
    def channel_id(self) -> str | None:
        return self.keys.channel_id if self.keys else None

    @property
    def connected(self) -> bool:
        return self.ws is not None and not self.ws.closed

    def channel_url(self, channel_id: str) -> str:
        return f"{self.relay_url}{WS_PATH_PREFIX}{channel_id}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def connect(self, passphrase: str) -> None:
        """Join the channel for a passphrase.

        Switching to a passphrase that maps to the current channel keeps the
        existing connection. Otherwise the previous connection is torn down
        before the new one is opened.

        Args:
            passphrase: Channel passphrase
        """
        keys = await asyncio.get_running_loop().run_in_executor(None, derive_keys, passphrase)

        if self.keys is not None and keys.channel_id == self.keys.channel_id and self.connected:
            self.passphrase = passphrase
            return

        await self.disconnect()

        self.passphrase = passphrase
        self.keys = keys
        self.messages = []
        self.count = None

        session = await self._get_session()
        # Relay frames can carry a full history of max-size payloads
        ws = await session.ws_connect(
            self.channel_url(keys.channel_id),
            max_msg_size=self.max_frame_size * 16,
        )
        self.ws = ws
        self._reader = asyncio.get_running_loop().create_task(self._read_loop(ws, keys))
        logger.info("Connected to channel %s...", keys.channel_id[:8])

    async def disconnect(self) -> None:
        """Close the current channel connection, if any."""
        reader, self._reader = self._reader, None
        ws, self.ws = self.ws, None

        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        if ws is not None and not ws.closed:
            await ws.close()

    async def close(self) -> None:
        """Disconnect and release the HTTP session if this client created it."""
        await self.disconnect()
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def send(self, body: str) -> None:
        """Seal and send a chat line.

        Args:
            body: Message text

        Raises:
            NotConnectedError: If no channel is open
            MessageTooLargeError: If the sealed frame exceeds the relay limit
        """
        if self.keys is None or not self.connected:
            raise NotConnectedError("Not connected to a channel")

        frame = seal_message(self.keys, self.nickname, body)
        if len(frame) > self.max_frame_size:
            raise MessageTooLargeError(
                f"Message too large: {len(frame)} bytes (max {self.max_frame_size})"
            )

        await self.ws.send_bytes(frame)  # type: ignore[union-attr]

    async def wipe(self) -> None:
        """Ask the relay to clear the channel history for everyone."""
        if not self.connected:
            raise NotConnectedError("Not connected to a channel")
        await self.ws.send_str(json.dumps({K_CLEAR: True}))  # type: ignore[union-attr]

    def handle_frame(self, keys: ChannelKeys, data: str) -> None:
        """Apply one relay frame to the local view.

        Args:
            keys: Keys of the connection the frame arrived on
            data: JSON text frame from the relay
        """
        try:
            payload = json.loads(data)
        except ValueError as e:
            logger.warning("Ignoring malformed frame from relay: %s", e)
            return

        if isinstance(payload, dict):
            if payload.get(K_CLEARED):
                self.messages = []
                if self.on_clear:
                    self.on_clear()
            elif K_COUNT in payload:
                count = payload[K_COUNT]
                if isinstance(count, int) and not isinstance(count, bool):
                    self.count = count
                    if self.on_count:
                        self.on_count(count)
        elif isinstance(payload, list):
            received = [open_entry(keys, entry) for entry in payload]
            self.messages.extend(received)
            if self.on_messages:
                self.on_messages(received)
        else:
            logger.warning("Ignoring unexpected frame type: %s", type(payload).__name__)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse, keys: ChannelKeys) -> None:
        """Background task reading relay frames for one connection."""
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_frame(keys, msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error("WebSocket error: %s", ws.exception())
        except asyncio.CancelledError:
            logger.debug("Reader task cancelled")
            raise

        logger.info("Channel connection closed (code %s)", ws.close_code)
        if self.ws is ws:
            self.ws = None
            self._reader = None
            if self.on_close:
                self.on_close(ws.close_code)
