"""aiohttp application hosting the offrecord relay."""

from __future__ import annotations

import logging
import ssl
from typing import Any

from aiohttp import web

from .channel import ChannelRegistry
from .config import get_default_config
from .connection import Connection
from .heartbeat import Heartbeat

logger = logging.getLogger(__name__)


class RelayServer:
    """HTTP server exposing one WebSocket endpoint per channel.

    The registry is owned by the server instance and shared with every
    connection it accepts; nothing lives at module level.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8084,
        config: dict[str, Any] | None = None,
        ssl_context: ssl.SSLContext | None = None,
        registry: ChannelRegistry | None = None,
    ):
        """Initialize the relay server.

        Args:
            host: Host to bind to
            port: Port to listen on
            config: Configuration dictionary (defaults used for missing keys)
            ssl_context: SSL context for wss://
            registry: Channel registry (a fresh one by default)
        """
        self.host = host
        self.port = port
        self.config = {**get_default_config(), **(config or {})}
        self.ssl_context = ssl_context
        self.registry = registry or ChannelRegistry(
            history_limit=int(self.config["history_limit"])
        )
        self.heartbeat = Heartbeat(self.registry, float(self.config["presence_interval"]))
        self.max_frame_size = int(self.config["max_frame_size"])
        self.runner: web.AppRunner | None = None
        self.app = web.Application()
        self.app.on_startup.append(self._on_startup)
        self.app.on_cleanup.append(self._on_cleanup)
        self.setup_routes()

    def setup_routes(self):
        """Set up HTTP routes."""
        self.app.router.add_get("/ws/{channel:.*}", self.websocket_handler)

    async def _on_startup(self, _app: web.Application) -> None:
        self.heartbeat.start()

    async def _on_cleanup(self, _app: web.Application) -> None:
        await self.heartbeat.stop()

    async def websocket_handler(self, request: web.Request) -> web.StreamResponse:
        """Handle a WebSocket connection to a channel.

        Args:
            request: WebSocket upgrade request

        Returns:
            WebSocket response
        """
        topic = request.match_info["channel"]
        ws_heartbeat = float(self.config.get("ws_heartbeat") or 0)

        # aiohttp's own cap sits above ours so oversize frames reach Connection
        ws = web.WebSocketResponse(
            max_msg_size=self.max_frame_size * 4,
            heartbeat=ws_heartbeat or None,
        )
        await ws.prepare(request)

        logger.info("WebSocket client connected to channel %s...", topic[:8])

        connection = Connection(ws, self.registry, topic, max_frame_size=self.max_frame_size)
        await connection.run()

        logger.info("WebSocket client disconnected from channel %s...", topic[:8])
        return ws

    async def start(self):
        """Start the HTTP server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port, ssl_context=self.ssl_context)
        await site.start()

        scheme = "wss" if self.ssl_context else "ws"
        logger.info("Relay listening on %s://%s:%d/ws/", scheme, self.host, self.port)

    async def stop(self):
        """Stop the HTTP server and close every connection."""
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
        logger.info("Relay stopped")
