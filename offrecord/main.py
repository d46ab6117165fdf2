"""Main entry point for the offrecord relay."""

import asyncio
import logging
import os
import signal
import ssl
import sys
from pathlib import Path

from .config import load_config
from .server import RelayServer

log_level = os.environ.get("OFFRECORD_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def build_ssl_context(config: dict) -> ssl.SSLContext | None:
    """Create a server SSL context from config, or None if disabled/unavailable.

    Args:
        config: Configuration dictionary

    Returns:
        SSL context or None
    """
    if not config.get("enable_ssl", False):
        return None

    cert_path = Path(config.get("ssl_cert_path", ""))
    key_path = Path(config.get("ssl_key_path", ""))

    if not (cert_path.exists() and key_path.exists()):
        logger.warning("SSL enabled but certificate files not found")
        logger.warning("Use offrecord-cert to create certificates")
        logger.warning("Continuing without SSL")
        return None

    ssl_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    try:
        ssl_context.load_cert_chain(cert_path, key_path)
    except (OSError, ssl.SSLError) as e:
        logger.error("Failed to load SSL certificate: %s", e)
        logger.error("Continuing without SSL")
        return None

    logger.info("SSL/TLS enabled")
    return ssl_context


async def main_async(config: dict):
    """Main async entry point.

    Args:
        config: Loaded configuration
    """
    port = int(os.environ.get("OFFRECORD_PORT", config.get("server_port", 8084)))
    host = config.get("server_host", "localhost")

    server = RelayServer(
        host=host,
        port=port,
        config=config,
        ssl_context=build_ssl_context(config),
    )
    await server.start()

    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    logger.info("offrecord relay started. Press Ctrl+C to stop.")
    await stop_event.wait()

    logger.info("Shutting down...")
    await server.stop()


def main():
    """Main entry point."""
    try:
        asyncio.run(main_async(load_config()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
