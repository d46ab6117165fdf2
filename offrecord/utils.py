"""Utility functions for offrecord clients."""

from __future__ import annotations

import secrets
import string
from datetime import datetime
from urllib.parse import quote, unquote, urldefrag, urlsplit, urlunsplit

NICKNAME_ALPHABET = string.ascii_lowercase + string.digits
NICKNAME_LENGTH = 8


def format_timestamp(ts_ms: int) -> str:
    """Format a millisecond timestamp as a local date and time.

    Args:
        ts_ms: Milliseconds since epoch

    Returns:
        Formatted timestamp string
    """
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def random_nickname() -> str:
    """Generate a throwaway nickname.

    Returns:
        Random lowercase alphanumeric string
    """
    return "".join(secrets.choice(NICKNAME_ALPHABET) for _ in range(NICKNAME_LENGTH))


def sanitize_display_name(name: str, max_length: int = 64) -> str | None:
    """Sanitize display names like nicknames.

    Removes control characters and limits length.

    Args:
        name: Name to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized name, or None if invalid
    """
    if not isinstance(name, str):
        return None

    sanitized = name.strip()
    if not sanitized:
        return None

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    cleaned = ""
    for char in sanitized:
        code = ord(char)
        if code < 32 or code == 0x7F or code == 0xFFFE or code == 0xFFFF:
            continue
        cleaned += char

    if not cleaned:
        return None

    return cleaned


def make_invite(origin: str, passphrase: str) -> str:
    """Build a shareable ``<origin>#<passphrase>`` link.

    The passphrase lives in the fragment, which clients never send to the
    server.

    Args:
        origin: Base URL of the web client
        passphrase: Channel passphrase

    Returns:
        Invite URL
    """
    base, _ = urldefrag(origin)
    return f"{base}#{quote(passphrase, safe='')}"


def parse_invite(url: str) -> tuple[str, str]:
    """Split an invite link into its origin and passphrase.

    Args:
        url: Invite URL

    Returns:
        ``(origin, passphrase)``; the passphrase is empty if there is no fragment
    """
    base, fragment = urldefrag(url)
    return base, unquote(fragment)


def relay_url_from_origin(origin: str) -> str:
    """Map a web origin to the relay WebSocket base URL.

    Args:
        origin: ``http://``, ``https://``, ``ws://`` or ``wss://`` URL

    Returns:
        ``ws://`` or ``wss://`` URL without path
    """
    parts = urlsplit(origin)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme)
    if scheme not in ("ws", "wss"):
        raise ValueError(f"Unsupported URL scheme: {parts.scheme!r}")
    return urlunsplit((scheme, parts.netloc, "", "", ""))


def origin_from_relay_url(relay_url: str) -> str:
    """Map a relay WebSocket URL back to the web origin serving the client."""
    parts = urlsplit(relay_url)
    scheme = {"ws": "http", "wss": "https"}.get(parts.scheme, parts.scheme)
    if scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parts.scheme!r}")
    return urlunsplit((scheme, parts.netloc, "", "", ""))
