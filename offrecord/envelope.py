"""Client-side message envelope creation and opening."""

from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Any

from .codec import decode, encode
from .crypto import DecryptionError, decode_plaintext, decrypt, encode_plaintext, encrypt
from .keys import ChannelKeys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    """A history entry as seen by a client holding the channel keys.

    Entries that do not open under the local keys are kept with
    ``readable=False`` so they can be shown as unreadable.
    """

    timestamp: int
    nickname: str | None
    body: str | None
    readable: bool = True


def now_ms() -> int:
    """Get current time in milliseconds.

    Returns:
        Current time as milliseconds since epoch
    """
    return int(time.time() * 1000)


def seal_message(keys: ChannelKeys, nickname: str, body: str) -> bytes:
    """Encrypt a chat line into an opaque binary envelope.

    Args:
        keys: Channel keys derived from the passphrase
        nickname: Display name of the sender
        body: Message text

    Returns:
        CBOR ``[nonce, ciphertext]`` bytes, ready for a binary frame
    """
    nonce, ciphertext = encrypt(
        keys.secret_key, keys.public_key, encode_plaintext(nickname, body)
    )
    return encode(nonce, ciphertext)


def seal_message_text(keys: ChannelKeys, nickname: str, body: str) -> str:
    """Like :func:`seal_message` but base64 text, for JSON text frames."""
    return base64.b64encode(seal_message(keys, nickname, body)).decode("ascii")


def open_payload(keys: ChannelKeys, payload: Any) -> tuple[str, str]:
    """Decrypt a relayed payload.

    Args:
        keys: Channel keys derived from the passphrase
        payload: Payload as stored by the relay (base64 text)

    Returns:
        ``(nickname, body)`` tuple

    Raises:
        DecryptionError: If the payload is not a sealed message for these keys
    """
    if not isinstance(payload, str):
        raise DecryptionError(f"payload has unsupported type: {type(payload).__name__}")

    try:
        raw = base64.b64decode(payload, validate=True)
        nonce, ciphertext = decode(raw)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError(f"malformed envelope: {e}") from e

    plaintext = decrypt(keys.secret_key, keys.public_key, nonce, ciphertext)

    try:
        return decode_plaintext(plaintext)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecryptionError(f"malformed plaintext: {e}") from e


def open_entry(keys: ChannelKeys, entry: Any) -> ChatMessage:
    """Turn a relayed ``[timestamp_ms, payload]`` pair into a ChatMessage.

    Args:
        keys: Channel keys derived from the passphrase
        entry: History entry from the relay

    Returns:
        ChatMessage, flagged unreadable if it does not open
    """
    timestamp = 0
    payload = None
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        ts, payload = entry
        if isinstance(ts, int) and not isinstance(ts, bool):
            timestamp = ts

    try:
        nickname, body = open_payload(keys, payload)
    except DecryptionError as e:
        logger.debug("Unreadable message at %d: %s", timestamp, e)
        return ChatMessage(timestamp=timestamp, nickname=None, body=None, readable=False)

    return ChatMessage(timestamp=timestamp, nickname=nickname, body=body)
