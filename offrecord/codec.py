"""CBOR codec for offrecord message envelopes."""

from __future__ import annotations

import cbor2

from .constants import MAX_FRAME_SIZE


def encode(nonce: bytes, ciphertext: bytes) -> bytes:
    """Pack a nonce and ciphertext into a CBOR array.

    Args:
        nonce: Box nonce
        ciphertext: Box output

    Returns:
        CBOR encoded bytes of ``[nonce, ciphertext]``
    """
    return cbor2.dumps([bytes(nonce), bytes(ciphertext)])


def decode(data: bytes) -> tuple[bytes, bytes]:
    """Unpack CBOR bytes produced by :func:`encode`.

    Args:
        data: CBOR encoded bytes

    Returns:
        ``(nonce, ciphertext)`` tuple

    Raises:
        ValueError: If data exceeds size limit or is not a valid envelope
        TypeError: If the envelope members are not byte strings
    """
    if len(data) > MAX_FRAME_SIZE:
        raise ValueError(f"CBOR data too large: {len(data)} bytes (max {MAX_FRAME_SIZE})")

    try:
        obj = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise ValueError(f"Invalid CBOR envelope: {e}") from e

    if not isinstance(obj, list) or len(obj) != 2:
        raise ValueError("envelope must be a 2-element array")

    nonce, ciphertext = obj
    if not isinstance(nonce, (bytes, bytearray)):
        raise TypeError("envelope nonce must be bytes")
    if not isinstance(ciphertext, (bytes, bytearray)):
        raise TypeError("envelope ciphertext must be bytes")

    return bytes(nonce), bytes(ciphertext)
