"""Self-keyed NaCl box encryption for channel messages.

Both sides of the box are the same passphrase-derived keypair, so the shared
secret depends on the secret key alone. Anyone holding the passphrase can
open what anyone else holding it sealed, and the Poly1305 tag rejects
everything else.
"""

from __future__ import annotations

import json
from typing import Any

from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey
from nacl.utils import random as nacl_random

NONCE_SIZE = Box.NONCE_SIZE


class DecryptionError(ValueError):
    """Raised when a ciphertext does not open under the local keypair."""

    pass


def _box(secret_key: bytes, public_key: bytes) -> Box:
    return Box(PrivateKey(secret_key), PublicKey(public_key))


def encrypt(secret_key: bytes, public_key: bytes, plaintext: bytes) -> tuple[bytes, bytes]:
    """Encrypt plaintext under the channel keypair.

    Args:
        secret_key: Channel secret key
        public_key: Channel public key (same keypair)
        plaintext: Bytes to seal

    Returns:
        ``(nonce, ciphertext)`` with a fresh random nonce
    """
    nonce = nacl_random(NONCE_SIZE)
    sealed = _box(secret_key, public_key).encrypt(plaintext, nonce)
    return nonce, sealed.ciphertext


def decrypt(secret_key: bytes, public_key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
    """Open a ciphertext sealed with :func:`encrypt`.

    Args:
        secret_key: Channel secret key
        public_key: Channel public key (same keypair)
        nonce: Nonce used at encryption
        ciphertext: Sealed bytes

    Returns:
        Plaintext bytes

    Raises:
        DecryptionError: If the key is wrong or the data was tampered with
    """
    if len(nonce) != NONCE_SIZE:
        raise DecryptionError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    try:
        return _box(secret_key, public_key).decrypt(ciphertext, nonce)
    except CryptoError as e:
        raise DecryptionError("message failed authentication") from e


def encode_plaintext(nickname: str, body: str) -> bytes:
    """Serialize a chat line as a JSON ``[nickname, body]`` array."""
    return json.dumps([nickname, body]).encode("utf-8")


def decode_plaintext(data: bytes) -> tuple[str, str]:
    """Parse a JSON ``[nickname, body]`` array.

    Raises:
        ValueError: If the plaintext is not a pair of strings
    """
    obj: Any = json.loads(data.decode("utf-8"))
    if not isinstance(obj, list) or len(obj) != 2:
        raise ValueError("plaintext must be a 2-element array")
    nickname, body = obj
    if not isinstance(nickname, str) or not isinstance(body, str):
        raise ValueError("plaintext members must be strings")
    return nickname, body
