"""Passphrase key derivation and channel naming."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
from dataclasses import dataclass

from nacl.public import PrivateKey

from .constants import KDF_HASH, KDF_ITERATIONS, KDF_SALT, RANDOM_CHANNEL_BYTES, SEED_SIZE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelKeys:
    """Keypair and channel identifier derived from one passphrase.

    Never transmitted. A new instance replaces the old one whenever the
    passphrase changes.
    """

    public_key: bytes
    secret_key: bytes
    channel_id: str

    def __repr__(self) -> str:
        return f"ChannelKeys(channel_id={self.channel_id[:8]}...)"


def encode_channel_id(data: bytes) -> str:
    """Encode bytes as a channel identifier.

    URL-safe base64 with the trailing padding stripped, so the identifier
    fits a single path segment.

    Args:
        data: Raw bytes (usually a public key)

    Returns:
        Channel identifier string
    """
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def stretch_passphrase(passphrase: str) -> bytes:
    """Stretch a passphrase into a 32-byte seed with PBKDF2-HMAC-SHA256.

    Args:
        passphrase: Passphrase text, possibly empty

    Returns:
        32-byte seed
    """
    return hashlib.pbkdf2_hmac(
        KDF_HASH,
        passphrase.encode("utf-8"),
        KDF_SALT,
        KDF_ITERATIONS,
        dklen=SEED_SIZE,
    )


def derive_keys(passphrase: str) -> ChannelKeys:
    """Derive the box keypair and channel identifier for a passphrase.

    The stretched seed is used directly as the Curve25519 secret scalar.

    Args:
        passphrase: Passphrase text taken verbatim from the invite fragment

    Returns:
        Derived ChannelKeys
    """
    if not isinstance(passphrase, str):
        raise TypeError("passphrase must be a string")

    private_key = PrivateKey(stretch_passphrase(passphrase))
    public_key = bytes(private_key.public_key)
    keys = ChannelKeys(
        public_key=public_key,
        secret_key=bytes(private_key),
        channel_id=encode_channel_id(public_key),
    )
    logger.debug("Derived keys for channel %s...", keys.channel_id[:8])
    return keys


def random_channel_name() -> str:
    """Generate an unguessable passphrase for a fresh private channel.

    Returns:
        Random passphrase string
    """
    return encode_channel_id(os.urandom(RANDOM_CHANNEL_BYTES))
