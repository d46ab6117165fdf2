"""offrecord relay protocol constants.

offrecord Protocol
==================

The relay never sees plaintext. Every frame it stores is an opaque payload
posted by a client; the only structure it understands is the handful of
control keys below.

Server -> Client frames (JSON text):
    - Join snapshot: list of [timestamp_ms, payload] pairs (possibly empty)
    - New post: single-element list [[timestamp_ms, payload]]
    - Clear: {K_CLEARED: true}
    - Presence: {K_COUNT: <number of listeners>}

Client -> Server frames:
    - JSON text with a truthy K_CLEAR: wipe the channel history
    - Any other JSON text: stored and broadcast verbatim
    - Binary: base64 encoded by the relay, then stored and broadcast
"""

# ============================================================================
# Control Keys
# ============================================================================

K_CLEAR = "clear"  # Client -> Relay: wipe request flag
K_CLEARED = "cl"  # Relay -> Client: channel history was wiped
K_COUNT = "ct"  # Relay -> Client: current listener count

# ============================================================================
# Limits
# ============================================================================

HISTORY_LIMIT = 10  # Messages kept per channel
MAX_FRAME_SIZE = 1024 * 1024  # Largest accepted frame in bytes (1 MiB)
PRESENCE_INTERVAL = 15.0  # Seconds between presence re-announcements
MAX_PENDING_FRAMES = 256  # Outbound frames queued per listener before it is dropped

# ============================================================================
# WebSocket Close Codes (RFC 6455)
# ============================================================================

CLOSE_PROTOCOL_FAILURE = 1007  # Frame could not be parsed
CLOSE_MESSAGE_TOO_LARGE = 1009  # Frame exceeded MAX_FRAME_SIZE
CLOSE_TRY_AGAIN_LATER = 1013  # Listener fell too far behind

MAX_CLOSE_REASON = 123  # Bytes allowed in a close frame reason

# ============================================================================
# Key Derivation
# ============================================================================

KDF_SALT = b"offrecord.ca"  # Application-wide PBKDF2 salt
KDF_ITERATIONS = 100_000
KDF_HASH = "sha256"
SEED_SIZE = 32  # Curve25519 secret scalar width

# ============================================================================
# Channels
# ============================================================================

LOBBY_PASSPHRASE = "lobby"  # Public, well-known channel
RANDOM_CHANNEL_BYTES = 64
WS_PATH_PREFIX = "/ws/"
