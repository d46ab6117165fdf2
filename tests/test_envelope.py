"""Tests for sealing and opening chat messages."""

import base64

import pytest

from offrecord.codec import decode
from offrecord.crypto import DecryptionError
from offrecord.envelope import ChatMessage, open_entry, open_payload, seal_message, seal_message_text
from offrecord.keys import derive_keys


@pytest.fixture(scope="module")
def keys():
    return derive_keys("p1")


def relayed(frame: bytes) -> str:
    """What the relay stores for a binary frame."""
    return base64.b64encode(frame).decode("ascii")


def test_sealed_frame_is_cbor_envelope(keys):
    nonce, ciphertext = decode(seal_message(keys, "alice", "hi"))
    assert len(nonce) == 24
    assert b"alice" not in ciphertext


def test_open_relayed_binary_frame(keys):
    assert open_payload(keys, relayed(seal_message(keys, "alice", "hi"))) == ("alice", "hi")


def test_open_text_sealed_payload(keys):
    assert open_payload(keys, seal_message_text(keys, "bob", "yo")) == ("bob", "yo")


def test_wrong_keys_raise(keys):
    payload = relayed(seal_message(keys, "alice", "hi"))
    with pytest.raises(DecryptionError):
        open_payload(derive_keys("p2"), payload)


@pytest.mark.parametrize("payload", ["not base64!", "AAAA", 42, {"x": 1}, None])
def test_malformed_payloads_raise(keys, payload):
    with pytest.raises(DecryptionError):
        open_payload(keys, payload)


def test_open_entry_readable(keys):
    entry = [1700000000000, relayed(seal_message(keys, "alice", "hi"))]
    assert open_entry(keys, entry) == ChatMessage(1700000000000, "alice", "hi")


def test_open_entry_flags_foreign_message(keys):
    entry = [1700000000000, relayed(seal_message(derive_keys("p2"), "eve", "boo"))]
    msg = open_entry(keys, entry)
    assert msg.readable is False
    assert msg.timestamp == 1700000000000
    assert msg.nickname is None and msg.body is None


def test_open_entry_tolerates_bad_shape(keys):
    msg = open_entry(keys, "garbage")
    assert msg.readable is False
    assert msg.timestamp == 0
