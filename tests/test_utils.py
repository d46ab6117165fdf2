"""Tests for client utilities."""

import pytest

from offrecord.utils import (
    make_invite,
    origin_from_relay_url,
    parse_invite,
    random_nickname,
    relay_url_from_origin,
    sanitize_display_name,
)


@pytest.mark.parametrize("passphrase", ["lobby", "", "two words", "a#b/c?d", "ünïcode"])
def test_invite_round_trip(passphrase):
    url = make_invite("https://chat.example", passphrase)
    assert url.startswith("https://chat.example#")
    assert parse_invite(url) == ("https://chat.example", passphrase)


def test_make_invite_replaces_existing_fragment():
    assert make_invite("https://chat.example/#old", "new") == "https://chat.example/#new"


def test_parse_invite_without_fragment():
    assert parse_invite("https://chat.example/") == ("https://chat.example/", "")


@pytest.mark.parametrize(
    "origin, expected",
    [
        ("https://chat.example/", "wss://chat.example"),
        ("http://localhost:8084", "ws://localhost:8084"),
        ("wss://relay.example:443/x", "wss://relay.example:443"),
    ],
)
def test_relay_url_from_origin(origin, expected):
    assert relay_url_from_origin(origin) == expected


def test_relay_url_rejects_other_schemes():
    with pytest.raises(ValueError):
        relay_url_from_origin("ftp://example.com")


@pytest.mark.parametrize(
    "relay_url, expected",
    [
        ("ws://localhost:8084", "http://localhost:8084"),
        ("wss://relay.example/ws/abc", "https://relay.example"),
        ("https://chat.example", "https://chat.example"),
    ],
)
def test_origin_from_relay_url(relay_url, expected):
    assert origin_from_relay_url(relay_url) == expected


def test_origin_rejects_other_schemes():
    with pytest.raises(ValueError):
        origin_from_relay_url("ftp://example.com")


def test_random_nickname():
    nick = random_nickname()
    assert len(nick) == 8
    assert nick.isalnum() and nick.lower() == nick


def test_sanitize_display_name():
    assert sanitize_display_name("  al\x00ice\n ") == "alice"
    assert sanitize_display_name("   ") is None
    assert sanitize_display_name("x" * 100, max_length=32) == "x" * 32
