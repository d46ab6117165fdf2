"""Tests for the terminal chat helpers."""

import json

import aiohttp
import pytest

from offrecord import chat
from offrecord.chat import format_message, run_chat
from offrecord.envelope import ChatMessage
from offrecord.utils import format_timestamp


class StubClient:
    """Records chat client calls; connecting to "unreachable" fails."""

    def __init__(self) -> None:
        self.passphrase = None
        self.nickname = "tester"
        self.joined: list[str] = []
        self.sent: list[str] = []

    async def connect(self, passphrase: str) -> None:
        if passphrase == "unreachable":
            raise aiohttp.ClientConnectionError("Cannot connect to relay")
        self.passphrase = passphrase
        self.joined.append(passphrase)

    async def send(self, body: str) -> None:
        self.sent.append(body)


def feed_lines(monkeypatch, lines):
    pending = list(lines)

    async def read_line():
        return pending.pop(0) if pending else ""

    monkeypatch.setattr(chat, "read_line", read_line)


def test_format_readable_message():
    line = format_message(ChatMessage(1700000000000, "alice", "hi there"))
    assert line == f"{format_timestamp(1700000000000)} alice: hi there"


def test_format_unreadable_message():
    line = format_message(ChatMessage(1700000000000, None, None, readable=False))
    assert line.endswith("[bad message]")


async def test_failed_join_keeps_session_running(monkeypatch, capsys):
    feed_lines(monkeypatch, ["/join unreachable\n", "still here\n", "/quit\n", "never sent\n"])
    client = StubClient()

    await run_chat(client, "first", "http://localhost:8084")

    assert client.joined == ["first"]
    assert client.sent == ["still here"]
    assert "Cannot connect to relay" in capsys.readouterr().out


async def test_invites_use_web_origin(monkeypatch, capsys):
    feed_lines(monkeypatch, ["/invite\n"])
    await run_chat(StubClient(), "pass", "https://chat.example")
    assert "https://chat.example#pass" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv, expected",
    [
        (["pass", "--relay", "wss://relay.example:8443"], "https://relay.example:8443"),
        (["pass", "--relay", "ws://localhost:8084", "--origin", "https://chat.example"], "https://chat.example"),
        (["https://web.example/#pass"], "https://web.example/"),
    ],
)
def test_main_picks_invite_origin(monkeypatch, argv, expected):
    seen = {}

    async def fake_run_chat(client, passphrase, origin):
        seen["passphrase"] = passphrase
        seen["origin"] = origin

    monkeypatch.setattr(chat, "run_chat", fake_run_chat)
    monkeypatch.setattr("sys.argv", ["offrecord-chat", *argv])

    assert chat.main() == 0
    assert seen == {"passphrase": "pass", "origin": expected}


def test_main_uses_configured_origin(monkeypatch, isolated_config):
    isolated_config.write_text(json.dumps({"origin": "https://cfg.example"}))
    seen = {}

    async def fake_run_chat(client, passphrase, origin):
        seen["origin"] = origin

    monkeypatch.setattr(chat, "run_chat", fake_run_chat)
    monkeypatch.setattr("sys.argv", ["offrecord-chat", "pass"])

    assert chat.main() == 0
    assert seen["origin"] == "https://cfg.example"
