#!/usr/bin/env python3
"""Terminal chat client for offrecord channels."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import aiohttp

from .client import ChannelClient, MessageTooLargeError, NotConnectedError
from .config import load_config
from .constants import LOBBY_PASSPHRASE
from .envelope import ChatMessage
from .keys import random_channel_name
from .utils import (
    format_timestamp,
    make_invite,
    origin_from_relay_url,
    parse_invite,
    relay_url_from_origin,
    sanitize_display_name,
)

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /join <passphrase>  switch channel
  /random             switch to a fresh random channel
  /lobby              switch to the public lobby
  /nick <name>        change nickname
  /wipe               clear the channel history for everyone
  /invite             show the invite link
  /quit               leave"""


def format_message(msg: ChatMessage) -> str:
    """Render a message as one line of plain text."""
    when = format_timestamp(msg.timestamp)
    if not msg.readable:
        return f"{when} [bad message]"
    return f"{when} {msg.nickname}: {msg.body}"


def print_messages(messages: list[ChatMessage]) -> None:
    for msg in messages:
        print(format_message(msg))


async def read_line() -> str:
    return await asyncio.get_running_loop().run_in_executor(None, sys.stdin.readline)


async def run_chat(client: ChannelClient, passphrase: str, origin: str) -> None:
    """Interactive loop: lines are sent, slash-commands are handled locally.

    Args:
        client: Channel client
        passphrase: Initial passphrase
        origin: Origin used when printing invite links
    """
    client.on_messages = print_messages
    client.on_clear = lambda: print("-- channel wiped --")
    client.on_count = lambda count: print(f"-- {count} online --")
    client.on_close = lambda code: print(f"-- disconnected ({code}) --")

    await client.connect(passphrase)
    print(f"Joined. Invite: {make_invite(origin, passphrase)}")

    while True:
        line = await read_line()
        if not line:
            break
        text = line.rstrip("\n")
        if not text:
            continue

        parts = text.split(maxsplit=1)
        cmd = parts[0].lower()

        try:
            if cmd == "/quit":
                break
            elif cmd == "/help":
                print(HELP_TEXT)
            elif cmd == "/join" and len(parts) > 1:
                await client.connect(parts[1])
                print(f"Joined. Invite: {make_invite(origin, parts[1])}")
            elif cmd == "/random":
                new_pass = random_channel_name()
                await client.connect(new_pass)
                print(f"Joined. Invite: {make_invite(origin, new_pass)}")
            elif cmd == "/lobby":
                await client.connect(LOBBY_PASSPHRASE)
                print("Joined the public lobby")
            elif cmd == "/nick" and len(parts) > 1:
                nick = sanitize_display_name(parts[1], max_length=32)
                if nick:
                    client.nickname = nick
                    print(f"Nickname set to {nick}")
                else:
                    print("Invalid nickname")
            elif cmd == "/wipe":
                await client.wipe()
            elif cmd == "/invite":
                print(make_invite(origin, client.passphrase or ""))
            else:
                await client.send(text)
        except (NotConnectedError, MessageTooLargeError, aiohttp.ClientError) as e:
            print(f"-- {e} --")


def main() -> int:
    """Main entry point for the terminal chat client."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config()

    parser = argparse.ArgumentParser(description="Chat on an offrecord channel")
    parser.add_argument(
        "channel",
        nargs="?",
        help="Invite link (<origin>#<passphrase>) or bare passphrase",
    )
    parser.add_argument(
        "--relay",
        default=None,
        help=f"Relay URL (default: from invite, else {config['relay_url']})",
    )
    parser.add_argument(
        "--origin",
        default=config.get("origin") or None,
        help="Web origin used in invite links (default: derived from the relay URL)",
    )
    parser.add_argument(
        "--nick",
        default=config.get("nickname") or None,
        help="Nickname (default: random)",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--lobby", action="store_true", help="Join the public lobby")
    group.add_argument("--random", action="store_true", help="Join a fresh random channel")

    args = parser.parse_args()

    relay_url = args.relay or config["relay_url"]
    try:
        origin = args.origin or origin_from_relay_url(relay_url)
    except ValueError as e:
        parser.error(str(e))
    if args.lobby:
        passphrase = LOBBY_PASSPHRASE
    elif args.random or not args.channel:
        passphrase = random_channel_name()
    elif "#" in args.channel:
        origin, passphrase = parse_invite(args.channel)
        if not args.relay:
            relay_url = relay_url_from_origin(origin)
    else:
        passphrase = args.channel

    nickname = sanitize_display_name(args.nick, max_length=32) if args.nick else None

    async def _run() -> None:
        client = ChannelClient(relay_url, nickname)
        print(f"Relay: {relay_url}  Nickname: {client.nickname}  (/help for commands)")
        try:
            await run_chat(client, passphrase, origin)
        finally:
            await client.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print()
    except (aiohttp.ClientError, OSError, ValueError) as e:
        logger.exception("Chat failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
