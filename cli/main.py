#!/usr/bin/env python3
"""
ATV-AI CLI

Operational commands around the ATV-AI runtime:

1) register-commands
   - Register the /atv-ai slash command with Discord, for one guild
     (DISCORD_GUILD_ID or --guild-id) or globally.

2) chat
   - Local REPL that drives the TurnDispatcher exactly like the bot does:
     the first line is treated as the /atv-ai command, later lines as plain
     messages; "/confirm" and "/cancel" press the preview buttons.
     Without --live, channels come from --channel flags and confirmed
     events are printed instead of created.

3) serve
   - Start the HTTP runtime:
       uvicorn --factory runtime.api.server:create_app
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from configs.settings import settings
from runtime.models.session_models import EventDraft


# ---------------------------------------------------------------------------
# Dry-run gateway for local chat
# ---------------------------------------------------------------------------


def parse_channel_option(value: str) -> Dict[str, str]:
    """Parse ``id:name[:VOICE|STAGE]`` into a channel dict."""
    parts = value.split(":")
    if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
        raise argparse.ArgumentTypeError(
            f"Invalid channel {value!r}; expected id:name[:VOICE|STAGE]"
        )
    kind = parts[2].upper() if len(parts) == 3 else "VOICE"
    if kind not in ("VOICE", "STAGE"):
        raise argparse.ArgumentTypeError(f"Invalid channel kind {kind!r}")
    return {"id": parts[0], "name": parts[1], "kind": kind}


class DryRunGateway:
    """Event gateway that lists fixed channels and prints instead of creating."""

    def __init__(self, channels: List[Dict[str, str]]) -> None:
        self.channels = channels

    def list_schedulable_channels(self, guild_id: str) -> List[Dict[str, str]]:
        return list(self.channels)

    def create_scheduled_event(self, guild_id: str, draft: EventDraft) -> Dict[str, Any]:
        from core.events.discord_client import scheduled_event_payload

        payload = scheduled_event_payload(draft)
        print("[ATV-AI] (dry run) would create scheduled event:")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return {"id": "dry-run", "name": draft.name}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_register_commands(guild_id: str | None) -> None:
    from core.events.discord_client import COMMAND_NAME, DiscordClient

    client = DiscordClient()
    client.register_commands(settings.discord_client_id, guild_id=guild_id)
    scope = "guild" if guild_id else "global"
    print(f"[ATV-AI] Registered /{COMMAND_NAME} ({scope})")


def cmd_chat(
    server_id: str,
    channel_id: str,
    user_id: str,
    channels: List[Dict[str, str]],
    live: bool,
) -> None:
    # Lazy imports so register-commands works without OPENAI_API_KEY.
    from core.planner.planner import Planner
    from runtime.agents.turn_dispatcher import CANCEL_ID, CONFIRM_ID, TurnDispatcher
    from runtime.store.log_store import ConsoleLogStore
    from runtime.store.session_store import SessionStore

    if live:
        from core.events.discord_client import DiscordClient

        gateway = DiscordClient()
    else:
        gateway = DryRunGateway(channels)

    dispatcher = TurnDispatcher(
        session_store=SessionStore(),
        planner=Planner(),
        event_gateway=gateway,
        log_store=ConsoleLogStore(),
    )

    print("[ATV-AI] Type a message. /confirm and /cancel press the buttons, Ctrl-D exits.")
    started = False
    for line in sys.stdin:
        text = line.strip()
        if not text:
            continue

        if text in ("/confirm", "/cancel"):
            custom_id = CONFIRM_ID if text == "/confirm" else CANCEL_ID
            response = dispatcher.handle_button(server_id, channel_id, user_id, custom_id)
        elif not started or text.startswith("/atv-ai "):
            text = text[len("/atv-ai "):] if text.startswith("/atv-ai ") else text
            response = dispatcher.handle_command(server_id, channel_id, user_id, text)
            started = True
        else:
            response = dispatcher.handle_message(server_id, channel_id, user_id, text)

        if response.type == "ignored":
            print("[ATV-AI] (no active session; start with /atv-ai <text>)")
            started = False
            continue

        print(response.message or "")
        if response.components:
            print(f"[ATV-AI] buttons: {', '.join(response.components)}")


def cmd_serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("runtime.api.server:create_app", factory=True, host=host, port=port)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ATV-AI CLI")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # register-commands
    p_register = subparsers.add_parser(
        "register-commands",
        help="Register the /atv-ai slash command with Discord",
    )
    p_register.add_argument(
        "--guild-id",
        default=settings.discord_guild_id,
        help="Register for a single guild (default: DISCORD_GUILD_ID, else global)",
    )

    # chat
    p_chat = subparsers.add_parser("chat", help="Local chat REPL through the dispatcher")
    p_chat.add_argument("--server-id", default="local-server")
    p_chat.add_argument("--channel-id", default="local-channel")
    p_chat.add_argument("--user-id", default="local-user")
    p_chat.add_argument(
        "--channel",
        dest="channels",
        action="append",
        type=parse_channel_option,
        default=[],
        help="Schedulable channel as id:name[:VOICE|STAGE] (repeatable, dry run only)",
    )
    p_chat.add_argument(
        "--live",
        action="store_true",
        help="Use the Discord API for channels and event creation",
    )

    # serve
    p_serve = subparsers.add_parser("serve", help="Start the HTTP runtime")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    command: str = args.command

    if command == "register-commands":
        cmd_register_commands(guild_id=args.guild_id)
    elif command == "chat":
        cmd_chat(
            server_id=args.server_id,
            channel_id=args.channel_id,
            user_id=args.user_id,
            channels=args.channels,
            live=args.live,
        )
    elif command == "serve":
        cmd_serve(host=args.host, port=args.port)
    else:
        parser.error(f"Unknown command: {command}")


if __name__ == "__main__":
    main()
