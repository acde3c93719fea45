"""
core.events.discord_client

Thin wrapper around the Discord REST API for the pieces ATV-AI needs:

  - listing the voice / stage channels of a guild that can host an event
  - creating a guild scheduled event from a validated EventDraft
  - registering the /atv-ai slash command

Used by:
  - runtime/agents/turn_dispatcher.py (as its event gateway)
  - cli/main.py (command registration)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from configs.settings import settings
from exceptions.exceptions import DiscordAPIError
from runtime.models.session_models import EventDraft


logger = logging.getLogger(__name__)


# Discord channel types
CHANNEL_TYPE_VOICE = 2
CHANNEL_TYPE_STAGE = 13

# Discord scheduled event enums
PRIVACY_LEVEL_GUILD_ONLY = 2
ENTITY_TYPE_CODES = {
    "STAGE": 1,
    "VOICE": 2,
    "EXTERNAL": 3,
}

COMMAND_NAME = "atv-ai"
OPTION_TYPE_STRING = 3


def slash_command_definition() -> Dict[str, Any]:
    """The /atv-ai chat-input command with a single required text option."""
    return {
        "name": COMMAND_NAME,
        "description": "Talk to ATV-AI (chat + event creation).",
        "options": [
            {
                "type": OPTION_TYPE_STRING,
                "name": "text",
                "description": "What you want to say to the bot",
                "required": True,
            }
        ],
    }


def scheduled_event_payload(draft: EventDraft) -> Dict[str, Any]:
    """Map an EventDraft onto Discord's create-scheduled-event body."""
    payload: Dict[str, Any] = {
        "name": draft.name,
        "privacy_level": PRIVACY_LEVEL_GUILD_ONLY,
        "scheduled_start_time": draft.scheduled_start_time,
        "entity_type": ENTITY_TYPE_CODES[draft.entity_type],
    }
    if draft.description:
        payload["description"] = draft.description
    if draft.scheduled_end_time:
        payload["scheduled_end_time"] = draft.scheduled_end_time

    if draft.entity_type == "EXTERNAL":
        payload["entity_metadata"] = {"location": draft.location}
    else:
        payload["channel_id"] = draft.channel_id
    return payload


class DiscordClient:
    """Bot-token authenticated Discord REST client.

    Parameters
    ----------
    token:
        Bot token. Defaults to ``settings.discord_token``.
    api_base:
        Base URL including the API version.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.token = token or settings.discord_token
        self.api_base = (api_base or settings.discord_api_base).rstrip("/")
        self.timeout = timeout

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self.token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, json_body: Any = None) -> Any:
        url = f"{self.api_base}{path}"
        resp = requests.request(
            method,
            url,
            headers=self._headers,
            json=json_body,
            timeout=self.timeout,
        )
        if not 200 <= resp.status_code < 300:
            logger.warning(
                "[DISCORD] %s %s returned %s", method, path, resp.status_code
            )
            raise DiscordAPIError(resp.status_code, resp.text)
        if not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------
    # Event gateway
    # ------------------------------------------------------------------

    def list_schedulable_channels(self, guild_id: str) -> List[Dict[str, str]]:
        """Return ``[{"id", "name", "kind"}]`` for voice and stage channels."""
        channels = self._request("GET", f"/guilds/{guild_id}/channels") or []

        voice_like: List[Dict[str, str]] = []
        for ch in channels:
            ch_type = ch.get("type")
            if ch_type == CHANNEL_TYPE_VOICE:
                voice_like.append({"id": str(ch["id"]), "name": ch.get("name", ""), "kind": "VOICE"})
            elif ch_type == CHANNEL_TYPE_STAGE:
                voice_like.append({"id": str(ch["id"]), "name": ch.get("name", ""), "kind": "STAGE"})
        return voice_like

    def create_scheduled_event(self, guild_id: str, draft: EventDraft) -> Dict[str, Any]:
        """Create the scheduled event; the draft must already be validated."""
        payload = scheduled_event_payload(draft)
        created = self._request("POST", f"/guilds/{guild_id}/scheduled-events", payload)
        logger.info(
            "[DISCORD] Created scheduled event id=%s guild_id=%s",
            (created or {}).get("id"),
            guild_id,
        )
        return created or {}

    # ------------------------------------------------------------------
    # Command registration
    # ------------------------------------------------------------------

    def register_commands(self, application_id: str, guild_id: Optional[str] = None) -> Any:
        """Overwrite the application's commands with /atv-ai.

        Registers for a single guild when ``guild_id`` is given (visible
        immediately), otherwise globally.
        """
        if guild_id:
            path = f"/applications/{application_id}/guilds/{guild_id}/commands"
        else:
            path = f"/applications/{application_id}/commands"
        return self._request("PUT", path, [slash_command_definition()])
