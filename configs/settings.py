from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


class Settings:
    """
    Central configuration for ATV-AI.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties. They are treated as immutable
    inputs by the planner, the session store and the draft rules.
    """

    def __init__(self) -> None:
        # Scheduling behaviour
        self._timezone = os.getenv("BOT_TIMEZONE", "Europe/Stockholm")
        self._session_ttl_minutes = int(os.getenv("SESSION_TTL_MINUTES", "10"))
        self._default_event_duration_minutes = int(
            os.getenv("DEFAULT_EVENT_DURATION_MINUTES", "60")
        )

        # OpenAI / model configuration
        self._openai_api_key = os.getenv("OPENAI_API_KEY")
        self._openai_base_url = os.getenv("OPENAI_BASE_URL") or None
        self._openai_model = os.getenv("ATV_AI_OPENAI_MODEL", "gpt-4o-mini")
        self._planner_temperature = float(
            os.getenv("ATV_AI_PLANNER_TEMPERATURE", "0.3")
        )

        # Discord
        self._discord_token = os.getenv("DISCORD_TOKEN")
        self._discord_client_id = os.getenv("DISCORD_CLIENT_ID")
        self._discord_guild_id = os.getenv("DISCORD_GUILD_ID") or None
        self._discord_api_base = os.getenv(
            "DISCORD_API_BASE", "https://discord.com/api/v10"
        ).rstrip("/")

        # Runtime data (JSONL event log); disabled when unset
        data_dir = os.getenv("ATV_AI_RUNTIME_DATA_DIR")
        self._runtime_data_dir = Path(data_dir) if data_dir else None

    # ------------------------------------------------------------------
    # Scheduling settings
    # ------------------------------------------------------------------

    @property
    def timezone(self) -> str:
        return self._timezone

    @property
    def session_ttl_minutes(self) -> int:
        return self._session_ttl_minutes

    @property
    def default_event_duration_minutes(self) -> int:
        return self._default_event_duration_minutes

    # ------------------------------------------------------------------
    # OpenAI / model settings
    # ------------------------------------------------------------------

    @property
    def openai_api_key(self) -> str:
        if not self._openai_api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is not set. Please export it in your environment "
                "or define it in a .env file."
            )
        return self._openai_api_key

    @property
    def openai_base_url(self) -> Optional[str]:
        return self._openai_base_url

    @property
    def openai_model(self) -> str:
        return self._openai_model

    @property
    def planner_temperature(self) -> float:
        return self._planner_temperature

    # ------------------------------------------------------------------
    # Discord settings
    # ------------------------------------------------------------------

    @property
    def discord_token(self) -> str:
        if not self._discord_token:
            raise RuntimeError(
                "DISCORD_TOKEN is not set. Please export it in your environment "
                "or define it in a .env file."
            )
        return self._discord_token

    @property
    def discord_client_id(self) -> str:
        if not self._discord_client_id:
            raise RuntimeError("DISCORD_CLIENT_ID is not set.")
        return self._discord_client_id

    @property
    def discord_guild_id(self) -> Optional[str]:
        return self._discord_guild_id

    @property
    def discord_api_base(self) -> str:
        return self._discord_api_base

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def runtime_data_dir(self) -> Optional[Path]:
        return self._runtime_data_dir


settings = Settings()
