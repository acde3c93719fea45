"""TurnDispatcher implementation.

Responsible for:
- mapping platform events (slash command, plain message, button) to a
  session key
- loading / refreshing the Session through the SessionStore
- running one Planner cycle and applying its session patch
- turning the planner result into a user-facing AgentResponse
- on confirmation, defaulting + validating the draft and committing it
  through the event gateway

Every path ends in a reply, a question, an event preview or a wrapped
error message; exceptions never leave ``handle_*``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
from zoneinfo import ZoneInfo

from configs.settings import settings
from core.events.draft_rules import apply_default_end_time, render_preview, validate_draft
from core.planner.models import (
    AskResult,
    ChannelOption,
    ChatResult,
    PlannerContext,
    PlannerResult,
    ProposeEventResult,
)
from core.planner.planner import Planner
from exceptions.exceptions import DraftValidationError

from ..models.api_models import AgentResponse
from ..models.session_models import EventDraft, Session, SessionPatch
from ..store.session_store import SessionStore, make_session_key


logger = logging.getLogger(__name__)


CONFIRM_ID = "atv_ai_confirm"
CANCEL_ID = "atv_ai_cancel"

SERVER_ONLY_REPLY = "This command only works in a server channel."
NO_DRAFT_REPLY = "No active event draft found."
CANCELLED_REPLY = "Cancelled. Session cleared."
GENERIC_ERROR_REPLY = "Something went wrong while handling your message. Please try again."


class EventGateway(Protocol):
    """Platform operations the dispatcher needs (see DiscordClient)."""

    def list_schedulable_channels(self, guild_id: str) -> List[Dict[str, str]]:
        ...

    def create_scheduled_event(self, guild_id: str, draft: EventDraft) -> Dict[str, Any]:
        ...


class EventSink(Protocol):
    """Destination for high-level runtime events (see LogStore)."""

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        ...


class TurnDispatcher:
    """Turn loop gluing SessionStore, Planner, draft rules and the gateway.

    Parameters
    ----------
    session_store:
        The only writer of session state.
    planner:
        Decides the next action for each turn.
    event_gateway:
        Lists schedulable channels and creates scheduled events.
    log_store:
        Optional sink for high-level runtime events.
    timezone:
        Target timezone identifier (defaults to ``settings.timezone``).
    """

    def __init__(
        self,
        session_store: SessionStore,
        planner: Planner,
        event_gateway: EventGateway,
        log_store: Optional[EventSink] = None,
        timezone: Optional[str] = None,
    ):
        self.session_store = session_store
        self.planner = planner
        self.event_gateway = event_gateway
        self.log_store = log_store
        self.timezone = timezone or settings.timezone

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_command(
        self,
        server_id: Optional[str],
        channel_id: Optional[str],
        user_id: str,
        text: str,
    ) -> AgentResponse:
        """Slash-command entry: always starts or refreshes a session."""
        if not server_id or not channel_id:
            return AgentResponse(type="reply", message=SERVER_ONLY_REPLY)

        key = make_session_key(server_id, channel_id, user_id)
        try:
            existing = self.session_store.get(key)
            patch = SessionPatch() if existing else SessionPatch.of(mode="chat", awaiting=None)
            session = self.session_store.upsert(key, patch)
            return self._run_turn(key, server_id, text, session)
        except Exception as exc:
            logger.exception("[DISPATCH] Command failed for key=%s", key)
            return AgentResponse(type="error", message=f"Error: {exc}")

    def handle_message(
        self,
        server_id: Optional[str],
        channel_id: Optional[str],
        user_id: str,
        text: str,
        is_bot: bool = False,
    ) -> AgentResponse:
        """Plain-message entry: only continues a session opened by a command."""
        if is_bot or not server_id or not channel_id:
            return AgentResponse(type="ignored")

        key = make_session_key(server_id, channel_id, user_id)
        try:
            session = self.session_store.get(key)
            if session is None:
                return AgentResponse(type="ignored")
            return self._run_turn(key, server_id, text, session)
        except Exception:
            logger.exception("[DISPATCH] Message failed for key=%s", key)
            return AgentResponse(type="error", message=GENERIC_ERROR_REPLY)

    def handle_button(
        self,
        server_id: Optional[str],
        channel_id: Optional[str],
        user_id: str,
        custom_id: str,
    ) -> AgentResponse:
        if not server_id or not channel_id or custom_id not in (CONFIRM_ID, CANCEL_ID):
            return AgentResponse(type="ignored")

        key = make_session_key(server_id, channel_id, user_id)
        try:
            session = self.session_store.get(key)
            if session is None or session.event_draft is None:
                return AgentResponse(type="reply", message=NO_DRAFT_REPLY)

            if custom_id == CANCEL_ID:
                self.session_store.clear(key)
                self._log_event("session_cancelled", {"key": key})
                return AgentResponse(type="cancelled", message=CANCELLED_REPLY)

            return self._commit(key, server_id, session.event_draft)
        except Exception as exc:
            logger.exception("[DISPATCH] Button %s failed for key=%s", custom_id, key)
            return AgentResponse(type="error", message=f"Error: {exc}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _context(self, server_id: str) -> PlannerContext:
        channels = [
            ChannelOption(id=str(c["id"]), name=c.get("name", ""), kind=c["kind"])
            for c in self.event_gateway.list_schedulable_channels(server_id)
        ]
        now = datetime.now(ZoneInfo(self.timezone))
        return PlannerContext(timezone=self.timezone, now_iso=now.isoformat(), voice_channels=channels)

    def _run_turn(self, key: str, server_id: str, text: str, session: Session) -> AgentResponse:
        planned: PlannerResult = self.planner.plan(text, session, self._context(server_id))
        session = self.session_store.upsert(key, planned.session_patch)

        self._log_event(
            "turn_planned",
            {"key": key, "action": planned.action, "mode": session.mode, "awaiting": session.awaiting},
        )

        if isinstance(planned, ChatResult):
            return AgentResponse(type="reply", message=planned.reply)

        if isinstance(planned, AskResult):
            if session.mode != "event":
                self.session_store.upsert(key, SessionPatch.of(mode="event"))
            return AgentResponse(type="question", message=planned.question)

        if isinstance(planned, ProposeEventResult):
            draft = planned.draft
            self.session_store.upsert(
                key,
                SessionPatch.of(mode="event", awaiting="confirm", event_draft=draft),
            )
            return AgentResponse(
                type="event_preview",
                message=render_preview(draft, tz=self.timezone),
                components=[CONFIRM_ID, CANCEL_ID],
                draft=draft.to_dict(),
            )

        raise TypeError(f"Unexpected planner result: {planned!r}")

    def _commit(self, key: str, server_id: str, draft: EventDraft) -> AgentResponse:
        final_draft = apply_default_end_time(draft, tz=self.timezone)

        channel_ids = None
        if final_draft.entity_type in ("VOICE", "STAGE"):
            channel_ids = [
                str(c["id"]) for c in self.event_gateway.list_schedulable_channels(server_id)
            ]

        error = validate_draft(final_draft, tz=self.timezone, schedulable_channel_ids=channel_ids)
        if error:
            raise DraftValidationError(error)

        created = self.event_gateway.create_scheduled_event(server_id, final_draft)
        self.session_store.clear(key)

        name = (created or {}).get("name") or final_draft.name
        self._log_event("event_created", {"key": key, "event_id": (created or {}).get("id"), "name": name})
        return AgentResponse(
            type="event_created",
            message=f"Created scheduled event: **{name}**",
            draft=final_draft.to_dict(),
        )

    def _log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self.log_store is None:
            return
        try:
            self.log_store.log_event(event_type=event_type, payload=payload)
        except Exception:
            # Logging failures should not affect main flow.
            logger.warning("[DISPATCH] Could not record %s event", event_type, exc_info=True)
