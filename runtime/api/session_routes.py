"""HTTP routes for interacting with the ATV-AI runtime.

A platform gateway (e.g. the Discord bot process) forwards events here:

- POST   /agent/command -> slash command text, starts/refreshes a session
- POST   /agent/message -> plain message, continues a live session
- POST   /agent/button  -> confirm / cancel button press
- DELETE /agent/session -> drop a session explicitly
- GET    /agent/healthz
"""

import logging

from fastapi import APIRouter, HTTPException
from typing import Optional

from ..models.api_models import (
    AgentResponse,
    ButtonRequest,
    CommandRequest,
    MessageRequest,
    SessionKeyRequest,
)
from ..store.session_store import SessionStore, make_session_key
from ..agents.turn_dispatcher import TurnDispatcher


logger = logging.getLogger(__name__)

# Router for all agent-related endpoints
router = APIRouter()


# Module-level references, to be initialized by the server.
_SESSION_STORE: Optional[SessionStore] = None
_DISPATCHER: Optional[TurnDispatcher] = None


def init_routes(session_store: SessionStore, dispatcher: TurnDispatcher) -> None:
    """Initialize module-level references used by the route handlers."""
    global _SESSION_STORE, _DISPATCHER
    _SESSION_STORE = session_store
    _DISPATCHER = dispatcher


def _require_session_store() -> SessionStore:
    if _SESSION_STORE is None:
        raise HTTPException(
            status_code=500,
            detail="SessionStore is not configured on the server.",
        )
    return _SESSION_STORE


def _require_dispatcher() -> TurnDispatcher:
    if _DISPATCHER is None:
        raise HTTPException(
            status_code=500,
            detail="TurnDispatcher is not configured on the server.",
        )
    return _DISPATCHER


# Plain ``def`` handlers run in the FastAPI threadpool; dispatcher calls block.


@router.post("/command", response_model=AgentResponse)
def handle_command(request: CommandRequest) -> AgentResponse:
    """Run one planner cycle for a slash-command invocation."""
    try:
        dispatcher = _require_dispatcher()
        logger.info(
            "[AGENT] command server_id=%s channel_id=%s user_id=%s",
            request.server_id,
            request.channel_id,
            request.user_id,
        )
        return dispatcher.handle_command(
            server_id=request.server_id,
            channel_id=request.channel_id,
            user_id=request.user_id,
            text=request.text,
        )
    except HTTPException as e:
        logger.warning(
            "[AGENT] HTTP %s for command server_id=%s channel_id=%s user_id=%s reason=%r",
            e.status_code,
            request.server_id,
            request.channel_id,
            request.user_id,
            e.detail,
        )
        raise
    except Exception:
        logger.exception(
            "[AGENT] Unexpected error for command server_id=%s channel_id=%s user_id=%s text=%r",
            request.server_id,
            request.channel_id,
            request.user_id,
            request.text,
        )
        raise


@router.post("/message", response_model=AgentResponse)
def handle_message(request: MessageRequest) -> AgentResponse:
    """Continue a live session with a plain message.

    Returns type "ignored" when there is no session to continue; the
    gateway should then stay silent.
    """
    try:
        dispatcher = _require_dispatcher()
        return dispatcher.handle_message(
            server_id=request.server_id,
            channel_id=request.channel_id,
            user_id=request.user_id,
            text=request.text,
            is_bot=request.is_bot,
        )
    except HTTPException as e:
        logger.warning(
            "[AGENT] HTTP %s for message server_id=%s channel_id=%s user_id=%s reason=%r",
            e.status_code,
            request.server_id,
            request.channel_id,
            request.user_id,
            e.detail,
        )
        raise
    except Exception:
        logger.exception(
            "[AGENT] Unexpected error for message server_id=%s channel_id=%s user_id=%s text=%r",
            request.server_id,
            request.channel_id,
            request.user_id,
            request.text,
        )
        raise


@router.post("/button", response_model=AgentResponse)
def handle_button(request: ButtonRequest) -> AgentResponse:
    try:
        dispatcher = _require_dispatcher()
        return dispatcher.handle_button(
            server_id=request.server_id,
            channel_id=request.channel_id,
            user_id=request.user_id,
            custom_id=request.custom_id,
        )
    except HTTPException as e:
        logger.warning(
            "[AGENT] HTTP %s for button %s user_id=%s reason=%r",
            e.status_code,
            request.custom_id,
            request.user_id,
            e.detail,
        )
        raise
    except Exception:
        logger.exception(
            "[AGENT] Unexpected error for button %s server_id=%s channel_id=%s user_id=%s",
            request.custom_id,
            request.server_id,
            request.channel_id,
            request.user_id,
        )
        raise


@router.delete("/session")
def clear_session(request: SessionKeyRequest):
    """Drop the session for (server, channel, user). Idempotent."""
    try:
        session_store = _require_session_store()
        key = make_session_key(request.server_id, request.channel_id, request.user_id)
        session_store.clear(key)
        return {"status": "cleared", "key": key}
    except HTTPException as e:
        logger.warning(
            "[AGENT] HTTP %s clearing session for user_id=%s reason=%r",
            e.status_code,
            request.user_id,
            e.detail,
        )
        raise


# --------------------------------------------------------
# Endpoint: GET /healthz
# --------------------------------------------------------
@router.get("/healthz")
def health_check():
    """
    Simple health check endpoint for uptime monitoring.
    """
    return {"status": "ok"}
