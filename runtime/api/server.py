"""
FastAPI application entry point for the ATV-AI runtime.

Responsibilities:
- construct shared singletons (SessionStore, Planner, DiscordClient, TurnDispatcher)
- include session-related routes under /agent

Run with:

    uvicorn --factory runtime.api.server:create_app
"""

from typing import Optional

from fastapi import FastAPI

from configs.settings import settings
from core.events.discord_client import DiscordClient
from core.planner.planner import Planner
from runtime.agents.turn_dispatcher import TurnDispatcher
from runtime.store.log_store import ConsoleLogStore, LogStore
from runtime.store.session_store import SessionStore
from . import session_routes


def build_log_store():
    """JSONL log under the runtime data dir if configured, console otherwise."""
    if settings.runtime_data_dir is not None:
        return LogStore(data_dir=str(settings.runtime_data_dir))
    return ConsoleLogStore()


def build_dispatcher(session_store: SessionStore) -> TurnDispatcher:
    return TurnDispatcher(
        session_store=session_store,
        planner=Planner(),
        event_gateway=DiscordClient(),
        log_store=build_log_store(),
    )


def create_app(
    session_store: Optional[SessionStore] = None,
    dispatcher: Optional[TurnDispatcher] = None,
) -> FastAPI:
    # Session storage: in-memory only, shared by every route.
    if session_store is None:
        session_store = dispatcher.session_store if dispatcher is not None else SessionStore()
    if dispatcher is None:
        dispatcher = build_dispatcher(session_store)

    app = FastAPI(title="ATV-AI Runtime")

    # Initialize the router module with our shared objects, then include it.
    session_routes.init_routes(
        session_store=session_store,
        dispatcher=dispatcher,
    )
    app.include_router(session_routes.router, prefix="/agent")
    return app
