"""Shared test fixtures for ATV-AI tests."""

import json
from typing import Any, Dict, List, Optional

import pytest

from core.planner.models import ChannelOption, CompletionRequest, PlannerContext
from core.planner.planner import Planner
from runtime.agents.turn_dispatcher import TurnDispatcher
from runtime.store.session_store import SessionStore


TZ = "Europe/Stockholm"
GENERAL_ID = "111"
STAGE_ID = "222"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class StubCompletion:
    """Completion backend returning canned outputs in order.

    Dict outputs are JSON-encoded; strings and None are returned verbatim.
    """

    def __init__(self, *outputs: Any):
        self.outputs = list(outputs)
        self.requests: List[CompletionRequest] = []

    def __call__(self, request: CompletionRequest) -> Optional[str]:
        self.requests.append(request)
        out = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(out, Exception):
            raise out
        if isinstance(out, dict):
            return json.dumps(out)
        return out


def model_output(
    action: str,
    *,
    reply: Optional[str] = None,
    question: Optional[str] = None,
    draft: Optional[Dict[str, Any]] = None,
    mode: Optional[str] = None,
    awaiting: Any = None,
) -> Dict[str, Any]:
    """Build a schema-shaped planner payload."""
    return {
        "action": action,
        "reply": reply,
        "question": question,
        "draft": draft,
        "sessionPatch": {"mode": mode, "awaiting": awaiting},
    }


def voice_draft(**overrides: Any) -> Dict[str, Any]:
    draft = {
        "name": "Voice hangout",
        "description": None,
        "scheduledStartTime": "2099-06-01T18:00:00+02:00",
        "scheduledEndTime": None,
        "entityType": "VOICE",
        "location": None,
        "channelId": GENERAL_ID,
    }
    draft.update(overrides)
    return draft


class FakeGateway:
    """In-memory event gateway recording created events."""

    def __init__(self, channels: Optional[List[Dict[str, str]]] = None):
        self.channels = channels if channels is not None else [
            {"id": GENERAL_ID, "name": "General", "kind": "VOICE"},
            {"id": STAGE_ID, "name": "Town Hall", "kind": "STAGE"},
        ]
        self.created: List[Any] = []
        self.fail_with: Optional[Exception] = None

    def list_schedulable_channels(self, guild_id: str) -> List[Dict[str, str]]:
        return list(self.channels)

    def create_scheduled_event(self, guild_id: str, draft) -> Dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append((guild_id, draft))
        return {"id": "evt-1", "name": draft.name}


class RecordingLogStore:
    def __init__(self):
        self.events: List[tuple] = []

    def log_event(self, event_type: str, payload: dict) -> None:
        self.events.append((event_type, payload))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_minutes=10, clock=clock)


@pytest.fixture
def planner_ctx():
    return PlannerContext(
        timezone=TZ,
        now_iso="2099-05-31T12:00:00+02:00",
        voice_channels=[ChannelOption(id=GENERAL_ID, name="General", kind="VOICE")],
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def log_store():
    return RecordingLogStore()


@pytest.fixture
def make_dispatcher(store, gateway, log_store):
    """Build a dispatcher whose planner answers with the given outputs."""

    def _make(*outputs: Any) -> TurnDispatcher:
        completion = StubCompletion(*outputs)
        planner = Planner(completion=completion, model="test-model", temperature=0.3, default_duration_minutes=60)
        dispatcher = TurnDispatcher(
            session_store=store,
            planner=planner,
            event_gateway=gateway,
            log_store=log_store,
            timezone=TZ,
        )
        dispatcher.completion = completion
        return dispatcher

    return _make
