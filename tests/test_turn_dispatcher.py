"""Tests for TurnDispatcher: the session / planner / commit turn loop."""

from datetime import timedelta
from typing import Optional, get_type_hints

import pytest

from conftest import GENERAL_ID, TZ, model_output, voice_draft
from core.events.draft_rules import parse_timestamp
from core.planner.planner import Planner
from runtime.agents.turn_dispatcher import (
    CANCEL_ID,
    CANCELLED_REPLY,
    CONFIRM_ID,
    GENERIC_ERROR_REPLY,
    NO_DRAFT_REPLY,
    SERVER_ONLY_REPLY,
    EventGateway,
    EventSink,
    TurnDispatcher,
)
from runtime.models.session_models import SessionPatch
from runtime.store.session_store import SessionStore, make_session_key


KEY = make_session_key("g1", "c1", "u1")


def propose(**draft_overrides):
    return model_output("propose_event", draft=voice_draft(**draft_overrides), mode="event", awaiting="confirm")


class TestCommand:
    def test_requires_server_channel(self, make_dispatcher, store):
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        response = dispatcher.handle_command(None, "c1", "u1", "hello")

        assert response.type == "reply"
        assert response.message == SERVER_ONLY_REPLY
        assert dispatcher.completion.requests == []

    def test_chat_opens_session(self, make_dispatcher, store):
        dispatcher = make_dispatcher(model_output("chat", reply="Hello there!"))
        response = dispatcher.handle_command("g1", "c1", "u1", "hi there")

        assert response.type == "reply"
        assert response.message == "Hello there!"
        session = store.get(KEY)
        assert session.mode == "chat"
        assert session.awaiting is None

    def test_planner_sees_the_refreshed_session(self, make_dispatcher):
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        dispatcher.handle_command("g1", "c1", "u1", "hi")

        messages = dispatcher.completion.requests[0].messages
        assert "Existing session: mode=chat, awaiting=null" in messages[1]["content"]
        assert f'VOICE: "General" id={GENERAL_ID}' in messages[0]["content"]
        assert 'STAGE: "Town Hall" id=222' in messages[0]["content"]

    def test_ask_forces_event_mode(self, make_dispatcher, store):
        dispatcher = make_dispatcher(model_output("ask", question="What's it called?", awaiting="name"))
        response = dispatcher.handle_command("g1", "c1", "u1", "set up an event")

        assert response.type == "question"
        assert response.message == "What's it called?"
        session = store.get(KEY)
        assert session.mode == "event"
        assert session.awaiting == "name"

    def test_propose_stores_draft_and_previews(self, make_dispatcher, store):
        dispatcher = make_dispatcher(propose())
        response = dispatcher.handle_command(
            "g1", "c1", "u1", "let's do a voice hangout tomorrow at 6pm in the General channel"
        )

        assert response.type == "event_preview"
        assert response.components == [CONFIRM_ID, CANCEL_ID]
        assert response.message.startswith("**Event preview**")
        assert f"**Where:** VOICE: <#{GENERAL_ID}>" in response.message
        assert response.draft["channel_id"] == GENERAL_ID

        session = store.get(KEY)
        assert session.mode == "event"
        assert session.awaiting == "confirm"
        assert session.event_draft.name == "Voice hangout"

    def test_existing_session_is_kept(self, make_dispatcher, store):
        store.upsert(KEY, SessionPatch.of(mode="event", awaiting="where"))
        dispatcher = make_dispatcher(model_output("chat", reply="ok", awaiting="bogus"))
        dispatcher.handle_command("g1", "c1", "u1", "hmm")

        session = store.get(KEY)
        assert session.mode == "event"
        assert session.awaiting == "where"

    def test_null_awaiting_clears_slot(self, make_dispatcher, store):
        store.upsert(KEY, SessionPatch.of(mode="event", awaiting="where"))
        dispatcher = make_dispatcher(model_output("chat", reply="ok", awaiting=None))
        dispatcher.handle_command("g1", "c1", "u1", "hmm")

        session = store.get(KEY)
        assert session.mode == "event"
        assert session.awaiting is None

    def test_planner_failure_is_wrapped(self, make_dispatcher):
        dispatcher = make_dispatcher(RuntimeError("provider down"))
        response = dispatcher.handle_command("g1", "c1", "u1", "hi")

        assert response.type == "error"
        assert response.message == "Error: provider down"


class TestMessage:
    def test_ignored_without_session(self, make_dispatcher):
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        response = dispatcher.handle_message("g1", "c1", "u1", "hello")

        assert response.type == "ignored"
        assert dispatcher.completion.requests == []

    def test_ignored_for_bots(self, make_dispatcher, store):
        store.upsert(KEY)
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        assert dispatcher.handle_message("g1", "c1", "u1", "beep", is_bot=True).type == "ignored"

    def test_ignored_after_expiry(self, make_dispatcher, store, clock):
        store.upsert(KEY)
        clock.advance(10 * 60_000 + 1)
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        assert dispatcher.handle_message("g1", "c1", "u1", "still there?").type == "ignored"

    def test_multi_turn_collection(self, make_dispatcher, store):
        dispatcher = make_dispatcher(
            model_output("ask", question="Where should it happen?", mode="event", awaiting="where"),
            propose(),
        )
        first = dispatcher.handle_command("g1", "c1", "u1", "hangout tomorrow at 6pm")
        second = dispatcher.handle_message("g1", "c1", "u1", "in General")

        assert first.type == "question"
        assert second.type == "event_preview"
        grounding = dispatcher.completion.requests[1].messages[1]["content"]
        assert "mode=event" in grounding
        assert "awaiting=where" in grounding
        assert store.get(KEY).awaiting == "confirm"

    def test_failure_gets_generic_message(self, make_dispatcher, store):
        store.upsert(KEY)
        dispatcher = make_dispatcher(RuntimeError("boom"))
        response = dispatcher.handle_message("g1", "c1", "u1", "hi")

        assert response.type == "error"
        assert response.message == GENERIC_ERROR_REPLY


class TestButtons:
    def test_confirm_commits_with_default_end(self, make_dispatcher, store, gateway, log_store):
        dispatcher = make_dispatcher(propose())
        dispatcher.handle_command("g1", "c1", "u1", "voice hangout")

        response = dispatcher.handle_button("g1", "c1", "u1", CONFIRM_ID)

        assert response.type == "event_created"
        assert response.message == "Created scheduled event: **Voice hangout**"
        assert store.get(KEY) is None

        guild_id, draft = gateway.created[0]
        assert guild_id == "g1"
        start = parse_timestamp(draft.scheduled_start_time, TZ)
        end = parse_timestamp(draft.scheduled_end_time, TZ)
        assert end - start == timedelta(minutes=60)
        assert [e[0] for e in log_store.events] == ["turn_planned", "event_created"]

    def test_confirm_rejects_invalid_draft(self, make_dispatcher, store, gateway):
        dispatcher = make_dispatcher(propose(scheduledStartTime="2001-01-01T18:00:00+01:00"))
        dispatcher.handle_command("g1", "c1", "u1", "voice hangout")

        response = dispatcher.handle_button("g1", "c1", "u1", CONFIRM_ID)

        assert response.type == "error"
        assert response.message == "Error: Start time must be in the future."
        assert gateway.created == []
        assert store.get(KEY) is not None

    def test_confirm_rejects_unknown_channel(self, make_dispatcher, gateway):
        dispatcher = make_dispatcher(propose(channelId="999"))
        dispatcher.handle_command("g1", "c1", "u1", "voice hangout")

        response = dispatcher.handle_button("g1", "c1", "u1", CONFIRM_ID)

        assert response.type == "error"
        assert "not a schedulable" in response.message
        assert gateway.created == []

    def test_confirm_gateway_failure_keeps_session(self, make_dispatcher, store, gateway):
        gateway.fail_with = RuntimeError("Missing Permissions")
        dispatcher = make_dispatcher(propose())
        dispatcher.handle_command("g1", "c1", "u1", "voice hangout")

        response = dispatcher.handle_button("g1", "c1", "u1", CONFIRM_ID)

        assert response.message == "Error: Missing Permissions"
        assert store.get(KEY).event_draft is not None

    def test_cancel_clears_session(self, make_dispatcher, store, gateway):
        dispatcher = make_dispatcher(propose())
        dispatcher.handle_command("g1", "c1", "u1", "voice hangout")

        response = dispatcher.handle_button("g1", "c1", "u1", CANCEL_ID)

        assert response.type == "cancelled"
        assert response.message == CANCELLED_REPLY
        assert store.get(KEY) is None
        assert gateway.created == []

    @pytest.mark.parametrize("custom_id", [CONFIRM_ID, CANCEL_ID])
    def test_no_draft(self, make_dispatcher, store, custom_id):
        store.upsert(KEY)
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        response = dispatcher.handle_button("g1", "c1", "u1", custom_id)
        assert response.message == NO_DRAFT_REPLY

    def test_unknown_button_ignored(self, make_dispatcher):
        dispatcher = make_dispatcher(model_output("chat", reply="hi"))
        assert dispatcher.handle_button("g1", "c1", "u1", "other").type == "ignored"


def test_log_store_failure_does_not_break_turn(make_dispatcher, log_store):
    def broken(event_type, payload):
        raise OSError("disk full")

    log_store.log_event = broken
    dispatcher = make_dispatcher(model_output("chat", reply="still fine"))
    assert dispatcher.handle_command("g1", "c1", "u1", "hi").message == "still fine"


def test_collaborators_are_typed():
    hints = get_type_hints(TurnDispatcher.__init__)
    assert hints["session_store"] is SessionStore
    assert hints["planner"] is Planner
    assert hints["event_gateway"] is EventGateway
    assert hints["log_store"] == Optional[EventSink]
