# core/planner/planner.py
"""
Turn planner for ATV-AI.

Given the user's text, the current session (if any) and a PlannerContext,
the Planner asks a schema-constrained completion model for the next action
and reconciles the answer with local rules:

1. Builds developer instructions (activities, timezone, eligible channels,
   event rules, output contract) and, when a session exists, a second
   developer message describing its mode / awaiting slot / draft.
2. Calls the completion backend once, at low temperature, with the strict
   planner schema.
3. Decodes the output into exactly one of ChatResult, AskResult or
   ProposeEventResult. Unusable output degrades to ChatResult; it is never
   raised.

Errors raised by the completion backend itself are not caught here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from configs.settings import settings
from runtime.models.session_models import (
    AWAITING_SLOTS,
    EventDraft,
    PatchField,
    Session,
    SessionPatch,
)

from .models import (
    AskResult,
    ChatResult,
    CompletionRequest,
    PlannerContext,
    PlannerResult,
    ProposeEventResult,
)
from .prompts import build_instructions, build_session_context
from .schema import SCHEMA_NAME, planner_schema


logger = logging.getLogger(__name__)


NO_RESPONSE_REPLY = "I didn't get a usable response. Try again."
EMPTY_CHAT_REPLY = "OK."
EMPTY_QUESTION_REPLY = "I need one detail to proceed. What should I clarify?"
UNKNOWN_ACTION_REPLY = "I'm not sure what you want. Can you rephrase?"

CompletionFn = Callable[[CompletionRequest], Optional[str]]


def openai_completion(request: CompletionRequest) -> str:
    """Default completion backend: the project-local OpenAI wrapper."""
    # Lazy import so the planner can be used with a stub backend without
    # the OpenAI client being configured.
    from core.api.openai_client import send_structured_request

    return send_structured_request(
        request.messages,
        schema=request.schema,
        schema_name=request.schema_name,
        model=request.model,
        temperature=request.temperature,
    )


def normalize_session_patch(raw: Any) -> SessionPatch:
    """Turn the model's loosely-typed ``sessionPatch`` into a SessionPatch.

    - mode: only exactly "chat" / "event" set it; anything else is no change.
    - awaiting: None or "null" clear it; a known slot sets it; anything else
      is no change.
    """
    if not isinstance(raw, dict):
        raw = {}

    raw_mode = raw.get("mode")
    if raw_mode in ("chat", "event"):
        mode = PatchField.set(raw_mode)
    else:
        mode = PatchField.unchanged()

    if "awaiting" in raw and (raw["awaiting"] is None or raw["awaiting"] == "null"):
        awaiting = PatchField.clear()
    elif isinstance(raw.get("awaiting"), str) and raw["awaiting"] in AWAITING_SLOTS:
        awaiting = PatchField.set(raw["awaiting"])
    else:
        awaiting = PatchField.unchanged()

    return SessionPatch(mode=mode, awaiting=awaiting)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def draft_from_model_output(raw: Any) -> EventDraft:
    """Map the model's ``draft`` object onto an EventDraft.

    Null or empty optional values are left out entirely rather than being
    stored as None / "".
    """
    d: Dict[str, Any] = raw if isinstance(raw, dict) else {}

    fields: Dict[str, Any] = {
        "name": _text(d.get("name")),
        "scheduled_start_time": _text(d.get("scheduledStartTime")),
    }
    if isinstance(d.get("entityType"), str) and d["entityType"]:
        fields["entity_type"] = d["entityType"]
    for key, attr in (
        ("description", "description"),
        ("scheduledEndTime", "scheduled_end_time"),
        ("location", "location"),
        ("channelId", "channel_id"),
    ):
        if d.get(key):
            fields[attr] = str(d[key])
    return EventDraft(**fields)


class Planner:
    """Decides the single next action for a user turn.

    Parameters
    ----------
    completion:
        Callable taking a CompletionRequest and returning the model's raw
        output text. Defaults to the OpenAI backend; tests pass a stub.
    model:
        Completion model identifier (defaults to ``settings.openai_model``).
    temperature:
        Sampling temperature; kept low so similar inputs map to the same
        structured decision.
    default_duration_minutes:
        Duration the model is told to assume when the end time is omitted.
    """

    def __init__(
        self,
        completion: Optional[CompletionFn] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        default_duration_minutes: Optional[int] = None,
    ) -> None:
        self.completion = completion or openai_completion
        self.model = model or settings.openai_model
        self.temperature = settings.planner_temperature if temperature is None else temperature
        self.default_duration_minutes = (
            default_duration_minutes
            if default_duration_minutes is not None
            else settings.default_event_duration_minutes
        )

    def build_messages(
        self,
        user_text: str,
        session: Optional[Session],
        ctx: PlannerContext,
    ) -> List[Dict[str, str]]:
        messages = [
            {"role": "developer", "content": build_instructions(ctx, self.default_duration_minutes)},
        ]
        if session is not None:
            messages.append({"role": "developer", "content": build_session_context(session)})
        messages.append({"role": "user", "content": user_text})
        return messages

    def plan(
        self,
        user_text: str,
        session: Optional[Session],
        ctx: PlannerContext,
    ) -> PlannerResult:
        request = CompletionRequest(
            model=self.model,
            messages=self.build_messages(user_text, session, ctx),
            schema_name=SCHEMA_NAME,
            schema=planner_schema(),
            temperature=self.temperature,
        )

        raw = (self.completion(request) or "").strip()
        if not raw:
            logger.warning("[PLANNER] Empty completion output")
            return ChatResult(reply=NO_RESPONSE_REPLY)

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.info("[PLANNER] Completion output is not JSON; treating it as chat")
            return ChatResult(reply=raw)
        if not isinstance(parsed, dict):
            logger.info("[PLANNER] Completion output is not a JSON object; treating it as chat")
            return ChatResult(reply=raw)

        patch = normalize_session_patch(parsed.get("sessionPatch"))
        action = parsed.get("action")
        logger.debug("[PLANNER] action=%r patch=%s", action, patch.to_dict())

        if action == "chat":
            reply = _text(parsed.get("reply"))
            return ChatResult(
                reply=reply or EMPTY_CHAT_REPLY,
                session_patch=None if patch.is_empty() else patch,
            )

        if action == "ask":
            question = _text(parsed.get("question"))
            if not question:
                return ChatResult(reply=EMPTY_QUESTION_REPLY)
            return AskResult(question=question, session_patch=patch)

        if action == "propose_event":
            draft = draft_from_model_output(parsed.get("draft"))
            return ProposeEventResult(draft=draft, session_patch=patch)

        logger.warning("[PLANNER] Unrecognized action %r", action)
        return ChatResult(reply=UNKNOWN_ACTION_REPLY)
