# Prompt builders used by the planner.

import json
from typing import Any, Dict, List, Optional

from runtime.models.session_models import EventDraft, Session

from .models import PlannerContext


# EventDraft field -> key used in the model-facing JSON
DRAFT_FIELD_TO_KEY = {
    "name": "name",
    "description": "description",
    "scheduled_start_time": "scheduledStartTime",
    "scheduled_end_time": "scheduledEndTime",
    "entity_type": "entityType",
    "location": "location",
    "channel_id": "channelId",
}


def draft_to_model_json(draft: Optional[EventDraft]) -> Dict[str, Any]:
    if draft is None:
        return {}
    return {DRAFT_FIELD_TO_KEY[k]: v for k, v in draft.to_dict().items()}


def build_instructions(ctx: PlannerContext, default_duration_minutes: int) -> str:
    lines: List[str] = [
        "You are a Discord bot assistant.",
        "You can do two things: (1) normal chat Q&A, (2) create a Discord Scheduled Event.",
        "If the user wants an event, collect missing fields by asking ONE question at a time.",
        f"Timezone is {ctx.timezone}. Current time is {ctx.now_iso}.",
        "If date/time is ambiguous, ask a clarification.",
        'When ready, output action="propose_event" with a complete draft.',
        'If user is just chatting, output action="chat".',
        "",
        "Event rules:",
        "- entityType must be VOICE, STAGE, or EXTERNAL.",
        "- If VOICE or STAGE, you must provide channelId. Available channels:",
    ]
    if ctx.voice_channels:
        lines.extend(f'  - {c.kind}: "{c.name}" id={c.id}' for c in ctx.voice_channels)
    else:
        lines.append("  (none)")
    lines.extend([
        "- If EXTERNAL, you must provide location.",
        "- Always output ISO 8601 timestamps.",
        "- Ask for event name if missing.",
        "- If end time is missing, ask duration OR assume "
        f"{default_duration_minutes} minutes if the user seems fine with defaults.",
        "",
        "Output format: JSON that matches the provided schema.",
        "- Use null for fields you are not providing / no change.",
        '- For sessionPatch.mode: "chat"|"event"|null',
        '- For sessionPatch.awaiting: "name"|"where"|"duration"|"description"|"confirm"|"null"|null',
    ])
    return "\n".join(lines)


def build_session_context(session: Session) -> str:
    draft_json = json.dumps(draft_to_model_json(session.event_draft), ensure_ascii=False)
    return (
        f"Existing session: mode={session.mode}, "
        f"awaiting={session.awaiting or 'null'}, "
        f"currentDraft={draft_json}"
    )
