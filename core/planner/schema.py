"""
Structured-output schema for the planner.

OpenAI strict JSON schema mode requires that every object schema lists
*all* of its property keys in ``required`` and sets
``additionalProperties: false``. Optional values are therefore expressed as
nullable types, and the planner drops nulls when it normalizes the output.
"""

from typing import Any, Dict

from runtime.models.session_models import AWAITING_SLOTS, ENTITY_TYPES, SESSION_MODES


SCHEMA_NAME = "planner"

PLANNER_ACTIONS = ("chat", "ask", "propose_event")

DRAFT_KEYS = [
    "name",
    "description",
    "scheduledStartTime",
    "scheduledEndTime",
    "entityType",
    "location",
    "channelId",
]


def planner_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "action": {"type": "string", "enum": list(PLANNER_ACTIONS)},

            # action="chat"
            "reply": {"type": ["string", "null"]},

            # action="ask"
            "question": {"type": ["string", "null"]},

            # action="propose_event"
            "draft": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": ["string", "null"]},
                    "scheduledStartTime": {"type": "string", "description": "ISO 8601 timestamp"},
                    "scheduledEndTime": {"type": ["string", "null"], "description": "ISO 8601 timestamp"},
                    "entityType": {"type": "string", "enum": list(ENTITY_TYPES)},
                    "location": {"type": ["string", "null"]},
                    "channelId": {"type": ["string", "null"]},
                },
                "required": list(DRAFT_KEYS),
            },

            "sessionPatch": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    # null = no change
                    "mode": {"type": ["string", "null"], "enum": [*SESSION_MODES, None]},
                    # null or "null" = clear awaiting
                    "awaiting": {
                        "type": ["string", "null"],
                        "enum": [*AWAITING_SLOTS, "null", None],
                    },
                },
                "required": ["mode", "awaiting"],
            },
        },
        "required": ["action", "reply", "question", "draft", "sessionPatch"],
    }
