"""
Session-related models for the ATV-AI runtime.

These describe:
- the EventDraft accumulated while collecting an event
- the per-user-per-channel Session record
- PatchField / SessionPatch, the three-valued partial update applied to a Session
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel


SessionMode = Literal["chat", "event"]
AwaitingSlot = Literal["name", "where", "duration", "description", "confirm"]

SESSION_MODES = ("chat", "event")
AWAITING_SLOTS = ("name", "where", "duration", "description", "confirm")
ENTITY_TYPES = ("EXTERNAL", "VOICE", "STAGE")


class EventDraft(BaseModel):
    """A candidate scheduled event.

    Optional fields that were never provided stay out of
    ``model_fields_set`` and are dropped by ``to_dict()``.
    """

    name: str = ""
    description: Optional[str] = None
    scheduled_start_time: str = ""           # ISO 8601
    scheduled_end_time: Optional[str] = None  # ISO 8601
    entity_type: Optional[str] = None        # EXTERNAL | VOICE | STAGE
    location: Optional[str] = None           # required if EXTERNAL
    channel_id: Optional[str] = None         # required if VOICE / STAGE

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Session(BaseModel):
    key: str
    mode: SessionMode = "chat"
    awaiting: Optional[AwaitingSlot] = None
    event_draft: Optional[EventDraft] = None
    expires_at_ms: int = 0


class PatchOp(str, Enum):
    UNCHANGED = "UNCHANGED"
    CLEAR = "CLEAR"
    SET = "SET"


@dataclass(frozen=True)
class PatchField:
    """One field of a SessionPatch: leave it, clear it, or set it."""

    op: PatchOp = PatchOp.UNCHANGED
    value: Any = None

    @classmethod
    def unchanged(cls) -> "PatchField":
        return cls(PatchOp.UNCHANGED)

    @classmethod
    def clear(cls) -> "PatchField":
        return cls(PatchOp.CLEAR)

    @classmethod
    def set(cls, value: Any) -> "PatchField":
        return cls(PatchOp.SET, value)

    @property
    def is_unchanged(self) -> bool:
        return self.op is PatchOp.UNCHANGED

    def apply(self, current: Any) -> Any:
        if self.op is PatchOp.SET:
            return self.value
        if self.op is PatchOp.CLEAR:
            return None
        return current


@dataclass(frozen=True)
class SessionPatch:
    """Partial update for a Session.

    ``mode`` can only be left unchanged or set; a session always has a mode.
    """

    mode: PatchField = field(default_factory=PatchField.unchanged)
    awaiting: PatchField = field(default_factory=PatchField.unchanged)
    event_draft: PatchField = field(default_factory=PatchField.unchanged)

    def __post_init__(self) -> None:
        if self.mode.op is PatchOp.CLEAR:
            raise ValueError("Session mode cannot be cleared.")
        if self.mode.op is PatchOp.SET and self.mode.value not in SESSION_MODES:
            raise ValueError(f"Unknown session mode: {self.mode.value!r}")
        if self.awaiting.op is PatchOp.SET and self.awaiting.value not in AWAITING_SLOTS:
            raise ValueError(f"Unknown awaiting slot: {self.awaiting.value!r}")

    @classmethod
    def of(
        cls,
        *,
        mode: Optional[str] = None,
        awaiting: Any = ...,
        event_draft: Any = ...,
    ) -> "SessionPatch":
        """Convenience constructor.

        ``mode=None`` leaves the mode alone. For ``awaiting`` and
        ``event_draft`` an omitted argument leaves the field alone and an
        explicit ``None`` clears it.
        """

        def _tri(value: Any) -> PatchField:
            if value is ...:
                return PatchField.unchanged()
            if value is None:
                return PatchField.clear()
            return PatchField.set(value)

        return cls(
            mode=PatchField.set(mode) if mode is not None else PatchField.unchanged(),
            awaiting=_tri(awaiting),
            event_draft=_tri(event_draft),
        )

    def is_empty(self) -> bool:
        return self.mode.is_unchanged and self.awaiting.is_unchanged and self.event_draft.is_unchanged

    def to_dict(self) -> Dict[str, Any]:
        """Instruction-only view: unchanged fields are omitted, cleared ones are None."""
        out: Dict[str, Any] = {}
        for name in ("mode", "awaiting", "event_draft"):
            patch_field: PatchField = getattr(self, name)
            if patch_field.is_unchanged:
                continue
            value = patch_field.apply(None)
            out[name] = value.to_dict() if isinstance(value, EventDraft) else value
        return out
