from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from runtime.models.session_models import EventDraft, SessionPatch


@dataclass(frozen=True)
class ChannelOption:
    """A voice or stage channel that can host a scheduled event."""

    id: str
    name: str
    kind: Literal["VOICE", "STAGE"]


@dataclass
class PlannerContext:
    timezone: str
    now_iso: str
    voice_channels: List[ChannelOption] = field(default_factory=list)


@dataclass
class CompletionRequest:
    """Everything a completion backend needs for one planning call."""

    model: str
    messages: List[Dict[str, str]]
    schema_name: str
    schema: Dict[str, Any]
    temperature: float


@dataclass
class ChatResult:
    reply: str
    session_patch: Optional[SessionPatch] = None
    action: Literal["chat"] = "chat"


@dataclass
class AskResult:
    question: str
    session_patch: SessionPatch
    action: Literal["ask"] = "ask"


@dataclass
class ProposeEventResult:
    draft: EventDraft
    session_patch: SessionPatch
    action: Literal["propose_event"] = "propose_event"


PlannerResult = Union[ChatResult, AskResult, ProposeEventResult]
