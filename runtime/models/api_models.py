"""
HTTP request/response models for the ATV-AI runtime API.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class CommandRequest(BaseModel):
    """Slash-command invocation (/atv-ai text:...)."""
    server_id: Optional[str] = None
    channel_id: Optional[str] = None
    user_id: str
    text: str


class MessageRequest(BaseModel):
    """Plain channel message that may continue an open session."""
    server_id: Optional[str] = None
    channel_id: Optional[str] = None
    user_id: str
    text: str
    is_bot: bool = False


class ButtonRequest(BaseModel):
    server_id: Optional[str] = None
    channel_id: Optional[str] = None
    user_id: str
    custom_id: str


class SessionKeyRequest(BaseModel):
    server_id: str
    channel_id: str
    user_id: str


class AgentResponse(BaseModel):
    """
    High-level response:

    type:
      - "reply"          free-form chat answer
      - "question"       one clarifying question
      - "event_preview"  draft preview + confirm/cancel buttons
      - "event_created"  the scheduled event was committed
      - "cancelled"      the session was cleared
      - "error"          a wrapped failure, message is user-facing
      - "ignored"        nothing to do (no live session, bot author, ...)

    components lists button custom ids to attach to the message.
    """
    type: str
    message: Optional[str] = None
    components: List[str] = Field(default_factory=list)
    draft: Optional[Dict[str, Any]] = None
