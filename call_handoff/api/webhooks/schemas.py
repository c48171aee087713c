"""Callback payloads posted by the telephony platform."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class CallbackPayload(BaseModel):
    """Fields common to every callback. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    call_sid: str


class CallStartPayload(CallbackPayload):
    env_vars: Optional[Dict[str, Any]] = None
    direction: Optional[str] = None


class CompletionPayload(CallbackPayload):
    completion_reason: Optional[str] = None
    error: Optional[Any] = None


class ToolCallPayload(CallbackPayload):
    name: str
    tool_call_id: str
    args: Optional[Dict[str, Any]] = None


class DialActionPayload(CallbackPayload):
    dial_call_status: Optional[str] = None
    dial_sip_status: Optional[int] = None
    dial_call_sid: Optional[str] = None


class CallStatusPayload(CallbackPayload):
    call_status: str
    sip_status: Optional[int] = None
    sip_reason: Optional[str] = None


class CallErrorPayload(CallbackPayload):
    error: Optional[Any] = None


class LlmEventPayload(CallbackPayload):
    type: Optional[str] = None
