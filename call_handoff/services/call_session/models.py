"""Call session models."""
import logging
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from call_handoff.core.logging import get_call_logger
from call_handoff.services.call_config.models import CallConfig


class TransferState(str, Enum):
    """Transfer progress of a call."""

    IDLE = "idle"  # Conversation running, no transfer requested
    TOOL_INVOKED = "tool_invoked"  # Transfer tool called, redirect not yet issued
    TRANSFERRING = "transferring"  # Redirect issued
    CONFIRM_PENDING = "confirm_pending"  # Callee answered a warm dial, hearing the summary
    TRANSFERRED = "transferred"  # Transfer leg ended
    CLOSED = "closed"  # Session gone

    def __str__(self) -> str:
        return self.value


class CallRoutes(BaseModel):
    """Absolute callback URLs for one call."""

    event: str
    completion: str
    tool: str
    dial_action: str
    confirm: str

    @classmethod
    def from_base_url(cls, base_url: str, prefix: str = "/webhooks/call") -> "CallRoutes":
        root = f"{base_url.rstrip('/')}{prefix}"
        return cls(
            event=f"{root}/event",
            completion=f"{root}/completion",
            tool=f"{root}/tool",
            dial_action=f"{root}/dial-action",
            confirm=f"{root}/confirm",
        )


class CallSession:
    """Call session model."""

    def __init__(
        self,
        call_sid: str,
        config: CallConfig,
        routes: CallRoutes,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.call_sid = call_sid
        self.config = config
        self.routes = routes
        self.logger = logger or get_call_logger(call_sid)
        self.state = TransferState.IDLE
        self.conversation_summary: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.state == TransferState.CLOSED
