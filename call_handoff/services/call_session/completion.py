"""Conversation completion classification."""
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from call_handoff.services.telephony.verbs import VerbBuilder

FAILURE_REASONS = ("server failure", "server error")
RATE_LIMIT_CODE = "rate_limit_exceeded"

RATE_LIMIT_TEXT = "Sorry, you have exceeded your rate limits. "
GENERIC_FAILURE_TEXT = "Sorry, there was an error processing your request."

_RETRY_AFTER_PATTERN = re.compile(r"try again in (\d+)")


class CompletionKind(str, Enum):
    CONTINUE = "continue"
    RATE_LIMITED = "rate_limited"
    GENERIC_FAILURE = "generic_failure"


class CompletionOutcome(BaseModel):
    """What to do after the LLM conversation verb completes."""

    kind: CompletionKind
    text: Optional[str] = None
    end_call: bool = False
    retry_after: Optional[int] = None

    def to_verbs(self) -> List[Dict[str, Any]]:
        if not self.end_call:
            return []
        builder = VerbBuilder()
        if self.text:
            builder.say(self.text)
        return builder.hangup().build()


def extract_retry_after(message: Any) -> Optional[int]:
    """Seconds following "try again in" in a vendor error message, if any."""
    if not isinstance(message, str):
        return None
    match = _RETRY_AFTER_PATTERN.search(message)
    return int(match.group(1)) if match else None


def classify_completion(
    completion_reason: Optional[str], error: Any = None
) -> CompletionOutcome:
    """
    Classify a completion event.

    Never raises: a failure reason with a malformed error payload is treated
    as a generic failure.
    """
    if completion_reason not in FAILURE_REASONS:
        return CompletionOutcome(kind=CompletionKind.CONTINUE)

    if isinstance(error, dict) and error.get("code") == RATE_LIMIT_CODE:
        retry_after = extract_retry_after(error.get("message"))
        text = RATE_LIMIT_TEXT
        if retry_after is not None:
            text += f"Please try again in {retry_after} seconds."
        return CompletionOutcome(
            kind=CompletionKind.RATE_LIMITED,
            text=text,
            end_call=True,
            retry_after=retry_after,
        )

    return CompletionOutcome(
        kind=CompletionKind.GENERIC_FAILURE,
        text=GENERIC_FAILURE_TEXT,
        end_call=True,
    )
