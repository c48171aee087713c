"""Call transfer state machine."""
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from call_handoff.services.call_config.models import TransferMechanism
from call_handoff.services.call_session.models import CallSession, TransferState
from call_handoff.services.telephony.client import (
    CallControlClient,
    CallControlError,
    build_tool_result,
)
from call_handoff.services.telephony.verbs import VerbBuilder
from call_handoff.services.transfer.constants import (
    CALL_ENDED_TEXT,
    CONFIRM_PAUSE,
    MISSING_SUMMARY_RESULT,
    SUMMARY_ARGUMENT,
    SUMMARY_PREFIX,
    TRANSFER_ACCEPTED_RESULT,
    TRANSFER_FAILED_RESULT,
    TRANSFER_IN_PROGRESS_RESULT,
    TRANSFER_TOOL_NAME,
    UNKNOWN_TOOL_RESULT,
)

logger = logging.getLogger(__name__)


class TransferEvent(str, Enum):
    """Inputs that move a call through the transfer states."""

    TOOL_CALL = "tool_call"
    REDIRECT_OK = "redirect_ok"
    REDIRECT_FAILED = "redirect_failed"
    CONFIRM = "confirm"
    DIAL_OUTCOME = "dial_outcome"


# Close is accepted from every state and handled separately.
TRANSITIONS: Dict[tuple, TransferState] = {
    (TransferState.IDLE, TransferEvent.TOOL_CALL): TransferState.TOOL_INVOKED,
    (TransferState.TOOL_INVOKED, TransferEvent.REDIRECT_OK): TransferState.TRANSFERRING,
    (TransferState.TOOL_INVOKED, TransferEvent.REDIRECT_FAILED): TransferState.IDLE,
    (TransferState.TRANSFERRING, TransferEvent.CONFIRM): TransferState.CONFIRM_PENDING,
    (TransferState.TRANSFERRING, TransferEvent.DIAL_OUTCOME): TransferState.TRANSFERRED,
    (TransferState.CONFIRM_PENDING, TransferEvent.DIAL_OUTCOME): TransferState.TRANSFERRED,
}


def next_state(state: TransferState, event: TransferEvent) -> Optional[TransferState]:
    """Target state for `event` in `state`, or None if the event is not expected."""
    return TRANSITIONS.get((state, event))


class TransferOrchestrator:
    """Turns transfer tool calls and transfer-leg callbacks into call commands."""

    def __init__(self, call_control: CallControlClient, dial_music_url: Optional[str] = None):
        self.call_control = call_control
        self.dial_music_url = dial_music_url

    def _advance(self, session: CallSession, event: TransferEvent) -> bool:
        target = next_state(session.state, event)
        if target is None:
            return False
        session.logger.info(f"[TRANSFER] {session.state} -> {target} on {event.value}")
        session.state = target
        return True

    def build_redirect(self, session: CallSession) -> List[Dict[str, Any]]:
        """Verbs that replace the conversation with the transfer."""
        config = session.config
        if config.transfer_mechanism == TransferMechanism.REFER:
            return VerbBuilder().sip_refer(config.transfer_to).build()
        return (
            VerbBuilder()
            .dial(
                number=config.transfer_to,
                caller_id=config.transfer_from,
                action_hook=session.routes.dial_action,
                trunk=config.transfer_carrier,
                dial_music=self.dial_music_url,
                confirm_hook=session.routes.confirm if config.needs_confirmation else None,
            )
            .build()
        )

    async def _send_result(
        self,
        session: CallSession,
        tool_call_id: str,
        result: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        data = build_tool_result(tool_call_id, result=result, error_message=error_message)
        try:
            await self.call_control.send_tool_output(session.call_sid, tool_call_id, data)
        except CallControlError as e:
            session.logger.error(f"[TOOL CALL] Could not deliver tool result: {str(e)}")

    async def handle_tool_call(
        self,
        session: CallSession,
        name: str,
        tool_call_id: str,
        args: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        React to the LLM invoking a tool.

        A valid call-transfer invocation on an idle call issues exactly one
        redirect. The summary is kept only once the redirect was accepted.
        """
        if session.is_closed:
            session.logger.warning(f"[TOOL CALL] Ignoring {name} on closed call")
            return

        if name != TRANSFER_TOOL_NAME:
            session.logger.warning(f"[TOOL CALL] Unknown tool requested: {name}")
            await self._send_result(session, tool_call_id, error_message=UNKNOWN_TOOL_RESULT)
            return

        if session.state != TransferState.IDLE:
            session.logger.warning(
                f"[TOOL CALL] Duplicate transfer request {tool_call_id} in state {session.state}"
            )
            await self._send_result(
                session, tool_call_id, error_message=TRANSFER_IN_PROGRESS_RESULT
            )
            return

        summary = (args or {}).get(SUMMARY_ARGUMENT)
        if not isinstance(summary, str) or not summary.strip():
            session.logger.warning(f"[TOOL CALL] {tool_call_id} has no conversation summary")
            await self._send_result(session, tool_call_id, error_message=MISSING_SUMMARY_RESULT)
            return

        self._advance(session, TransferEvent.TOOL_CALL)
        try:
            await self.call_control.redirect(session.call_sid, self.build_redirect(session))
        except Exception as e:
            session.logger.error(
                f"[TOOL CALL] Error transferring call: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            self._advance(session, TransferEvent.REDIRECT_FAILED)
            await self._send_result(session, tool_call_id, error_message=TRANSFER_FAILED_RESULT)
            return

        session.conversation_summary = summary
        self._advance(session, TransferEvent.REDIRECT_OK)
        session.logger.info(
            f"[TOOL CALL] Transfer issued via {session.config.transfer_mechanism} "
            f"to {session.config.transfer_to}"
        )
        await self._send_result(session, tool_call_id, result=TRANSFER_ACCEPTED_RESULT)

    def handle_confirm(self, session: CallSession) -> List[Dict[str, Any]]:
        """Transfer leg answered a warm dial: brief the agent before bridging."""
        if not session.config.needs_confirmation or not self._advance(
            session, TransferEvent.CONFIRM
        ):
            session.logger.warning(
                f"[CONFIRM] Unexpected confirmation in state {session.state}, ignoring"
            )
            return []

        session.logger.info(f"[CONFIRM] Summary: {session.conversation_summary}")
        return (
            VerbBuilder()
            .pause(CONFIRM_PAUSE)
            .say(SUMMARY_PREFIX + (session.conversation_summary or ""))
            .build()
        )

    def handle_dial_outcome(
        self, session: CallSession, outcome: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Transfer leg ended: tell the caller and hang up."""
        outcome = outcome or {}
        if not self._advance(session, TransferEvent.DIAL_OUTCOME):
            session.logger.warning(
                f"[DIAL ACTION] Unexpected dial outcome in state {session.state}, ignoring"
            )
            return []

        session.logger.info(
            f"[DIAL ACTION] Transfer leg ended - status: {outcome.get('dial_call_status')}, "
            f"sip status: {outcome.get('dial_sip_status')}"
        )
        return VerbBuilder().say(CALL_ENDED_TEXT).hangup().build()

    def close(
        self, session: CallSession, code: Optional[Any] = None, reason: Optional[str] = None
    ) -> None:
        """Move the call to its terminal state. Safe to call more than once."""
        if session.is_closed:
            session.logger.debug(f"[CLOSE] Already closed - code: {code}, reason: {reason}")
            return
        session.logger.info(
            f"[CLOSE] Session closed from state {session.state} - code: {code}, reason: {reason}"
        )
        session.state = TransferState.CLOSED
