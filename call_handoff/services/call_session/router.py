"""Routing of call callbacks to their handlers."""
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from call_handoff.services.call_session.completion import classify_completion
from call_handoff.services.call_session.configurator import SessionConfigurator
from call_handoff.services.call_session.manager import CallSessionManager
from call_handoff.services.call_session.models import CallSession
from call_handoff.services.call_session.orchestrator import TransferOrchestrator
from call_handoff.services.telephony.client import (
    CallControlClient,
    CallControlError,
    build_tool_result,
)
from call_handoff.services.transfer.constants import TRANSFER_UNAVAILABLE_RESULT

logger = logging.getLogger(__name__)


class EventRouter:
    """
    Dispatches each callback for a call to exactly one handler.

    Handlers for the same call run one at a time, in arrival order, under the
    call's lock. Different calls do not share a lock and proceed concurrently.
    Callbacks for unknown or closed calls are logged and ignored.
    """

    def __init__(
        self,
        configurator: SessionConfigurator,
        orchestrator: TransferOrchestrator,
        session_manager: CallSessionManager,
        call_control: CallControlClient,
    ):
        self.configurator = configurator
        self.orchestrator = orchestrator
        self.session_manager = session_manager
        self.call_control = call_control

    def _live_session(self, call_sid: str, route: str) -> Optional[CallSession]:
        session = self.session_manager.get_session(call_sid)
        if session is None or session.is_closed:
            logger.warning(f"[{route}] No live session for CallSid: {call_sid}, ignoring")
            if session is None:
                self.session_manager.discard_lock(call_sid)
            return None
        return session

    async def on_call_start(
        self, call_sid: str, env_vars: Optional[Dict[str, Any]], base_url: str
    ) -> List[Dict[str, Any]]:
        logger.info(f"[CALL START] New incoming call - CallSid: {call_sid}")
        async with self.session_manager.lock(call_sid):
            session, verbs = self.configurator.configure(call_sid, env_vars, base_url)
            if session is not None:
                self.session_manager.add_session(session)
            else:
                self.session_manager.remove_session(call_sid)
            return verbs

    async def on_event(self, call_sid: str, event: Mapping[str, Any]) -> None:
        async with self.session_manager.lock(call_sid):
            session = self._live_session(call_sid, "EVENT")
            if session is None:
                return
            # Transcripts carry caller speech; keep them out of the logs
            if event.get("type") != "transcript":
                session.logger.info(f"[EVENT] got eventHook: {json.dumps(event, default=str)}")

    async def on_completion(
        self, call_sid: str, completion_reason: Optional[str], error: Any = None
    ) -> List[Dict[str, Any]]:
        async with self.session_manager.lock(call_sid):
            session = self._live_session(call_sid, "COMPLETION")
            if session is None:
                return []
            outcome = classify_completion(completion_reason, error)
            session.logger.info(
                f"[COMPLETION] reason: {completion_reason}, outcome: {outcome.kind.value}"
            )
            if outcome.end_call:
                session.logger.warning(f"[COMPLETION] Conversation failed: {error}")
            return outcome.to_verbs()

    async def on_tool_call(
        self,
        call_sid: str,
        name: str,
        tool_call_id: str,
        args: Optional[Mapping[str, Any]] = None,
    ) -> None:
        async with self.session_manager.lock(call_sid):
            session = self._live_session(call_sid, "TOOL CALL")
            if session is None:
                return
            session.logger.info(f"[TOOL CALL] got toolHook for {name} with tool_call_id {tool_call_id}")
            if not session.config.transfer_enabled:
                session.logger.warning(f"[TOOL CALL] Tool {name} called with transfers disabled")
                data = build_tool_result(tool_call_id, error_message=TRANSFER_UNAVAILABLE_RESULT)
                try:
                    await self.call_control.send_tool_output(call_sid, tool_call_id, data)
                except CallControlError as e:
                    session.logger.error(f"[TOOL CALL] Could not deliver tool result: {str(e)}")
                return
            await self.orchestrator.handle_tool_call(session, name, tool_call_id, args)

    async def on_dial_outcome(
        self, call_sid: str, outcome: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        async with self.session_manager.lock(call_sid):
            session = self._live_session(call_sid, "DIAL ACTION")
            if session is None:
                return []
            return self.orchestrator.handle_dial_outcome(session, outcome)

    async def on_confirm(self, call_sid: str) -> List[Dict[str, Any]]:
        async with self.session_manager.lock(call_sid):
            session = self._live_session(call_sid, "CONFIRM")
            if session is None:
                return []
            return self.orchestrator.handle_confirm(session)

    async def on_close(
        self, call_sid: str, code: Optional[Any] = None, reason: Optional[str] = None
    ) -> None:
        async with self.session_manager.lock(call_sid):
            session = self.session_manager.remove_session(call_sid)
            if session is None:
                logger.debug(f"[CLOSE] No session for CallSid: {call_sid}")
                return
            self.orchestrator.close(session, code=code, reason=reason)

    async def on_error(self, call_sid: str, error: Any = None) -> None:
        logger.error(f"[ERROR] Session {call_sid} received error: {error}")
        await self.on_close(call_sid, code="error", reason=str(error) if error else None)
