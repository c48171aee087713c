"""Initial call script assembly."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from call_handoff.core.logging import get_call_logger
from call_handoff.services.call_config.models import FirstSpeaker
from call_handoff.services.call_config.schema import AppSchema
from call_handoff.services.call_session.models import CallRoutes, CallSession
from call_handoff.services.telephony.verbs import VerbBuilder
from call_handoff.services.transfer.constants import INITIAL_PAUSE
from call_handoff.services.transfer.policy import get_transfer_policy

logger = logging.getLogger(__name__)

LLM_VENDOR = "ultravox"
LLM_MODEL = "fixie-ai/ultravox"

_FIRST_SPEAKER_OPTIONS = {
    FirstSpeaker.AGENT: "FIRST_SPEAKER_AGENT",
    FirstSpeaker.USER: "FIRST_SPEAKER_USER",
}


class SessionConfigurator:
    """Builds the session and opening script for a new call."""

    def __init__(self, app_schema: AppSchema):
        self.app_schema = app_schema

    def configure(
        self, call_sid: str, env_vars: Optional[Dict[str, Any]], base_url: str
    ) -> Tuple[Optional[CallSession], List[Dict[str, Any]]]:
        """
        Create the call session and its opening script.

        The script answers, pauses briefly so the caller's media is up before
        the agent speaks, runs the LLM conversation, and hangs up when the
        conversation ends without any other action.

        Returns:
            (session, verbs). On any failure the session is None and the
            verbs only hang up the call.
        """
        call_logger = get_call_logger(call_sid)
        try:
            config = self.app_schema.resolve(env_vars)
            routes = CallRoutes.from_base_url(base_url)
            session = CallSession(call_sid, config, routes, logger=call_logger)

            system_prompt, tools = get_transfer_policy(config.transfer_mode, config.prompt)
            llm_options: Dict[str, Any] = {
                "systemPrompt": system_prompt,
                "firstSpeaker": _FIRST_SPEAKER_OPTIONS[config.first_speaker],
                "initialMessages": [
                    {
                        "medium": "MESSAGE_MEDIUM_VOICE",
                        "role": "MESSAGE_ROLE_USER",
                    }
                ],
                "model": LLM_MODEL,
                "transcriptOptional": True,
            }
            if config.voice:
                llm_options["voice"] = config.voice
            if tools:
                llm_options["selectedTools"] = tools

            verbs = (
                VerbBuilder()
                .answer()
                .pause(INITIAL_PAUSE)
                .llm(
                    vendor=LLM_VENDOR,
                    model=LLM_MODEL,
                    auth={"apiKey": config.api_key},
                    action_hook=routes.completion,
                    event_hook=routes.event,
                    tool_hook=routes.tool,
                    llm_options=llm_options,
                )
                .hangup()
                .build()
            )
        except Exception as e:
            call_logger.error(
                f"[CALL START] Error responding to incoming call: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return None, VerbBuilder().hangup().build()

        call_logger.info(
            f"[CALL START] Script ready - transfer: {config.transfer_mode}, "
            f"mechanism: {config.transfer_mechanism}, tools offered: {bool(tools)}"
        )
        return session, verbs
