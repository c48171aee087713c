"""Call script (verb list) generation."""
from typing import Any, Dict, List, Optional


class VerbBuilder:
    """Builds the JSON verb list the telephony platform executes in order."""

    def __init__(self):
        self._verbs: List[Dict[str, Any]] = []

    def _add(self, verb: str, **attrs: Any) -> "VerbBuilder":
        payload = {"verb": verb}
        payload.update({key: value for key, value in attrs.items() if value is not None})
        self._verbs.append(payload)
        return self

    def answer(self) -> "VerbBuilder":
        return self._add("answer")

    def pause(self, length: float) -> "VerbBuilder":
        """Pause for `length` seconds."""
        return self._add("pause", length=length)

    def say(self, text: str) -> "VerbBuilder":
        return self._add("say", text=text)

    def hangup(self) -> "VerbBuilder":
        return self._add("hangup")

    def llm(
        self,
        vendor: str,
        model: str,
        auth: Dict[str, Any],
        action_hook: str,
        event_hook: str,
        tool_hook: str,
        llm_options: Dict[str, Any],
    ) -> "VerbBuilder":
        """Hand the call to a realtime LLM conversation."""
        return self._add(
            "llm",
            vendor=vendor,
            model=model,
            auth=auth,
            actionHook=action_hook,
            eventHook=event_hook,
            toolHook=tool_hook,
            llmOptions=llm_options,
        )

    def dial(
        self,
        number: str,
        caller_id: str,
        action_hook: str,
        trunk: Optional[str] = None,
        dial_music: Optional[str] = None,
        confirm_hook: Optional[str] = None,
    ) -> "VerbBuilder":
        """
        Place an outbound phone leg and bridge it to the caller.

        Args:
            number: Destination phone number
            caller_id: Caller id presented on the outbound leg
            action_hook: Called when the dialed leg ends
            trunk: Carrier/trunk to route the leg through
            dial_music: Ring-back media played to the caller
            confirm_hook: Called when the leg answers, before bridging
        """
        target = {"type": "phone", "number": number}
        if trunk:
            target["trunk"] = trunk
        return self._add(
            "dial",
            actionHook=action_hook,
            callerId=caller_id,
            dialMusic=dial_music,
            target=[target],
            confirmHook=confirm_hook,
        )

    def sip_refer(self, refer_to: str) -> "VerbBuilder":
        """Transfer the call with a SIP REFER."""
        return self._add("sip:refer", referTo=refer_to)

    def build(self) -> List[Dict[str, Any]]:
        return list(self._verbs)
