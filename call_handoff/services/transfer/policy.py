"""Prompt and tool selection per transfer mode."""
from typing import Any, Dict, List, Optional, Tuple

from call_handoff.services.call_config.models import TransferMode
from call_handoff.services.transfer.constants import (
    COLD_TRANSFER_INSTRUCTIONS,
    SUMMARY_ARGUMENT,
    TRANSFER_TOOL_NAME,
    WARM_TRANSFER_INSTRUCTIONS,
)

_INSTRUCTION_SUFFIXES = {
    TransferMode.NONE: "",
    TransferMode.COLD: COLD_TRANSFER_INSTRUCTIONS,
    TransferMode.WARM: WARM_TRANSFER_INSTRUCTIONS,
}


def get_transfer_tool() -> Dict[str, Any]:
    """Tool descriptor for the call-transfer tool, in the platform's format."""
    # Empty client block: the result comes back through the tool hook,
    # nothing is rendered to the user by the tool itself.
    return {
        "temporaryTool": {
            "modelToolName": TRANSFER_TOOL_NAME,
            "description": "Transfers the call to a human agent",
            "dynamicParameters": [
                {
                    "name": SUMMARY_ARGUMENT,
                    "location": "PARAMETER_LOCATION_BODY",
                    "schema": {
                        "type": "string",
                        "description": "A summary of the conversation so far",
                    },
                    "required": True,
                }
            ],
            "client": {},
        }
    }


def get_transfer_policy(
    mode: TransferMode, base_prompt: str
) -> Tuple[str, Optional[List[Dict[str, Any]]]]:
    """
    Derive the system prompt and tool set offered to the LLM.

    Args:
        mode: Transfer mode configured for the call
        base_prompt: Operator-supplied conversational instructions

    Returns:
        (system prompt, tool descriptors or None when no transfer is offered)
    """
    prompt = base_prompt + _INSTRUCTION_SUFFIXES[TransferMode(mode)]
    if mode == TransferMode.NONE:
        return prompt, None
    return prompt, [get_transfer_tool()]
