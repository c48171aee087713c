"""Call-control REST client."""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class CallControlError(Exception):
    """Raised when a command cannot be delivered to a live call."""


class CallControlClient:
    """Issues commands to a live call through the platform's REST API."""

    def __init__(
        self,
        api_url: str,
        account_sid: str,
        api_key: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.account_sid = account_sid
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def _call_url(self, call_sid: str) -> str:
        return f"{self.api_url}/v1/Accounts/{self.account_sid}/Calls/{call_sid}"

    async def _update_call(self, call_sid: str, body: Dict[str, Any]) -> None:
        try:
            response = await self.client.put(self._call_url(call_sid), json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CallControlError(
                f"Call update failed for {call_sid}: {type(e).__name__}: {str(e)}"
            ) from e

    async def redirect(self, call_sid: str, verbs: List[Dict[str, Any]]) -> None:
        """
        Replace the call's current script with `verbs`.

        Raises:
            CallControlError: if the platform rejects or never receives the command
        """
        logger.debug(f"[CALL CONTROL] Redirecting {call_sid}: {verbs}")
        await self._update_call(call_sid, {"redirect": verbs})

    async def send_tool_output(
        self, call_sid: str, tool_call_id: str, data: Dict[str, Any]
    ) -> None:
        """
        Deliver a tool result to the LLM conversation on the call.

        Raises:
            CallControlError: if the platform rejects or never receives the result
        """
        logger.debug(f"[CALL CONTROL] Tool output for {call_sid}/{tool_call_id}: {data}")
        await self._update_call(
            call_sid,
            {"llm_tool_output": {"tool_call_id": tool_call_id, "data": data}},
        )

    async def close(self) -> None:
        await self.client.aclose()


def build_tool_result(
    tool_call_id: str, result: Optional[str] = None, error_message: Optional[str] = None
) -> Dict[str, Any]:
    """Tool result payload; an error message marks the invocation as failed."""
    data: Dict[str, Any] = {
        "type": "client_tool_result",
        "invocation_id": tool_call_id,
    }
    if error_message is not None:
        data["error_message"] = error_message
    else:
        data["result"] = result
    return data
