"""Call control webhook endpoints."""
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from call_handoff.api.webhooks.schemas import (
    CallErrorPayload,
    CallStartPayload,
    CallStatusPayload,
    CompletionPayload,
    DialActionPayload,
    LlmEventPayload,
    ToolCallPayload,
)
from call_handoff.core.config import settings
from call_handoff.core.dependencies import get_app_schema, get_event_router
from call_handoff.services.call_config.schema import AppSchema
from call_handoff.services.call_session.router import EventRouter

router = APIRouter()
logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ["completed", "failed", "busy", "no-answer"]


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute hook URLs.

    Uses BASE_URL environment variable if set (e.g. behind a proxy),
    otherwise constructs from request.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def hangup_verbs() -> list:
    return [{"verb": "hangup"}]


@router.options("/call/start")
async def describe_application(app_schema: AppSchema = Depends(get_app_schema)):
    """
    Describe the per-call variables this application accepts.

    The platform queries this before showing the application's settings.
    """
    return JSONResponse(content=app_schema.get_variables())


@router.post("/call/start")
async def handle_call_start(
    request: Request,
    payload: CallStartPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """
    Handle a new call.

    Returns the opening script: answer, short pause, LLM conversation, hangup.
    """
    logger.info(
        f"[INCOMING CALL] Received call start webhook - CallSid: {payload.call_sid}, "
        f"Direction: {payload.direction}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        verbs = await event_router.on_call_start(
            payload.call_sid, payload.env_vars, get_base_url(request)
        )
        return JSONResponse(content=verbs)
    except Exception as e:
        logger.error(
            f"[INCOMING CALL] Error processing incoming call - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(content=hangup_verbs())


@router.post("/call/event")
async def handle_llm_event(
    payload: LlmEventPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """Handle a mid-conversation event from the LLM session."""
    try:
        await event_router.on_event(payload.call_sid, payload.model_dump())
    except Exception as e:
        logger.error(
            f"[EVENT] Error handling event - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return JSONResponse(content={})


@router.post("/call/completion")
async def handle_completion(
    payload: CompletionPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """Handle the end of the LLM conversation."""
    logger.info(
        f"[COMPLETION] Received completion - CallSid: {payload.call_sid}, "
        f"Reason: {payload.completion_reason}"
    )
    try:
        verbs = await event_router.on_completion(
            payload.call_sid, payload.completion_reason, payload.error
        )
        return JSONResponse(content=verbs)
    except Exception as e:
        logger.error(
            f"[COMPLETION] Error handling completion - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(content=[])


@router.post("/call/tool")
async def handle_tool_call(
    payload: ToolCallPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """
    Handle a tool invocation from the LLM.

    The tool result is delivered through the call-control API, so the
    response body is empty.
    """
    try:
        await event_router.on_tool_call(
            payload.call_sid, payload.name, payload.tool_call_id, payload.args
        )
    except Exception as e:
        logger.error(
            f"[TOOL CALL] Error handling tool call - CallSid: {payload.call_sid}, "
            f"Tool: {payload.name}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return JSONResponse(content={})


@router.post("/call/dial-action")
async def handle_dial_action(
    payload: DialActionPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """Handle the end of the transfer leg."""
    logger.info(
        f"[DIAL ACTION] Received dial outcome - CallSid: {payload.call_sid}, "
        f"DialCallStatus: {payload.dial_call_status}"
    )
    try:
        verbs = await event_router.on_dial_outcome(
            payload.call_sid, payload.model_dump(exclude_none=True)
        )
        return JSONResponse(content=verbs)
    except Exception as e:
        logger.error(
            f"[DIAL ACTION] Error handling dial outcome - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(content=hangup_verbs())


@router.post("/call/confirm")
async def handle_confirm(
    payload: DialActionPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """Handle the transfer leg answering a warm dial."""
    logger.info(f"[CONFIRM] Transfer leg answered - CallSid: {payload.call_sid}")
    try:
        verbs = await event_router.on_confirm(payload.call_sid)
        return JSONResponse(content=verbs)
    except Exception as e:
        logger.error(
            f"[CONFIRM] Error handling confirmation - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(content=[])


@router.post("/call/status")
async def handle_call_status(
    payload: CallStatusPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """
    Handle call status updates.

    Terminal statuses close the session.
    """
    logger.info(
        f"[CALL STATUS] Received status update - CallSid: {payload.call_sid}, "
        f"CallStatus: {payload.call_status}"
    )
    try:
        if payload.call_status == "failed":
            await event_router.on_error(payload.call_sid, payload.sip_reason or payload.call_status)
        elif payload.call_status in TERMINAL_STATUSES:
            await event_router.on_close(
                payload.call_sid, code=payload.sip_status, reason=payload.sip_reason
            )
        else:
            logger.debug(
                f"[CALL STATUS] No action needed - CallSid: {payload.call_sid}, "
                f"CallStatus: {payload.call_status}"
            )
    except Exception as e:
        logger.error(
            f"[CALL STATUS] Error handling call status update - CallSid: {payload.call_sid}, "
            f"CallStatus: {payload.call_status}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    # Always acknowledge to avoid platform retries
    return JSONResponse(content={})


@router.post("/call/error")
async def handle_call_error(
    payload: CallErrorPayload,
    event_router: EventRouter = Depends(get_event_router),
):
    """Handle a transport-reported session error."""
    try:
        await event_router.on_error(payload.call_sid, payload.error)
    except Exception as e:
        logger.error(
            f"[ERROR] Error closing session - CallSid: {payload.call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return JSONResponse(content={})
