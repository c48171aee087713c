"""FastAPI dependencies."""
from functools import lru_cache

from fastapi import Depends, Request

from call_handoff.core.config import settings
from call_handoff.services.call_config.schema import AppSchema
from call_handoff.services.call_session.configurator import SessionConfigurator
from call_handoff.services.call_session.manager import CallSessionManager
from call_handoff.services.call_session.orchestrator import TransferOrchestrator
from call_handoff.services.call_session.router import EventRouter
from call_handoff.services.telephony.client import CallControlClient


@lru_cache
def get_app_schema() -> AppSchema:
    """Get the per-call variable schema."""
    return AppSchema(settings.app_schema_path)


def get_call_control_client(request: Request) -> CallControlClient:
    """Get the call-control client created at startup."""
    return request.app.state.call_control


def get_session_manager() -> CallSessionManager:
    """Get call session manager."""
    return CallSessionManager()


def get_event_router(
    app_schema: AppSchema = Depends(get_app_schema),
    call_control: CallControlClient = Depends(get_call_control_client),
    session_manager: CallSessionManager = Depends(get_session_manager),
) -> EventRouter:
    """Get the event router for call callbacks."""
    return EventRouter(
        configurator=SessionConfigurator(app_schema),
        orchestrator=TransferOrchestrator(call_control, dial_music_url=settings.dial_music_url),
        session_manager=session_manager,
        call_control=call_control,
    )
