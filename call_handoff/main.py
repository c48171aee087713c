"""Main FastAPI application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager

from call_handoff.core.config import settings
from call_handoff.core.logging import setup_logging
from call_handoff.api import health, webhooks
from call_handoff.services.telephony.client import CallControlClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    app.state.call_control = CallControlClient(
        api_url=settings.call_control_api_url,
        account_sid=settings.call_control_account_sid,
        api_key=settings.call_control_api_key,
        timeout=settings.call_control_timeout,
    )
    yield
    # Shutdown
    await app.state.call_control.close()


app = FastAPI(
    title="Call Handoff Agent",
    description="LLM voice agent with warm and cold transfer to a human",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(webhooks.call.router, prefix="/webhooks", tags=["webhooks"])


def run() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    uvicorn.run("call_handoff.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
