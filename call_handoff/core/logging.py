"""Logging configuration."""
import logging
import sys

from call_handoff.core.config import settings


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Set third-party loggers to WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class CallLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every record with the call sid it belongs to."""

    def process(self, msg, kwargs):
        return f"[call_sid={self.extra['call_sid']}] {msg}", kwargs


def get_call_logger(call_sid: str, name: str = "call_handoff.call") -> CallLoggerAdapter:
    """Get a logger scoped to a single call."""
    return CallLoggerAdapter(logging.getLogger(name), {"call_sid": call_sid})
