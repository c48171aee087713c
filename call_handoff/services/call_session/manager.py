"""Call session manager."""
import asyncio
import logging
from typing import Dict, Optional

from call_handoff.services.call_session.models import CallSession

logger = logging.getLogger(__name__)

# Module-level session storage (persists across requests, one process only)
_sessions: Dict[str, CallSession] = {}
_locks: Dict[str, asyncio.Lock] = {}


class CallSessionManager:
    """Registry of live call sessions and their per-call locks."""

    def lock(self, call_sid: str) -> asyncio.Lock:
        """Lock serializing event handling for one call."""
        return _locks.setdefault(call_sid, asyncio.Lock())

    def discard_lock(self, call_sid: str) -> None:
        """Forget the lock of a call that has no session."""
        if call_sid not in _sessions:
            _locks.pop(call_sid, None)

    def add_session(self, session: CallSession) -> None:
        if session.call_sid in _sessions:
            logger.warning(
                f"[SESSION MANAGER] Replacing existing session - CallSid: {session.call_sid}"
            )
        _sessions[session.call_sid] = session

    def get_session(self, call_sid: str) -> Optional[CallSession]:
        return _sessions.get(call_sid)

    def remove_session(self, call_sid: str) -> Optional[CallSession]:
        """Drop a session and its lock."""
        _locks.pop(call_sid, None)
        return _sessions.pop(call_sid, None)

    def active_count(self) -> int:
        return len(_sessions)
