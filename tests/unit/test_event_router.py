"""Unit tests for callback routing and per-call serialization."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from call_handoff.services.call_session import manager
from call_handoff.services.call_session.configurator import SessionConfigurator
from call_handoff.services.call_session.manager import CallSessionManager
from call_handoff.services.call_session.models import TransferState
from call_handoff.services.call_session.orchestrator import TransferOrchestrator
from call_handoff.services.call_session.router import EventRouter

BASE_URL = "https://agent.test.local"
SUMMARY = "Caller needs help resetting a router."


@pytest.fixture
def event_router(test_app_schema, mock_call_control):
    return EventRouter(
        configurator=SessionConfigurator(test_app_schema),
        orchestrator=TransferOrchestrator(mock_call_control),
        session_manager=CallSessionManager(),
        call_control=mock_call_control,
    )


class TestEventRouter:
    """Test EventRouter dispatch."""

    @pytest.mark.asyncio
    async def test_call_start_registers_session(self, event_router):
        verbs = await event_router.on_call_start("CA1", {}, BASE_URL)

        assert verbs[0] == {"verb": "answer"}
        session = event_router.session_manager.get_session("CA1")
        assert session is not None
        assert session.state == TransferState.IDLE

    @pytest.mark.asyncio
    async def test_failed_start_registers_nothing(self, event_router):
        verbs = await event_router.on_call_start("CA1", {"CALL_TRANSFER": "Sometimes"}, BASE_URL)

        assert verbs == [{"verb": "hangup"}]
        assert event_router.session_manager.get_session("CA1") is None

    @pytest.mark.asyncio
    async def test_full_warm_transfer(self, event_router, mock_call_control):
        await event_router.on_call_start("CA1", {}, BASE_URL)

        await event_router.on_tool_call(
            "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
        )
        confirm_verbs = await event_router.on_confirm("CA1")
        dial_verbs = await event_router.on_dial_outcome("CA1", {"dial_call_status": "completed"})
        await event_router.on_close("CA1", code=200, reason="OK")

        mock_call_control.redirect.assert_awaited_once()
        assert SUMMARY in confirm_verbs[1]["text"]
        assert dial_verbs[-1] == {"verb": "hangup"}
        assert event_router.session_manager.get_session("CA1") is None

    @pytest.mark.asyncio
    async def test_transfer_disabled_resolves_tool_with_failure(
        self, event_router, mock_call_control
    ):
        await event_router.on_call_start("CA1", {"CALL_TRANSFER": "None"}, BASE_URL)
        event_router.orchestrator.handle_tool_call = AsyncMock()

        await event_router.on_tool_call(
            "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
        )

        event_router.orchestrator.handle_tool_call.assert_not_awaited()
        mock_call_control.redirect.assert_not_awaited()
        mock_call_control.send_tool_output.assert_awaited_once()
        call_sid, tool_call_id, data = mock_call_control.send_tool_output.await_args.args
        assert call_sid == "CA1"
        assert tool_call_id == "tool-1"
        assert data == {
            "type": "client_tool_result",
            "invocation_id": "tool-1",
            "error_message": "Call transfer is not available on this call",
        }
        assert event_router.session_manager.get_session("CA1").state == TransferState.IDLE

    @pytest.mark.asyncio
    async def test_completion_failure(self, event_router):
        await event_router.on_call_start("CA1", {}, BASE_URL)

        verbs = await event_router.on_completion(
            "CA1",
            "server failure",
            {"code": "rate_limit_exceeded", "message": "try again in 12 seconds"},
        )

        assert verbs[0]["verb"] == "say"
        assert "12 seconds" in verbs[0]["text"]
        assert verbs[1] == {"verb": "hangup"}

    @pytest.mark.asyncio
    async def test_completion_continue(self, event_router):
        await event_router.on_call_start("CA1", {}, BASE_URL)

        assert await event_router.on_completion("CA1", "normal conversation end") == []

    @pytest.mark.asyncio
    async def test_unknown_call_is_ignored(self, event_router, mock_call_control):
        await event_router.on_event("CA-unknown", {"type": "llm_event"})
        await event_router.on_tool_call(
            "CA-unknown", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
        )

        assert await event_router.on_confirm("CA-unknown") == []
        assert await event_router.on_dial_outcome("CA-unknown") == []
        assert await event_router.on_completion("CA-unknown", "server error") == []
        await event_router.on_close("CA-unknown")
        mock_call_control.redirect.assert_not_awaited()
        mock_call_control.send_tool_output.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_events_after_close_issue_nothing(self, event_router, mock_call_control):
        await event_router.on_call_start("CA1", {}, BASE_URL)
        await event_router.on_error("CA1", "websocket dropped")

        await event_router.on_tool_call(
            "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
        )

        mock_call_control.redirect.assert_not_awaited()
        assert event_router.session_manager.get_session("CA1") is None

    @pytest.mark.asyncio
    async def test_transcripts_not_logged(self, event_router, caplog):
        await event_router.on_call_start("CA1", {}, BASE_URL)

        with caplog.at_level("INFO"):
            await event_router.on_event("CA1", {"type": "transcript", "text": "my card number is"})
            await event_router.on_event("CA1", {"type": "conversation_started"})

        assert "my card number is" not in caplog.text
        assert "conversation_started" in caplog.text


class TestEventOrdering:
    """Test per-call serialization and cross-call concurrency."""

    @pytest.mark.asyncio
    async def test_concurrent_tool_calls_issue_one_redirect(
        self, event_router, mock_call_control
    ):
        await event_router.on_call_start("CA1", {}, BASE_URL)

        async def slow_redirect(call_sid, verbs):
            await asyncio.sleep(0.05)

        mock_call_control.redirect.side_effect = slow_redirect

        await asyncio.gather(
            event_router.on_tool_call(
                "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
            ),
            event_router.on_tool_call(
                "CA1", "call-transfer", "tool-2", {"conversation_summary": "other"}
            ),
        )

        assert mock_call_control.redirect.await_count == 1
        results = [c.args[2] for c in mock_call_control.send_tool_output.await_args_list]
        assert results[0]["invocation_id"] == "tool-1"
        assert "result" in results[0]
        assert results[1]["invocation_id"] == "tool-2"
        assert results[1]["error_message"] == "Transfer already in progress"
        assert event_router.session_manager.get_session("CA1").conversation_summary == SUMMARY

    @pytest.mark.asyncio
    async def test_handlers_for_one_call_do_not_overlap(self, event_router, mock_call_control):
        await event_router.on_call_start("CA1", {}, BASE_URL)
        trace = []

        async def slow_redirect(call_sid, verbs):
            trace.append("redirect-start")
            await asyncio.sleep(0.05)
            trace.append("redirect-end")

        mock_call_control.redirect.side_effect = slow_redirect

        async def confirm():
            # Arrives while the tool handler is still issuing the redirect
            await asyncio.sleep(0.01)
            verbs = await event_router.on_confirm("CA1")
            trace.append("confirm")
            return verbs

        _, confirm_verbs = await asyncio.gather(
            event_router.on_tool_call(
                "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
            ),
            confirm(),
        )

        assert trace == ["redirect-start", "redirect-end", "confirm"]
        assert SUMMARY in confirm_verbs[1]["text"]

    @pytest.mark.asyncio
    async def test_different_calls_run_concurrently(self, event_router, mock_call_control):
        await event_router.on_call_start("CA1", {}, BASE_URL)
        await event_router.on_call_start("CA2", {}, BASE_URL)
        second_started = asyncio.Event()

        async def redirect(call_sid, verbs):
            if call_sid == "CA1":
                # Only completes if CA2's handler runs while CA1's is in flight
                await asyncio.wait_for(second_started.wait(), timeout=1)
            else:
                second_started.set()

        mock_call_control.redirect.side_effect = redirect

        await asyncio.gather(
            event_router.on_tool_call(
                "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
            ),
            event_router.on_tool_call(
                "CA2", "call-transfer", "tool-2", {"conversation_summary": SUMMARY}
            ),
        )

        manager = event_router.session_manager
        assert manager.get_session("CA1").state == TransferState.TRANSFERRING
        assert manager.get_session("CA2").state == TransferState.TRANSFERRING


class TestLockCleanup:
    """Test that callbacks for finished or unknown calls leave no locks behind."""

    @pytest.mark.asyncio
    async def test_late_callbacks_after_close(self, event_router):
        await event_router.on_call_start("CA1", {}, BASE_URL)
        await event_router.on_close("CA1", code=200, reason="OK")

        await event_router.on_completion("CA1", "server failure", {"code": "internal_error"})
        await event_router.on_dial_outcome("CA1", {"dial_call_status": "completed"})
        await event_router.on_confirm("CA1")
        await event_router.on_tool_call(
            "CA1", "call-transfer", "tool-1", {"conversation_summary": SUMMARY}
        )

        assert manager._locks == {}
        assert manager._sessions == {}

    @pytest.mark.asyncio
    async def test_events_for_unknown_calls(self, event_router):
        for i in range(100):
            await event_router.on_event(f"late-{i}", {"type": "llm_event"})

        assert manager._locks == {}

    @pytest.mark.asyncio
    async def test_live_call_keeps_its_lock(self, event_router):
        await event_router.on_call_start("CA1", {}, BASE_URL)
        await event_router.on_event("CA1", {"type": "llm_event"})
        await event_router.on_event("CA-stale", {"type": "llm_event"})

        assert list(manager._locks) == ["CA1"]
