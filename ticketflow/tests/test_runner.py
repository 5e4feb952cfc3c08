"""
Unit tests for PipelineRunner

Tests:
- Retry with exponential backoff on transient store failures
- No retry for missing tickets
- Background submission and draining
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from ticketflow.agents.runner import PipelineRunner
from ticketflow.models.schemas import AnalysisResult, PipelineResult, TicketCreatedEvent
from ticketflow.utils.errors import TicketNotFoundError, TransientStoreError


@pytest.fixture
def event():
    return TicketCreatedEvent(
        ticket_id="ticket-1",
        subject="Payment failed",
        description="card declined",
        user_id="user-1",
        user_email="jamie@example.com",
    )


@pytest.fixture
def result():
    return PipelineResult(ticket_id="ticket-1", analysis=AnalysisResult(summary="Card declined"))


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.run = AsyncMock()
    pipeline.dispatcher.drain = AsyncMock(return_value=[])
    return pipeline


class TestRetry:
    """run() retry policy"""

    @pytest.mark.asyncio
    async def test_success_first_try(self, pipeline, event, result):
        pipeline.run.return_value = result
        runner = PipelineRunner(pipeline, max_attempts=3, base_delay=1.0)

        assert await runner.run(event) is result
        pipeline.run.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_retries_transient_errors_with_backoff(self, pipeline, event, result):
        pipeline.run.side_effect = [
            TransientStoreError("db down"),
            TransientStoreError("db down"),
            result,
        ]
        runner = PipelineRunner(pipeline, max_attempts=3, base_delay=1.0)

        with patch("ticketflow.agents.runner.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await runner.run(event) is result

        assert pipeline.run.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, pipeline, event):
        pipeline.run.side_effect = TransientStoreError("db down")
        runner = PipelineRunner(pipeline, max_attempts=2, base_delay=0.5)

        with patch("ticketflow.agents.runner.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(TransientStoreError):
                await runner.run(event)

        assert pipeline.run.await_count == 2
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_missing_ticket_not_retried(self, pipeline, event):
        pipeline.run.side_effect = TicketNotFoundError("ticket-1")
        runner = PipelineRunner(pipeline, max_attempts=3, base_delay=1.0)

        with patch("ticketflow.agents.runner.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(TicketNotFoundError):
                await runner.run(event)

        pipeline.run.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_errors_not_retried(self, pipeline, event):
        pipeline.run.side_effect = RuntimeError("bug")
        runner = PipelineRunner(pipeline, max_attempts=3, base_delay=1.0)

        with pytest.raises(RuntimeError):
            await runner.run(event)

        pipeline.run.assert_awaited_once()

    def test_at_least_one_attempt(self, pipeline):
        assert PipelineRunner(pipeline, max_attempts=0).max_attempts >= 1


class TestBackgroundRuns:
    """submit() / drain()"""

    @pytest.mark.asyncio
    async def test_submit_and_drain(self, pipeline, event, result):
        pipeline.run.return_value = result
        runner = PipelineRunner(pipeline, max_attempts=1)

        task = runner.submit(event)
        assert runner.pending == 1

        await runner.drain()

        assert task.result() is result
        pipeline.dispatcher.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_background_run_is_contained(self, pipeline, event):
        pipeline.run.side_effect = TicketNotFoundError("ticket-1")
        runner = PipelineRunner(pipeline, max_attempts=1)

        task = runner.submit(event)
        await runner.drain()

        assert isinstance(task.exception(), TicketNotFoundError)
