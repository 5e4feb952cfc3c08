"""
Pipeline runner - durable execution of ticket/created events

Retries a whole pipeline run on transient store failures with exponential
backoff. A missing ticket is fatal and is never retried.
"""
import asyncio
from typing import Optional, Set

from ticketflow.agents.pipeline import TicketPipeline
from ticketflow.config import get_settings
from ticketflow.models.schemas import PipelineResult, TicketCreatedEvent
from ticketflow.utils.errors import TicketNotFoundError, TransientStoreError
from ticketflow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class PipelineRunner:
    """
    Runs pipelines with retry and tracks background runs

    Args:
        pipeline: TicketPipeline to execute
        max_attempts: Total attempts per event (including the first)
        base_delay: Backoff base in seconds; attempt n waits base * 2**n
    """

    def __init__(
        self,
        pipeline: TicketPipeline,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None
    ):
        self.pipeline = pipeline
        self.max_attempts = max(1, max_attempts or settings.pipeline_max_attempts)
        self.base_delay = base_delay if base_delay is not None else settings.pipeline_retry_base_seconds
        self._pending: Set[asyncio.Task] = set()

    async def run(self, event: TicketCreatedEvent) -> PipelineResult:
        """
        Execute a pipeline run, retrying transient failures

        Raises:
            TicketNotFoundError: Immediately, without retry
            TransientStoreError: When every attempt failed
        """
        for attempt in range(self.max_attempts):
            try:
                return await self.pipeline.run(event)

            except TicketNotFoundError as e:
                logger.error(f"Pipeline aborted for ticket {event.ticket_id}: {e}")
                raise

            except TransientStoreError as e:
                if attempt < self.max_attempts - 1:
                    wait_time = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Pipeline run failed (attempt {attempt + 1}/{self.max_attempts}), "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                    continue

                logger.error(f"Pipeline run for ticket {event.ticket_id} failed after {self.max_attempts} attempts: {e}")
                raise

    def submit(self, event: TicketCreatedEvent) -> asyncio.Task:
        """Start a run in the background (ticket/created event sink)"""
        task = asyncio.create_task(self.run(event))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        logger.info(f"Queued pipeline run for ticket {event.ticket_id}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background pipeline run failed: {error}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for background runs (and their notifications) to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self.pipeline.dispatcher.drain()
