"""
Notification Dispatcher

Accepts typed notification requests and hands them to the email sender.
Delivery failures are logged and reported as a failed NotificationOutcome,
never raised and never retried, so an undeliverable message cannot hold up
ticket processing.
"""
import asyncio
from collections import deque
from typing import Callable, Deque, Dict, List, Set, Tuple

from ticketflow.models.schemas import NotificationOutcome, NotificationRequest
from ticketflow.services.email_sender import (
    EmailSender,
    render_ticket_assigned,
    render_ticket_assigned_fallback,
    render_ticket_created,
    render_ticket_updated,
)
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)

# Outcomes kept for drain(); the oldest are dropped beyond this
MAX_UNDRAINED_OUTCOMES = 1000

TEMPLATE_RENDERERS: Dict[str, Callable[..., Tuple[str, str]]] = {
    "ticket_created": render_ticket_created,
    "ticket_assigned": render_ticket_assigned,
    "ticket_assigned_fallback": render_ticket_assigned_fallback,
    "ticket_updated": render_ticket_updated,
}


class NotificationDispatcher:
    """
    Fire-and-forget notification delivery

    Args:
        email_sender: Object with `async send_email(to, subject, text) -> message_id`
    """

    def __init__(self, email_sender=None):
        self.email_sender = email_sender or EmailSender()
        self._pending: Set[asyncio.Task] = set()
        self._finished: Deque[NotificationOutcome] = deque(maxlen=MAX_UNDRAINED_OUTCOMES)

    async def send(self, request: NotificationRequest) -> NotificationOutcome:
        """
        Deliver one notification

        Returns:
            NotificationOutcome; failures are captured, not raised
        """
        try:
            renderer = TEMPLATE_RENDERERS.get(request.type)
            if renderer is None:
                raise ValueError(f"Unknown notification type: {request.type}")

            subject, text = renderer(request)
            message_id = await self.email_sender.send_email(request.recipient_email, subject, text)

            logger.info(f"Notification sent successfully: {request.type}")
            outcome = NotificationOutcome(success=True, type=request.type, message_id=message_id)

        except Exception as e:
            logger.error(f"Failed to send notification: {request.type}: {e}")
            outcome = NotificationOutcome(success=False, type=request.type, error=str(e))

        return outcome

    def enqueue(self, request: NotificationRequest) -> asyncio.Task:
        """
        Schedule delivery in the background and return immediately

        Must be called from within a running event loop.
        """
        task = asyncio.create_task(self._deliver(request))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug(f"Enqueued notification {request.type} for {request.recipient_email}")
        return task

    async def _deliver(self, request: NotificationRequest) -> NotificationOutcome:
        outcome = await self.send(request)
        self._finished.append(outcome)
        return outcome

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> List[NotificationOutcome]:
        """
        Wait for every enqueued notification to finish

        Returns:
            Outcomes of all sends enqueued since the last drain, including
            the ones that completed before drain was called
        """
        if self._pending:
            await asyncio.gather(*list(self._pending))

        outcomes = list(self._finished)
        self._finished.clear()
        return outcomes
