"""
Ticket Service - ticket lifecycle operations

Creates tickets (and emits the ticket/created event to the pipeline runner)
and applies staff/requester changes afterwards: status, manual assignment,
comments and satisfaction ratings.
"""
from typing import Optional

from pydantic import ValidationError

from ticketflow.agents.runner import PipelineRunner
from ticketflow.models.schemas import (
    COMMENT_FIELDS,
    Comment,
    Priority,
    SATISFACTION_FIELDS,
    STATUS_FIELDS,
    Satisfaction,
    Ticket,
    TicketAssignedNotification,
    TicketCreate,
    TicketCreatedEvent,
    TicketStatus,
    TicketUpdatedNotification,
    User,
    UserRole,
)
from ticketflow.repositories.interfaces import TicketStore, UserStore
from ticketflow.services.notification_dispatcher import NotificationDispatcher
from ticketflow.utils.errors import (
    PermissionDeniedError,
    TicketNotFoundError,
    TicketValidationError,
)
from ticketflow.utils.logger import get_logger
from ticketflow.utils.validators import sanitize_input, validate_email

logger = get_logger(__name__)


class TicketService:
    """Ticket lifecycle operations on top of the stores"""

    def __init__(
        self,
        ticket_repo: TicketStore,
        user_repo: UserStore,
        runner: PipelineRunner,
        dispatcher: NotificationDispatcher
    ):
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo
        self.runner = runner
        self.dispatcher = dispatcher

    async def _load(self, ticket_id: str) -> Ticket:
        ticket = await self.ticket_repo.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def _actor(self, user_id: str) -> User:
        user = await self.user_repo.get_user(user_id)
        if user is None or not user.is_active:
            raise PermissionDeniedError(f"Unknown or inactive user {user_id}")
        return user

    async def create_ticket(
        self,
        user_id: str,
        subject: str,
        description: str,
        category: str,
        priority: Optional[str] = None
    ) -> Ticket:
        """
        Create a ticket and hand it to the processing pipeline

        Args:
            user_id: Submitting user
            subject: Up to 200 characters
            description: Up to 5000 characters
            category: One of the fixed categories
            priority: low | medium | high (default medium)

        Returns:
            The stored ticket (AI fields are filled in asynchronously)
        """
        user = await self._actor(user_id)
        if not validate_email(user.email):
            raise TicketValidationError(f"User {user_id} has no valid email address")

        try:
            data = TicketCreate(
                subject=sanitize_input(subject or ""),
                description=sanitize_input(description or ""),
                category=category,
                priority=priority or Priority.MEDIUM,
                user_id=user.id,
            )
        except ValidationError as e:
            raise TicketValidationError(str(e)) from e

        ticket = await self.ticket_repo.create_ticket(data)

        self.runner.submit(TicketCreatedEvent(
            ticket_id=ticket.id,
            subject=ticket.subject,
            description=ticket.description,
            category=ticket.category.value,
            priority=ticket.priority.value,
            user_id=user.id,
            user_email=user.email,
            user_name=user.name,
        ))
        return ticket

    async def update_status(self, ticket_id: str, actor_id: str, status: str) -> Ticket:
        """
        Change ticket status and notify the requester

        Admins may update any ticket; moderators their own or unassigned ones.
        """
        actor = await self._actor(actor_id)
        ticket = await self._load(ticket_id)

        if not actor.is_staff:
            raise PermissionDeniedError("Only moderators and admins can update tickets")
        if actor.role == UserRole.MODERATOR and ticket.assigned_to not in (None, actor.id):
            raise PermissionDeniedError("Access denied")

        try:
            new_status = TicketStatus(status)
        except ValueError as e:
            raise TicketValidationError(f"Invalid status: {status}") from e

        ticket.set_status(new_status)
        ticket = await self.ticket_repo.save_ticket(ticket, STATUS_FIELDS)
        logger.info(f"Ticket {ticket.ticket_number} status -> {new_status.value} by {actor.name}")

        owner = await self.user_repo.get_user(ticket.user_id)
        if owner is not None:
            self.dispatcher.enqueue(TicketUpdatedNotification(
                recipient_email=owner.email,
                ticket_id=ticket.id,
                ticket_number=ticket.ticket_number,
                subject=ticket.subject,
                status=ticket.status,
                updated_by=actor.name,
            ))
        return ticket

    async def assign_ticket(self, ticket_id: str, actor_id: str, assignee_id: str) -> Ticket:
        """Manually (re)assign a ticket; response_time keeps its first value"""
        actor = await self._actor(actor_id)
        if not actor.is_staff:
            raise PermissionDeniedError("Only moderators and admins can assign tickets")

        assignee = await self.user_repo.get_user(assignee_id)
        if assignee is None or not assignee.is_staff:
            raise TicketValidationError("Invalid moderator")

        ticket = await self.ticket_repo.assign_ticket(ticket_id, assignee.id, actor.id)
        logger.info(f"Ticket {ticket.ticket_number} assigned to {assignee.name} by {actor.name}")

        self.dispatcher.enqueue(TicketAssignedNotification(
            recipient_id=assignee.id,
            recipient_email=assignee.email,
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            subject=ticket.subject,
            priority=ticket.priority,
        ))
        return ticket

    async def add_comment(
        self,
        ticket_id: str,
        actor_id: str,
        message: str,
        is_internal: bool = False
    ) -> Comment:
        """Append a comment; internal comments are staff-only"""
        actor = await self._actor(actor_id)
        ticket = await self._load(ticket_id)

        can_comment = (
            actor.role == UserRole.ADMIN
            or ticket.user_id == actor.id
            or (actor.role == UserRole.MODERATOR and ticket.assigned_to == actor.id)
        )
        if not can_comment:
            raise PermissionDeniedError("Access denied")

        try:
            comment = ticket.add_comment(
                actor.id,
                sanitize_input(message or ""),
                is_internal=bool(is_internal) and actor.is_staff
            )
        except ValidationError as e:
            raise TicketValidationError(str(e)) from e

        await self.ticket_repo.save_ticket(ticket, COMMENT_FIELDS)
        return comment

    async def add_satisfaction(
        self,
        ticket_id: str,
        actor_id: str,
        rating: int,
        feedback: Optional[str] = None
    ) -> Satisfaction:
        """Record the requester's rating on a resolved/closed ticket"""
        ticket = await self._load(ticket_id)
        satisfaction = ticket.add_satisfaction(actor_id, rating, feedback)
        await self.ticket_repo.save_ticket(ticket, SATISFACTION_FIELDS)
        logger.info(f"Ticket {ticket.ticket_number} rated {rating}")
        return satisfaction
