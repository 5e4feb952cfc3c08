"""
TicketService tests

Covers ticket creation through to background processing, and the staff
and requester operations that follow it.
"""
import json

import pytest
from unittest.mock import MagicMock

from ticketflow.dependencies import build_ticket_service
from ticketflow.models.schemas import Priority, TicketStatus, User, UserRole
from ticketflow.services.analysis_client import AnalysisClient
from ticketflow.services.ticket_service import TicketService
from ticketflow.utils.errors import (
    PermissionDeniedError,
    TicketNotFoundError,
    TicketValidationError,
)


@pytest.fixture
def service(ticket_repo, user_repo, dispatcher, billing_moderator, admin, analysis_payload):
    user_repo.add_user(billing_moderator)
    user_repo.add_user(admin)
    client = AnalysisClient(provider=lambda prompt: json.dumps(analysis_payload()), timeout=5.0)
    return build_ticket_service(ticket_repo, user_repo, analysis_client=client, dispatcher=dispatcher)


class TestCreateTicket:
    """create_ticket"""

    @pytest.mark.asyncio
    async def test_create_and_process(self, service, ticket_repo, email_sender, requester, billing_moderator):
        ticket = await service.create_ticket(
            requester.id, "Payment failed", "urgent, card declined", "Billing"
        )

        assert ticket.status == TicketStatus.OPEN
        assert ticket.priority == Priority.MEDIUM
        assert ticket.ticket_number.startswith("TK-")

        await service.runner.drain()

        stored = await ticket_repo.get_ticket(ticket.id)
        assert stored.assigned_to == billing_moderator.id
        assert stored.priority == Priority.HIGH
        assert sorted(email_sender.recipients()) == sorted([billing_moderator.email, requester.email])

    @pytest.mark.asyncio
    async def test_emits_event(self, ticket_repo, user_repo, dispatcher, requester):
        runner = MagicMock()
        service = TicketService(ticket_repo, user_repo, runner, dispatcher)

        ticket = await service.create_ticket(requester.id, "Login loop", "Keeps redirecting", "Account Problem", "low")

        event = runner.submit.call_args[0][0]
        assert event.ticket_id == ticket.id
        assert event.user_email == requester.email
        assert event.priority == "low"

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(PermissionDeniedError):
            await service.create_ticket("nobody", "Subject", "Description", "Billing")

    @pytest.mark.asyncio
    async def test_subject_too_long(self, service, requester):
        with pytest.raises(TicketValidationError):
            await service.create_ticket(requester.id, "x" * 201, "Description", "Billing")

    @pytest.mark.asyncio
    async def test_invalid_category(self, service, requester):
        with pytest.raises(TicketValidationError):
            await service.create_ticket(requester.id, "Subject", "Description", "Astrology")


class TestUpdateStatus:
    """update_status"""

    @pytest.mark.asyncio
    async def test_admin_resolves(self, service, dispatcher, email_sender, create_ticket, requester, admin):
        ticket = await create_ticket()

        updated = await service.update_status(ticket.id, admin.id, "resolved")
        await dispatcher.drain()

        assert updated.status == TicketStatus.RESOLVED
        assert updated.resolution_time is not None
        assert email_sender.sent[-1]["to"] == requester.email
        assert email_sender.sent[-1]["subject"] == f"Ticket Update: {ticket.ticket_number}"

    @pytest.mark.asyncio
    async def test_requester_cannot_update(self, service, create_ticket, requester):
        ticket = await create_ticket()
        with pytest.raises(PermissionDeniedError):
            await service.update_status(ticket.id, requester.id, "closed")

    @pytest.mark.asyncio
    async def test_moderator_limited_to_own_tickets(self, service, ticket_repo, user_repo, create_ticket, billing_moderator):
        other = User(id="mod-2", name="Other Mod", email="other@example.com", role=UserRole.MODERATOR)
        user_repo.add_user(other)
        ticket = await create_ticket()
        await ticket_repo.assign_ticket(ticket.id, other.id, "system")

        with pytest.raises(PermissionDeniedError):
            await service.update_status(ticket.id, billing_moderator.id, "resolved")

    @pytest.mark.asyncio
    async def test_invalid_status(self, service, create_ticket, admin):
        ticket = await create_ticket()
        with pytest.raises(TicketValidationError):
            await service.update_status(ticket.id, admin.id, "escalated")

    @pytest.mark.asyncio
    async def test_missing_ticket(self, service, admin):
        with pytest.raises(TicketNotFoundError):
            await service.update_status("missing", admin.id, "closed")


class TestManualAssignment:
    """assign_ticket"""

    @pytest.mark.asyncio
    async def test_reassign_keeps_response_time(
        self, service, ticket_repo, dispatcher, email_sender, create_ticket, admin, billing_moderator
    ):
        ticket = await create_ticket()
        first = await ticket_repo.assign_ticket(ticket.id, admin.id, "system")

        updated = await service.assign_ticket(ticket.id, admin.id, billing_moderator.id)
        await dispatcher.drain()

        assert updated.assigned_to == billing_moderator.id
        assert updated.assigned_by == admin.id
        assert updated.response_time == first.response_time
        assert email_sender.recipients() == [billing_moderator.email]

    @pytest.mark.asyncio
    async def test_assignee_must_be_staff(self, service, create_ticket, admin, requester):
        ticket = await create_ticket()
        with pytest.raises(TicketValidationError):
            await service.assign_ticket(ticket.id, admin.id, requester.id)


class TestCommentsAndSatisfaction:
    """add_comment / add_satisfaction"""

    @pytest.mark.asyncio
    async def test_requester_comment_is_never_internal(self, service, ticket_repo, create_ticket, requester):
        ticket = await create_ticket()

        comment = await service.add_comment(ticket.id, requester.id, "Any update?", is_internal=True)

        assert not comment.is_internal
        assert len((await ticket_repo.get_ticket(ticket.id)).comments) == 1

    @pytest.mark.asyncio
    async def test_unrelated_moderator_cannot_comment(self, service, create_ticket, billing_moderator):
        ticket = await create_ticket()
        with pytest.raises(PermissionDeniedError):
            await service.add_comment(ticket.id, billing_moderator.id, "Looking")

    @pytest.mark.asyncio
    async def test_empty_comment(self, service, create_ticket, requester):
        ticket = await create_ticket()
        with pytest.raises(TicketValidationError):
            await service.add_comment(ticket.id, requester.id, "   ")

    @pytest.mark.asyncio
    async def test_satisfaction_flow(self, service, ticket_repo, create_ticket, requester, admin):
        ticket = await create_ticket()
        await service.update_status(ticket.id, admin.id, "resolved")

        satisfaction = await service.add_satisfaction(ticket.id, requester.id, 5, "Great")

        assert satisfaction.rating == 5
        assert (await ticket_repo.get_ticket(ticket.id)).satisfaction.rating == 5

    @pytest.mark.asyncio
    async def test_satisfaction_by_other_user(self, service, create_ticket, admin):
        ticket = await create_ticket()
        await service.update_status(ticket.id, admin.id, "resolved")

        with pytest.raises(PermissionDeniedError):
            await service.add_satisfaction(ticket.id, admin.id, 5)
