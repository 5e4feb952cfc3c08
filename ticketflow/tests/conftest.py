"""
pytest configuration and shared fixtures

Everything here runs against the in-memory store and a recording email
sender, so no external service is needed.
"""
import json
from datetime import datetime, timezone

import pytest

from ticketflow.agents.pipeline import TicketPipeline
from ticketflow.models.schemas import (
    Ticket,
    TicketCreate,
    TicketCreatedEvent,
    User,
    UserRole,
)
from ticketflow.repositories.memory_repository import (
    InMemoryTicketRepository,
    InMemoryUserRepository,
)
from ticketflow.services.analysis_client import AnalysisClient
from ticketflow.services.notification_dispatcher import NotificationDispatcher


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "requires_supabase: mark test as requiring Supabase service"
    )


class FakeEmailSender:
    """Records sent emails instead of talking to SMTP"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_email(self, to: str, subject: str, text: str) -> str:
        if self.fail:
            raise RuntimeError("SMTP connection refused")
        self.sent.append({"to": to, "subject": subject, "text": text})
        return f"<msg-{len(self.sent)}@test>"

    def recipients(self):
        return [mail["to"] for mail in self.sent]


def json_provider(payload):
    """Analysis provider that always answers with the given JSON object"""
    def _provider(prompt: str) -> str:
        return json.dumps(payload)
    return _provider


def _analysis_payload(
    category="Billing",
    priority="high",
    skills=("billing",),
    tags=("payment",),
    summary="Customer card is declined at checkout."
):
    return {
        "aiCategory": category,
        "aiPriority": priority,
        "aiSummary": summary,
        "suggestedTags": list(tags),
        "requiredSkills": list(skills),
    }


def _make_ticket(**overrides) -> Ticket:
    data = {
        "id": "ticket-1",
        "ticket_number": "TK-2025-0001",
        "subject": "Payment failed",
        "description": "urgent, card declined",
        "category": "Billing",
        "user_id": "user-1",
        "created_at": datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return Ticket(**data)


async def _create_ticket(ticket_repo, requester: User, **overrides) -> Ticket:
    data = {
        "subject": "Payment failed",
        "description": "urgent, card declined",
        "category": "Billing",
        "user_id": requester.id,
    }
    data.update(overrides)
    return await ticket_repo.create_ticket(TicketCreate(**data))


def _event_for(ticket: Ticket, requester: User) -> TicketCreatedEvent:
    return TicketCreatedEvent(
        ticket_id=ticket.id,
        subject=ticket.subject,
        description=ticket.description,
        category=ticket.category.value,
        priority=ticket.priority.value,
        user_id=requester.id,
        user_email=requester.email,
        user_name=requester.name,
    )


@pytest.fixture
def requester():
    return User(id="user-1", name="Jamie Requester", email="jamie@example.com")


@pytest.fixture
def billing_moderator():
    return User(
        id="mod-billing",
        name="Alex Billing",
        email="alex@example.com",
        role=UserRole.MODERATOR,
        skills=["Billing", "Refunds"],
    )


@pytest.fixture
def admin():
    return User(id="admin-1", name="Sam Admin", email="sam@example.com", role=UserRole.ADMIN)


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def dispatcher(email_sender):
    return NotificationDispatcher(email_sender=email_sender)


@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def user_repo(ticket_repo, requester):
    return InMemoryUserRepository(ticket_repo, users=[requester])


@pytest.fixture
def make_pipeline(ticket_repo, user_repo, dispatcher):
    """Factory: pipeline whose analysis provider returns the given payload"""
    def _make(payload=None, provider=None):
        client = AnalysisClient(
            provider=provider or json_provider(payload or _analysis_payload()),
            timeout=5.0
        )
        return TicketPipeline(client, ticket_repo, user_repo, dispatcher)
    return _make


@pytest.fixture
def failing_email_sender():
    return FakeEmailSender(fail=True)


@pytest.fixture
def analysis_payload():
    """Factory for provider JSON payloads"""
    return _analysis_payload


@pytest.fixture
def make_ticket():
    """Factory for standalone Ticket models"""
    return _make_ticket


@pytest.fixture
def create_ticket(ticket_repo, requester):
    """Async factory: store a ticket submitted by the requester"""
    async def _create(**overrides) -> Ticket:
        return await _create_ticket(ticket_repo, requester, **overrides)
    return _create


@pytest.fixture
def event_for(requester):
    """Build the ticket/created event for a stored ticket"""
    def _event(ticket: Ticket) -> TicketCreatedEvent:
        return _event_for(ticket, requester)
    return _event
