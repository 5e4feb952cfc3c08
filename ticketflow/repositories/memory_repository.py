"""
In-memory ticket and user store

Used when STORE_BACKEND=memory (local development) and by the test suite.
Stored objects are deep-copied on the way in and out, so callers never
mutate stored state without going through a repository method.
"""
import asyncio
import json
from copy import deepcopy
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from ticketflow.models.schemas import (
    ACTIVE_STATUSES,
    AnalysisResult,
    Ticket,
    TicketCreate,
    TicketStatus,
    User,
    UserRole,
    normalize_skills,
    utcnow,
)
from ticketflow.repositories.interfaces import format_ticket_number
from ticketflow.utils.errors import TicketNotFoundError
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryTicketRepository:
    """Dict-backed TicketStore"""

    def __init__(self):
        self._tickets: Dict[str, Ticket] = {}
        self._counters: Dict[int, int] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    async def next_ticket_number(self, year: int) -> str:
        """Reserve the next number for a year; serialized per year"""
        lock = self._locks.setdefault(year, asyncio.Lock())
        async with lock:
            sequence = self._counters.get(year, 0) + 1
            self._counters[year] = sequence
        return format_ticket_number(year, sequence)

    async def create_ticket(self, data: TicketCreate) -> Ticket:
        now = utcnow()
        ticket_number = await self.next_ticket_number(now.year)
        ticket = Ticket(
            id=str(uuid4()),
            ticket_number=ticket_number,
            created_at=now,
            updated_at=now,
            **data.model_dump()
        )
        self._tickets[ticket.id] = ticket.model_copy(deep=True)
        logger.info(f"Created ticket {ticket.ticket_number} ({ticket.id})")
        return ticket

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a fully-formed ticket (seeding and tests)"""
        self._tickets[ticket.id] = ticket.model_copy(deep=True)
        return ticket

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        ticket = self._tickets.get(ticket_id)
        return ticket.model_copy(deep=True) if ticket else None

    async def update_ticket_ai_fields(self, ticket_id: str, analysis: AnalysisResult) -> Ticket:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)

        ticket.apply_analysis(analysis)
        return ticket.model_copy(deep=True)

    async def assign_ticket(
        self,
        ticket_id: str,
        assignee_id: str,
        assigned_by: str,
        only_if_unassigned: bool = False
    ) -> Optional[Ticket]:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)

        if only_if_unassigned and (ticket.is_assigned or ticket.status != TicketStatus.OPEN):
            logger.info(f"Ticket {ticket_id} is no longer open and unassigned, skipping")
            return None

        ticket.assign_to(assignee_id, assigned_by)
        return ticket.model_copy(deep=True)

    async def save_ticket(self, ticket: Ticket, fields: Iterable[str]) -> Ticket:
        stored = self._tickets.get(ticket.id)
        if stored is None:
            raise TicketNotFoundError(ticket.id)

        for name in fields:
            setattr(stored, name, deepcopy(getattr(ticket, name)))
        return stored.model_copy(deep=True)

    def all_tickets(self) -> List[Ticket]:
        return [t.model_copy(deep=True) for t in self._tickets.values()]


class InMemoryUserRepository:
    """Dict-backed UserStore; workload is read from the ticket store"""

    def __init__(self, ticket_repo: InMemoryTicketRepository, users: Optional[List[User]] = None):
        self._ticket_repo = ticket_repo
        self._users: Dict[str, User] = {}
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: User) -> User:
        self._users[user.id] = user.model_copy(deep=True)
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_moderators_by_skills(self, skills: List[str]) -> List[User]:
        wanted = normalize_skills(skills)
        if not wanted:
            return []

        return [
            user.model_copy(deep=True)
            for user in self._users.values()
            if user.is_staff and user.is_active and user.skill_set() & wanted
        ]

    async def count_active_tickets(self, assignee_id: str) -> int:
        return sum(
            1 for ticket in self._ticket_repo.all_tickets()
            if ticket.assigned_to == assignee_id and ticket.status in ACTIVE_STATUSES
        )

    async def find_one_active_admin(self) -> Optional[User]:
        for user in self._users.values():
            if user.role == UserRole.ADMIN and user.is_active:
                return user.model_copy(deep=True)
        return None


def load_seed_users(path) -> List[User]:
    """
    Read users for the in-memory store from a JSON array file

    Args:
        path: File holding a list of user objects (id, name, email, role, skills)

    Returns:
        Validated users; empty when the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        logger.warning(f"Seed users file not found: {path}")
        return []

    with path.open(encoding="utf-8") as f:
        rows = json.load(f)

    users = [User(**row) for row in rows]
    logger.info(f"Loaded {len(users)} seed users from {path}")
    return users
