"""
Storage capabilities consumed by the pipeline and the ticket service.

Both the Supabase repositories and the in-memory store satisfy these.
"""
from typing import Iterable, List, Optional, Protocol

from ticketflow.models.schemas import AnalysisResult, Ticket, TicketCreate, User


class TicketStore(Protocol):
    async def create_ticket(self, data: TicketCreate) -> Ticket: ...

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]: ...

    async def update_ticket_ai_fields(self, ticket_id: str, analysis: AnalysisResult) -> Ticket: ...

    async def assign_ticket(
        self,
        ticket_id: str,
        assignee_id: str,
        assigned_by: str,
        only_if_unassigned: bool = False,
    ) -> Optional[Ticket]: ...

    async def save_ticket(self, ticket: Ticket, fields: Iterable[str]) -> Ticket: ...


class UserStore(Protocol):
    async def get_user(self, user_id: str) -> Optional[User]: ...

    async def find_moderators_by_skills(self, skills: List[str]) -> List[User]: ...

    async def count_active_tickets(self, assignee_id: str) -> int: ...

    async def find_one_active_admin(self) -> Optional[User]: ...


def format_ticket_number(year: int, sequence: int) -> str:
    """TK-<year>-<4 digit sequence>"""
    return f"TK-{year}-{sequence:04d}"
