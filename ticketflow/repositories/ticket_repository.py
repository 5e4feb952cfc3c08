"""
Ticket Repository for operations on the tickets table

Features:
- Ticket creation with per-year numbering (next_ticket_number RPC)
- AI field updates from the processing pipeline
- Conditional assignment (only while still open and unassigned)
- Partial saves for status, comments and satisfaction

The Supabase client is synchronous; every query runs in a worker thread
so the event loop stays free for other pipeline runs.
"""
import asyncio
from typing import Optional, Dict, Any, Iterable

from ticketflow.models.schemas import AnalysisResult, Ticket, TicketCreate, TicketStatus, utcnow
from ticketflow.repositories.base_repository import BaseRepository
from ticketflow.repositories.interfaces import format_ticket_number
from ticketflow.utils.errors import TicketNotFoundError
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)

AI_FIELDS = {"ai_category", "ai_priority", "ai_summary", "tags", "priority", "updated_at"}
ASSIGNMENT_FIELDS = {
    "assigned_to", "assigned_at", "assigned_by", "response_time",
    "status", "resolved_at", "resolution_time", "closed_at", "updated_at",
}


class TicketRepository(BaseRepository):
    """Repository for tickets table operations"""

    def __init__(self, supabase_client=None):
        super().__init__(supabase_client)
        self.table_name = "tickets"
        logger.info(f"TicketRepository initialized for table: {self.table_name}")

    async def next_ticket_number(self, year: int) -> str:
        """
        Reserve the next ticket number for a year.

        The next_ticket_number(p_year) Postgres function upserts and
        increments a per-year counter row in a single statement, so
        concurrent creations never receive the same sequence.
        """
        try:
            response = await asyncio.to_thread(
                self.client.rpc('next_ticket_number', {'p_year': year}).execute
            )
        except Exception as e:
            self._handle_error("next_ticket_number", e)

        return format_ticket_number(year, int(response.data))

    async def create_ticket(self, data: TicketCreate) -> Ticket:
        """
        Create a new ticket

        Args:
            data: Validated ticket input

        Returns:
            Created Ticket
        """
        now = utcnow()
        ticket_number = await self.next_ticket_number(now.year)

        row = data.model_dump(mode="json")
        row.update({
            "ticket_number": ticket_number,
            "status": "open",
            "tags": [],
            "comments": [],
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        })

        try:
            response = await asyncio.to_thread(
                self.client.table(self.table_name).insert(row).execute
            )
        except Exception as e:
            self._handle_error("create_ticket", e)

        if not response.data:
            raise ValueError("Failed to create ticket")

        ticket = Ticket(**response.data[0])
        logger.info(f"Created ticket {ticket.ticket_number} ({ticket.id})")
        return ticket

    async def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """
        Get ticket by ID

        Returns:
            Ticket if found, None otherwise
        """
        try:
            query = self.client.table(self.table_name)\
                .select("*")\
                .eq("id", ticket_id)
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error(f"get_ticket {ticket_id}", e)

        if not response.data:
            return None

        return Ticket(**response.data[0])

    async def update_ticket_ai_fields(self, ticket_id: str, analysis: AnalysisResult) -> Ticket:
        """
        Persist AI analysis onto a ticket (priority escalation included)

        Raises:
            TicketNotFoundError: If the ticket does not exist
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)

        ticket.apply_analysis(analysis)
        updated = await self._update(ticket_id, self._dump(ticket, AI_FIELDS))
        if updated is None:
            raise TicketNotFoundError(ticket_id)

        logger.info(f"Updated AI fields for ticket {ticket_id}")
        return updated

    async def assign_ticket(
        self,
        ticket_id: str,
        assignee_id: str,
        assigned_by: str,
        only_if_unassigned: bool = False
    ) -> Optional[Ticket]:
        """
        Assign a ticket and move it to in-progress

        Args:
            ticket_id: Ticket to assign
            assignee_id: Moderator/admin user ID
            assigned_by: Actor ID, or "system" for the pipeline
            only_if_unassigned: Skip (return None) unless the ticket is still
                open with no assignee; enforced in the UPDATE filter as well

        Returns:
            Updated Ticket, or None when the conditional assignment was skipped

        Raises:
            TicketNotFoundError: If the ticket does not exist
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)

        if only_if_unassigned and (ticket.is_assigned or ticket.status != TicketStatus.OPEN):
            logger.info(f"Ticket {ticket_id} is no longer open and unassigned, skipping")
            return None

        ticket.assign_to(assignee_id, assigned_by)
        updated = await self._update(
            ticket_id,
            self._dump(ticket, ASSIGNMENT_FIELDS),
            only_if_unassigned=only_if_unassigned
        )

        if updated is None:
            logger.info(f"Ticket {ticket_id} was assigned concurrently, skipping")
            return None

        logger.info(f"Assigned ticket {ticket_id} to {assignee_id} (by {assigned_by})")
        return updated

    async def save_ticket(self, ticket: Ticket, fields: Iterable[str]) -> Ticket:
        """
        Persist the given fields of a ticket; other columns are left alone

        Raises:
            TicketNotFoundError: If the ticket does not exist
        """
        updated = await self._update(ticket.id, self._dump(ticket, set(fields)))
        if updated is None:
            raise TicketNotFoundError(ticket.id)
        return updated

    async def _update(
        self,
        ticket_id: str,
        updates: Dict[str, Any],
        only_if_unassigned: bool = False
    ) -> Optional[Ticket]:
        try:
            query = self.client.table(self.table_name)\
                .update(updates)\
                .eq("id", ticket_id)

            if only_if_unassigned:
                query = query.is_("assigned_to", "null")\
                    .eq("status", TicketStatus.OPEN.value)

            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error(f"update ticket {ticket_id}", e)

        if not response.data:
            return None

        return Ticket(**response.data[0])

    @staticmethod
    def _dump(ticket: Ticket, fields: set) -> Dict[str, Any]:
        return ticket.model_dump(mode="json", include=fields)
