"""
User Repository for staff lookups on the users table

Provides the queries the assignment step needs (run in a worker thread,
since the Supabase client is synchronous):
- active moderators/admins whose skills intersect a required set
- live workload (open + in-progress tickets) per assignee
- any single active admin for fallback assignment
"""
import asyncio
from typing import List, Optional

from ticketflow.models.schemas import (
    ACTIVE_STATUSES,
    STAFF_ROLES,
    User,
    UserRole,
    normalize_skills,
)
from ticketflow.repositories.base_repository import BaseRepository
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository(BaseRepository):
    """Repository for users table operations"""

    def __init__(self, supabase_client=None):
        super().__init__(supabase_client)
        self.table_name = "users"
        self.tickets_table = "tickets"

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID, None if missing"""
        try:
            query = self.client.table(self.table_name)\
                .select("*")\
                .eq("id", user_id)
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error(f"get_user {user_id}", e)

        if not response.data:
            return None

        return User(**response.data[0])

    async def find_moderators_by_skills(self, skills: List[str]) -> List[User]:
        """
        Find active moderators/admins sharing at least one skill

        Skills are compared case-insensitively, so the filter runs here
        rather than as an array overlap in Postgres. Result order follows
        the query order, which the selector uses as its tie-breaker.

        Args:
            skills: Required skills from the analysis

        Returns:
            Matching staff users (empty if skills is empty)
        """
        wanted = normalize_skills(skills)
        if not wanted:
            return []

        try:
            query = self.client.table(self.table_name)\
                .select("*")\
                .in_("role", [role.value for role in STAFF_ROLES])\
                .eq("is_active", True)\
                .order("created_at")
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error("find_moderators_by_skills", e)

        users = [User(**row) for row in response.data]
        matches = [user for user in users if user.skill_set() & wanted]
        logger.debug(f"Found {len(matches)} staff matching skills {sorted(wanted)}")
        return matches

    async def count_active_tickets(self, assignee_id: str) -> int:
        """Count tickets assigned to a user that are still open or in progress"""
        try:
            query = self.client.table(self.tickets_table)\
                .select("id", count="exact")\
                .eq("assigned_to", assignee_id)\
                .in_("status", [status.value for status in ACTIVE_STATUSES])
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error(f"count_active_tickets {assignee_id}", e)

        return response.count or 0

    async def find_one_active_admin(self) -> Optional[User]:
        """Return any active admin, None if there is none"""
        try:
            query = self.client.table(self.table_name)\
                .select("*")\
                .eq("role", UserRole.ADMIN.value)\
                .eq("is_active", True)\
                .limit(1)
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            self._handle_error("find_one_active_admin", e)

        if not response.data:
            return None

        return User(**response.data[0])
