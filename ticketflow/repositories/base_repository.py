"""
Base Repository for Supabase-backed storage

Provides the shared client setup and the mapping of client failures onto
TransientStoreError, which the pipeline runner retries.
"""

from typing import NoReturn

from ticketflow.config import get_settings
from ticketflow.utils.errors import TransientStoreError
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class BaseRepository:
    """
    Base repository class.

    All Supabase repositories inherit from this class so that connection
    handling and error translation stay in one place.
    """

    def __init__(self, supabase_client=None):
        """
        Initialize repository with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
        """
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key or settings.supabase_key
            )
        else:
            self.client = supabase_client

    def _handle_error(self, operation: str, error: Exception) -> NoReturn:
        """
        Centralized error handling for repository operations.

        Args:
            operation: Description of failed operation
            error: Exception that occurred

        Raises:
            TransientStoreError: Always, chained to the original error
        """
        logger.error(f"Repository error during {operation}: {error}")
        raise TransientStoreError(f"{operation} failed: {error}") from error
