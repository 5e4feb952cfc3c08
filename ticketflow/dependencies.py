"""
Service wiring for the API layer

Builds one set of repositories, pipeline, runner and dispatcher per process,
backed by Supabase or the in-memory store depending on STORE_BACKEND.
"""
from functools import lru_cache

from ticketflow.agents.pipeline import TicketPipeline
from ticketflow.agents.runner import PipelineRunner
from ticketflow.config import get_settings
from ticketflow.repositories.memory_repository import (
    InMemoryTicketRepository,
    InMemoryUserRepository,
    load_seed_users,
)
from ticketflow.repositories.ticket_repository import TicketRepository
from ticketflow.repositories.user_repository import UserRepository
from ticketflow.services.analysis_client import AnalysisClient
from ticketflow.services.notification_dispatcher import NotificationDispatcher
from ticketflow.services.ticket_service import TicketService
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)


def build_ticket_service(ticket_repo, user_repo, analysis_client=None, dispatcher=None) -> TicketService:
    """Assemble the service graph around the given stores"""
    dispatcher = dispatcher or NotificationDispatcher()
    pipeline = TicketPipeline(
        analysis_client=analysis_client or AnalysisClient(),
        ticket_repo=ticket_repo,
        user_repo=user_repo,
        dispatcher=dispatcher,
    )
    runner = PipelineRunner(pipeline)
    return TicketService(ticket_repo, user_repo, runner, dispatcher)


@lru_cache()
def get_ticket_service() -> TicketService:
    """Process-wide TicketService (FastAPI dependency)"""
    settings = get_settings()

    if settings.use_supabase:
        ticket_repo = TicketRepository()
        user_repo = UserRepository()
    else:
        ticket_repo = InMemoryTicketRepository()
        seed = load_seed_users(settings.seed_users_file) if settings.seed_users_file else []
        user_repo = InMemoryUserRepository(ticket_repo, users=seed)

    logger.info(f"Ticket service using '{settings.store_backend}' store")
    return build_ticket_service(ticket_repo, user_repo)
