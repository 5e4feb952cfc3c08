"""
Repositories package for ticket and user storage

Provides:
- tickets table (TicketRepository)
- users table (UserRepository)
- in-memory equivalents (InMemoryTicketRepository, InMemoryUserRepository)
"""
from ticketflow.repositories.ticket_repository import TicketRepository
from ticketflow.repositories.user_repository import UserRepository
from ticketflow.repositories.memory_repository import (
    InMemoryTicketRepository,
    InMemoryUserRepository,
)
from ticketflow.repositories.interfaces import TicketStore, UserStore

__all__ = [
    "TicketRepository",
    "UserRepository",
    "InMemoryTicketRepository",
    "InMemoryUserRepository",
    "TicketStore",
    "UserStore",
]
