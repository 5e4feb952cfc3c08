"""
Pydantic models for Ticketflow
"""

from ticketflow.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    Category,
    UserRole,

    # Domain Models
    User,
    ModeratorCandidate,
    Comment,
    Satisfaction,
    Ticket,
    TicketCreate,
    AnalysisResult,

    # Events & Notifications
    TicketCreatedEvent,
    TicketCreatedNotification,
    TicketAssignedNotification,
    TicketAssignedFallbackNotification,
    TicketUpdatedNotification,
    NotificationRequest,
    NotificationOutcome,

    # Pipeline
    PipelineResult,
)
from ticketflow.models.graph_state import PipelineState, PipelineStage

__all__ = [
    # Enums
    "TicketStatus",
    "Priority",
    "Category",
    "UserRole",

    # Domain Models
    "User",
    "ModeratorCandidate",
    "Comment",
    "Satisfaction",
    "Ticket",
    "TicketCreate",
    "AnalysisResult",

    # Events & Notifications
    "TicketCreatedEvent",
    "TicketCreatedNotification",
    "TicketAssignedNotification",
    "TicketAssignedFallbackNotification",
    "TicketUpdatedNotification",
    "NotificationRequest",
    "NotificationOutcome",

    # Pipeline
    "PipelineResult",
    "PipelineState",
    "PipelineStage",
]
