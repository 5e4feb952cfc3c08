"""
Business Logic Services
"""
from .analysis_client import AnalysisClient
from .assignee_selector import select_assignee
from .email_sender import EmailSender
from .notification_dispatcher import NotificationDispatcher

__all__ = [
    "AnalysisClient",
    "select_assignee",
    "EmailSender",
    "NotificationDispatcher",
]
