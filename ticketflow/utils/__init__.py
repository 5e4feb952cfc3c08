"""
Utility functions
"""
from ticketflow.utils.logger import setup_logger, get_logger
from ticketflow.utils.validators import (
    validate_ticket_number,
    validate_email,
    sanitize_input
)

__all__ = [
    "setup_logger",
    "get_logger",
    "validate_ticket_number",
    "validate_email",
    "sanitize_input",
]
