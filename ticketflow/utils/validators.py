"""
Input validation utilities
"""
import re


def validate_ticket_number(ticket_number: str) -> bool:
    """
    Validate ticket number format

    Args:
        ticket_number: Ticket number to validate

    Returns:
        True if it looks like TK-<year>-<seq>
    """
    return re.match(r'^TK-\d{4}-\d{4,}$', ticket_number) is not None


def validate_email(email: str) -> bool:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def sanitize_input(text: str) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize

    Returns:
        Text without null bytes and surrounding whitespace
    """
    return text.replace('\x00', '').strip()
