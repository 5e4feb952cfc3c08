"""
Custom exception classes.
"""


class TicketflowError(Exception):
    """Base exception for ticket processing."""
    pass


class TicketNotFoundError(TicketflowError):
    """Raised when a referenced ticket does not exist."""

    def __init__(self, ticket_id: str):
        super().__init__(f"Ticket {ticket_id} not found")
        self.ticket_id = ticket_id


class TransientStoreError(TicketflowError):
    """Raised when the backing store is temporarily unavailable."""
    pass


class TicketValidationError(TicketflowError):
    """Raised when ticket input fails validation."""
    pass


class PermissionDeniedError(TicketflowError):
    """Raised when an actor may not perform a ticket operation."""
    pass
