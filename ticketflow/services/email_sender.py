"""
Email Sender - SMTP delivery of ticket notifications

Renders the plain-text templates for each notification type and delivers
them over SMTP. smtplib is blocking, so delivery runs in a worker thread.
"""
import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Tuple

from ticketflow.config import get_settings
from ticketflow.models.schemas import (
    TicketAssignedFallbackNotification,
    TicketAssignedNotification,
    TicketCreatedNotification,
    TicketUpdatedNotification,
)
from ticketflow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


def ticket_link(ticket_number: str) -> str:
    return f"{settings.frontend_url}/ticket/{ticket_number}"


def render_ticket_created(n: TicketCreatedNotification) -> Tuple[str, str]:
    subject = f"Ticket Created: {n.ticket_number}"
    text = f"""Ticket Created: {n.ticket_number}

Hello {n.user_name},

Your support ticket has been successfully created and is being processed by our AI system.

Ticket Details:
- Ticket Number: {n.ticket_number}
- Subject: {n.subject}
- Estimated Response Time: {n.estimated_response}

Our AI has automatically categorized your ticket, assigned priority, and matched you with the best available expert.

You'll receive an email notification when a team member responds to your ticket.

View your ticket: {ticket_link(n.ticket_number)}

Thank you for choosing AI Support!
"""
    return subject, text


def render_ticket_assigned(n: TicketAssignedNotification) -> Tuple[str, str]:
    return _assignment_email(n.ticket_number, n.subject, n.priority.value)


def render_ticket_assigned_fallback(n: TicketAssignedFallbackNotification) -> Tuple[str, str]:
    return _assignment_email(
        n.ticket_number,
        f"{n.subject} (Fallback Assignment - {n.reason})",
        n.priority.value
    )


def _assignment_email(ticket_number: str, ticket_subject: str, priority: str) -> Tuple[str, str]:
    subject = f"New Ticket Assignment: {ticket_number}"
    text = f"""New Ticket Assignment: {ticket_number}

You have been assigned a new support ticket!

Ticket Details:
- Ticket Number: {ticket_number}
- Subject: {ticket_subject}
- Priority: {priority.upper()}

This ticket was automatically assigned to you based on your skills and current workload.

View and respond: {ticket_link(ticket_number)}

AI Support System - Intelligent Ticket Management
"""
    return subject, text


def render_ticket_updated(n: TicketUpdatedNotification) -> Tuple[str, str]:
    subject = f"Ticket Update: {n.ticket_number}"
    text = f"""Ticket Update: {n.ticket_number}

Your support ticket has been updated!

Ticket Details:
- Ticket Number: {n.ticket_number}
- Subject: {n.subject}
- New Status: {n.status.value.upper()}
- Updated By: {n.updated_by}

View ticket: {ticket_link(n.ticket_number)}

AI Support System - Intelligent Ticket Management
"""
    return subject, text


class EmailSender:
    """
    SMTP email delivery
    """

    def __init__(self):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.sender = settings.email_from
        self.timeout = 30.0

    def _deliver(self, message: EmailMessage) -> None:
        if not self.host:
            raise RuntimeError("SMTP_HOST is not configured")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_email(self, to: str, subject: str, text: str) -> str:
        """
        Send a plain-text email

        Args:
            to: Recipient address
            subject: Subject line
            text: Body

        Returns:
            Message-ID of the sent message

        Raises:
            Exception: Any SMTP/configuration failure
        """
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(text)

        try:
            await asyncio.to_thread(self._deliver, message)
        except Exception as e:
            logger.error(f"Email sending failed to {to}: {e}")
            raise

        logger.info(f"Email sent: {message['Message-ID']}")
        return message["Message-ID"]
