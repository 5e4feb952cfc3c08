"""
Ticket-related API routes
"""
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ticketflow.dependencies import get_ticket_service
from ticketflow.models.schemas import Comment, Satisfaction, Ticket, TicketCreatedEvent
from ticketflow.services.ticket_service import TicketService
from ticketflow.utils.errors import (
    PermissionDeniedError,
    TicketNotFoundError,
    TicketValidationError,
)

router = APIRouter(prefix="/api/v1", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    """Ticket creation request; user_id identifies the submitter"""
    user_id: str
    subject: str
    description: str
    category: str
    priority: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    actor_id: str
    status: str


class AssignRequest(BaseModel):
    actor_id: str
    moderator_id: str


class CommentRequest(BaseModel):
    actor_id: str
    message: str
    is_internal: bool = False


class SatisfactionRequest(BaseModel):
    actor_id: str
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class TicketResponse(BaseModel):
    """Ticket response model (internal comments filtered out)"""
    id: str
    ticket_number: str
    subject: str
    category: str
    priority: str
    status: str
    ai_category: Optional[str] = None
    ai_priority: Optional[str] = None
    ai_summary: Optional[str] = None
    tags: List[str] = []
    assigned_to: Optional[str] = None
    response_time: Optional[int] = None
    resolution_time: Optional[int] = None
    comments: List[Comment] = []
    created_at: datetime

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketResponse":
        data = ticket.model_dump(mode="json")
        data["comments"] = [c for c in ticket.comments if not c.is_internal]
        return cls(**data)


@contextmanager
def _http_errors():
    try:
        yield
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except TicketValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: TicketCreateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    """
    Create a ticket; AI analysis and assignment run in the background
    """
    with _http_errors():
        ticket = await service.create_ticket(
            request.user_id,
            request.subject,
            request.description,
            request.category,
            request.priority,
        )
    return TicketResponse.from_ticket(ticket)


@router.put("/tickets/{ticket_id}/status", response_model=TicketResponse)
async def update_status(
    ticket_id: str,
    request: StatusUpdateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    with _http_errors():
        ticket = await service.update_status(ticket_id, request.actor_id, request.status)
    return TicketResponse.from_ticket(ticket)


@router.put("/tickets/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: str,
    request: AssignRequest,
    service: TicketService = Depends(get_ticket_service)
):
    with _http_errors():
        ticket = await service.assign_ticket(ticket_id, request.actor_id, request.moderator_id)
    return TicketResponse.from_ticket(ticket)


@router.post("/tickets/{ticket_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: str,
    request: CommentRequest,
    service: TicketService = Depends(get_ticket_service)
):
    with _http_errors():
        return await service.add_comment(ticket_id, request.actor_id, request.message, request.is_internal)


@router.post("/tickets/{ticket_id}/satisfaction", response_model=Satisfaction)
async def add_satisfaction(
    ticket_id: str,
    request: SatisfactionRequest,
    service: TicketService = Depends(get_ticket_service)
):
    with _http_errors():
        return await service.add_satisfaction(ticket_id, request.actor_id, request.rating, request.feedback)


@router.post("/events/ticket-created", status_code=status.HTTP_202_ACCEPTED)
async def ticket_created_event(
    event: TicketCreatedEvent,
    service: TicketService = Depends(get_ticket_service)
):
    """
    Accept a ticket/created event from an external task runner
    """
    service.runner.submit(event)
    return {"status": "accepted", "ticketId": event.ticket_id}
