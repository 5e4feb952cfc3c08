"""
Pydantic models for Ticketflow

This module contains the ticket, user, analysis and notification schemas
shared by the repositories, the processing pipeline and the API layer.

Lifecycle rules that must hold no matter who mutates a ticket live on the
Ticket model itself:
- response_time is computed once, when an assignee is first attached
- resolved_at/resolution_time are computed once, on entering "resolved"
- closed_at is set once, on entering "closed"
- satisfaction can be submitted once, by the owner, on resolved/closed tickets
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Literal, Union
from typing_extensions import Annotated

from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic.alias_generators import to_camel

from ticketflow.utils.errors import TicketValidationError, PermissionDeniedError
from ticketflow.utils.validators import validate_ticket_number


# ============================================================================
# Limits
# ============================================================================

MAX_SUBJECT_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MAX_COMMENT_LENGTH = 2000
MAX_FEEDBACK_LENGTH = 1000
MAX_SUMMARY_LENGTH = 1000
MAX_SUGGESTED_TAGS = 10
MAX_REQUIRED_SKILLS = 5


def utcnow() -> datetime:
    """Timezone-aware current time"""
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two timestamps (rounded)"""
    return round((end - start).total_seconds() / 60)


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Valid ticket statuses"""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


ACTIVE_STATUSES = (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
RATEABLE_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class Priority(str, Enum):
    """Valid ticket priorities"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    """Fixed ticket category set"""
    TECHNICAL_ISSUE = "Technical Issue"
    ACCOUNT_PROBLEM = "Account Problem"
    FEATURE_REQUEST = "Feature Request"
    BUG_REPORT = "Bug Report"
    GENERAL_INQUIRY = "General Inquiry"
    BILLING = "Billing"
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    INTEGRATION = "Integration"
    OTHER = "Other"


class UserRole(str, Enum):
    """User roles"""
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


STAFF_ROLES = (UserRole.MODERATOR, UserRole.ADMIN)


# ============================================================================
# Users
# ============================================================================

class User(BaseModel):
    """User as stored in the `users` table"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3)
    role: UserRole = UserRole.USER
    skills: List[str] = Field(default_factory=list)
    is_active: bool = True

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def skill_set(self) -> set:
        """Normalized skills for matching"""
        return normalize_skills(self.skills)


class ModeratorCandidate(BaseModel):
    """A staff user annotated with live workload; only exists during selection"""
    user: User
    current_workload: int = Field(0, ge=0)


def normalize_skills(skills) -> set:
    """Lower-cased, stripped, non-empty skill names"""
    return {s.strip().lower() for s in skills if isinstance(s, str) and s.strip()}


# ============================================================================
# Tickets
# ============================================================================

class Comment(BaseModel):
    """Single append-only ticket comment"""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    message: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)
    is_internal: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Satisfaction(BaseModel):
    """Requester satisfaction rating"""
    model_config = ConfigDict(from_attributes=True)

    rating: int = Field(..., ge=1, le=5)
    feedback: str = Field("", max_length=MAX_FEEDBACK_LENGTH)
    submitted_at: datetime = Field(default_factory=utcnow)


class AnalysisResult(BaseModel):
    """
    Validated AI classification of a ticket.

    Always well-formed: the analysis client coerces anything the provider
    returns into these bounds before constructing it.
    """
    category: Category = Category.OTHER
    priority: Priority = Priority.MEDIUM
    summary: str = Field(..., min_length=1, max_length=MAX_SUMMARY_LENGTH)
    suggested_tags: List[str] = Field(default_factory=list, max_length=MAX_SUGGESTED_TAGS)
    required_skills: List[str] = Field(default_factory=list, max_length=MAX_REQUIRED_SKILLS)


class Ticket(BaseModel):
    """
    Support ticket as stored in the `tickets` table.

    Attributes:
        id: Storage identifier
        ticket_number: Human readable number, TK-<year>-<seq>
        user_id: Submitting user
        category/priority/status: User and staff managed fields
        ai_*: Fields written by the processing pipeline
        assigned_to/assigned_at/assigned_by: Current assignment
        response_time/resolution_time: Minutes, computed once
    """
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    ticket_number: str
    subject: str = Field(..., min_length=1, max_length=MAX_SUBJECT_LENGTH)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    category: Category
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    user_id: str

    ai_category: Optional[Category] = None
    ai_priority: Optional[Priority] = None
    ai_summary: Optional[str] = Field(None, max_length=MAX_SUMMARY_LENGTH)
    tags: List[str] = Field(default_factory=list)

    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[str] = None

    comments: List[Comment] = Field(default_factory=list)
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    response_time: Optional[int] = None
    resolution_time: Optional[int] = None
    satisfaction: Optional[Satisfaction] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('ticket_number')
    @classmethod
    def validate_number(cls, v: str) -> str:
        if not validate_ticket_number(v):
            raise ValueError(f"Invalid ticket number: {v}")
        return v

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    def apply_analysis(self, analysis: AnalysisResult) -> None:
        """
        Write AI fields. Priority is escalated to high when the analysis says
        high; it is never lowered.
        """
        self.ai_category = analysis.category
        self.ai_priority = analysis.priority
        self.ai_summary = analysis.summary
        self.tags = list(analysis.suggested_tags)

        if analysis.priority == Priority.HIGH and self.priority != Priority.HIGH:
            self.priority = Priority.HIGH

        self.updated_at = utcnow()

    def assign_to(self, assignee_id: str, assigned_by: str, now: Optional[datetime] = None) -> None:
        """Attach an assignee and move the ticket to in-progress"""
        now = now or utcnow()
        self.assigned_to = assignee_id
        self.assigned_at = now
        self.assigned_by = assigned_by

        if self.response_time is None:
            self.response_time = minutes_between(self.created_at, now)

        self.set_status(TicketStatus.IN_PROGRESS, now=now)

    def set_status(self, status: TicketStatus, now: Optional[datetime] = None) -> None:
        """Change status, stamping resolution/close times the first time only"""
        now = now or utcnow()
        status = TicketStatus(status)

        if status == TicketStatus.RESOLVED and self.resolved_at is None:
            self.resolved_at = now
            self.resolution_time = minutes_between(self.created_at, now)

        if status == TicketStatus.CLOSED and self.closed_at is None:
            self.closed_at = now

        self.status = status
        self.updated_at = now

    def add_comment(self, user_id: str, message: str, is_internal: bool = False) -> Comment:
        comment = Comment(user_id=user_id, message=message.strip(), is_internal=is_internal)
        self.comments.append(comment)
        self.updated_at = comment.created_at
        return comment

    def add_satisfaction(self, actor_id: str, rating: int, feedback: Optional[str] = None) -> Satisfaction:
        """Record the requester's rating; allowed once, on finished tickets"""
        if actor_id != self.user_id:
            raise PermissionDeniedError("Only ticket owner can provide satisfaction rating")
        if self.status not in RATEABLE_STATUSES:
            raise TicketValidationError("Can only rate resolved or closed tickets")
        if self.satisfaction is not None:
            raise TicketValidationError("Satisfaction rating already submitted")
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise TicketValidationError("Rating must be between 1 and 5")

        feedback = (feedback or "").strip()
        if len(feedback) > MAX_FEEDBACK_LENGTH:
            raise TicketValidationError(f"Feedback cannot exceed {MAX_FEEDBACK_LENGTH} characters")

        self.satisfaction = Satisfaction(rating=rating, feedback=feedback)
        self.updated_at = self.satisfaction.submitted_at
        return self.satisfaction


# Columns each lifecycle change writes; saves touch nothing else
STATUS_FIELDS = frozenset({"status", "resolved_at", "resolution_time", "closed_at", "updated_at"})
COMMENT_FIELDS = frozenset({"comments", "updated_at"})
SATISFACTION_FIELDS = frozenset({"satisfaction", "updated_at"})


class TicketCreate(BaseModel):
    """Schema for creating a ticket (number and timestamps are generated)"""
    subject: str = Field(..., min_length=1, max_length=MAX_SUBJECT_LENGTH)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    category: Category
    priority: Priority = Priority.MEDIUM
    user_id: str = Field(..., min_length=1)


# ============================================================================
# Events
# ============================================================================

class TicketCreatedEvent(BaseModel):
    """
    Payload of the `ticket/created` event.

    Accepts both the camelCase wire names (ticketId, userEmail, ...) and the
    snake_case attribute names.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ticket_id: str = Field(..., min_length=1)
    subject: str
    description: str
    category: str = ""
    priority: str = Priority.MEDIUM.value
    user_id: str
    user_email: str
    user_name: str = ""


# ============================================================================
# Notifications
# ============================================================================

class TicketCreatedNotification(BaseModel):
    """Confirmation to the submitter"""
    type: Literal["ticket_created"] = "ticket_created"
    recipient_email: str
    user_name: str = ""
    ticket_id: str
    ticket_number: str
    subject: str
    estimated_response: str


class TicketAssignedNotification(BaseModel):
    """Assignment notice to the selected moderator"""
    type: Literal["ticket_assigned"] = "ticket_assigned"
    recipient_id: str
    recipient_email: str
    ticket_id: str
    ticket_number: str
    subject: str
    priority: Priority


class TicketAssignedFallbackNotification(BaseModel):
    """Assignment notice to an admin when no moderator matched"""
    type: Literal["ticket_assigned_fallback"] = "ticket_assigned_fallback"
    recipient_id: str
    recipient_email: str
    ticket_id: str
    ticket_number: str
    subject: str
    priority: Priority
    reason: str


class TicketUpdatedNotification(BaseModel):
    """Status change notice to the submitter"""
    type: Literal["ticket_updated"] = "ticket_updated"
    recipient_email: str
    ticket_id: str
    ticket_number: str
    subject: str
    status: TicketStatus
    updated_by: str


NotificationRequest = Annotated[
    Union[
        TicketCreatedNotification,
        TicketAssignedNotification,
        TicketAssignedFallbackNotification,
        TicketUpdatedNotification,
    ],
    Field(discriminator="type"),
]


class NotificationOutcome(BaseModel):
    """Result of one delivery attempt"""
    success: bool
    type: str
    message_id: Optional[str] = None
    error: Optional[str] = None


# ============================================================================
# Pipeline
# ============================================================================

AssignmentOutcome = Literal["moderator", "fallback", "existing", "none"]


class PipelineResult(BaseModel):
    """Summary returned by a completed pipeline run"""
    success: bool = True
    ticket_id: str
    ticket_number: Optional[str] = None
    analysis: AnalysisResult
    assignment: AssignmentOutcome = "none"
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    notifications: List[str] = Field(default_factory=list)
    message: str = "Ticket processed successfully"
