"""
LangGraph State Schema for the ticket processing pipeline

State Flow:
    1. event: Input ticket/created payload
    2. analysis: Validated AI analysis (analyze)
    3. ticket: Ticket after AI fields were persisted (persist_ai_fields)
    4. selected: Least-loaded skill-matched moderator, if any (select_assignee)
    5. assignment/assignee: What step 4 achieved (assign)
    6. notifications: Notification types enqueued so far
    7. stage: Last completed stage
"""
from enum import Enum
from typing import TypedDict, Optional, List
from typing_extensions import NotRequired

from ticketflow.models.schemas import (
    AnalysisResult,
    ModeratorCandidate,
    Ticket,
    TicketCreatedEvent,
    User,
)


class PipelineStage(str, Enum):
    """Stages of a single pipeline run, in execution order"""
    ANALYZING = "analyzing"
    PERSISTING = "persisting"
    SELECTING_ASSIGNEE = "selecting_assignee"
    ASSIGNING = "assigning"
    NOTIFYING = "notifying"
    DONE = "done"


class PipelineState(TypedDict):
    """
    LangGraph workflow state.

    Nodes return partial updates; every key but `event` is filled in as the
    run progresses.
    """
    event: TicketCreatedEvent
    stage: NotRequired[PipelineStage]
    analysis: NotRequired[AnalysisResult]
    ticket: NotRequired[Ticket]
    selected: NotRequired[Optional[ModeratorCandidate]]
    assignment: NotRequired[str]
    assignee: NotRequired[Optional[User]]
    notifications: NotRequired[List[str]]


def create_initial_state(event: TicketCreatedEvent) -> PipelineState:
    """
    Build the state a run starts from.

    Example:
        >>> state = create_initial_state(event)
        >>> result = await workflow.ainvoke(state)
    """
    return {
        "event": event,
        "stage": PipelineStage.ANALYZING,
        "notifications": [],
    }
