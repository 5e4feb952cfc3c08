"""
Ticket processing pipeline - LangGraph workflow for ticket/created events

Flow (strictly linear, one run per event):
1. analyze            - AI classification (never fails, falls back to keywords)
2. persist_ai_fields  - write AI fields; missing ticket is fatal
3. select_assignee    - least-loaded skill-matched moderator
4. assign             - moderator, else admin fallback, else leave unassigned
5. notify_requester   - creation confirmation to the submitter

Every step is safe to re-run: AI fields are overwritten with the same
values, and assignment is skipped once the ticket has an assignee or has
left the open status.
Store outages while loading the ticket (step 2) propagate as
TransientStoreError so the runner can retry the whole run; failures in
steps 3-5 degrade the outcome instead of failing the run.
"""
import asyncio
from typing import Any, Dict, Optional

from langgraph.graph import StateGraph, END

from ticketflow.models.graph_state import PipelineStage, PipelineState, create_initial_state
from ticketflow.models.schemas import (
    ModeratorCandidate,
    PipelineResult,
    Ticket,
    TicketAssignedFallbackNotification,
    TicketAssignedNotification,
    TicketCreatedEvent,
    TicketCreatedNotification,
    TicketStatus,
    User,
    normalize_skills,
)
from ticketflow.repositories.interfaces import TicketStore, UserStore
from ticketflow.services.analysis_client import AnalysisClient
from ticketflow.services.assignee_selector import select_assignee
from ticketflow.services.notification_dispatcher import NotificationDispatcher
from ticketflow.utils.errors import TicketNotFoundError
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
FALLBACK_REASON = "No moderator available with required skills"
RESPONSE_WINDOW_ASSIGNED = "2-4 hours"
RESPONSE_WINDOW_FALLBACK = "4-8 hours"


class TicketPipeline:
    """
    Five-step processing of a newly created ticket.

    Args:
        analysis_client: AI classification
        ticket_repo: TicketStore implementation
        user_repo: UserStore implementation
        dispatcher: NotificationDispatcher (enqueue is fire-and-forget)
    """

    def __init__(
        self,
        analysis_client: AnalysisClient,
        ticket_repo: TicketStore,
        user_repo: UserStore,
        dispatcher: NotificationDispatcher
    ):
        self.analysis_client = analysis_client
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo
        self.dispatcher = dispatcher
        self.workflow = self.build_graph().compile()

    def build_graph(self) -> StateGraph:
        """
        START → analyze → persist_ai_fields → select_assignee → assign
              → notify_requester → END
        """
        graph = StateGraph(PipelineState)

        graph.add_node("analyze", self.analyze)
        graph.add_node("persist_ai_fields", self.persist_ai_fields)
        graph.add_node("select_assignee", self.select_assignee)
        graph.add_node("assign", self.assign)
        graph.add_node("notify_requester", self.notify_requester)

        graph.set_entry_point("analyze")
        graph.add_edge("analyze", "persist_ai_fields")
        graph.add_edge("persist_ai_fields", "select_assignee")
        graph.add_edge("select_assignee", "assign")
        graph.add_edge("assign", "notify_requester")
        graph.add_edge("notify_requester", END)

        return graph

    async def run(self, event: TicketCreatedEvent) -> PipelineResult:
        """
        Execute one pipeline run

        Raises:
            TicketNotFoundError: The event references a ticket that is gone
            TransientStoreError: The store was unavailable while loading it
        """
        logger.info(f"Processing ticket {event.ticket_id}")
        state = await self.workflow.ainvoke(create_initial_state(event))

        ticket: Ticket = state["ticket"]
        assignee: Optional[User] = state.get("assignee")
        assignment = state.get("assignment", "none")

        result = PipelineResult(
            ticket_id=event.ticket_id,
            ticket_number=ticket.ticket_number,
            analysis=state["analysis"],
            assignment=assignment,
            assignee_id=assignee.id if assignee else None,
            assignee_name=assignee.name if assignee else None,
            notifications=state.get("notifications", []),
        )
        logger.info(
            f"Ticket {ticket.ticket_number} processed: assignment={assignment}, "
            f"assignee={result.assignee_name or '-'}"
        )
        return result

    # ------------------------------------------------------------------
    # Step 1
    # ------------------------------------------------------------------

    async def analyze(self, state: PipelineState) -> Dict[str, Any]:
        event = state["event"]
        logger.info(f"Starting AI analysis for ticket {event.ticket_id}")

        analysis = await self.analysis_client.analyze(event.subject, event.description, event.category)
        return {"analysis": analysis, "stage": PipelineStage.PERSISTING}

    # ------------------------------------------------------------------
    # Step 2
    # ------------------------------------------------------------------

    async def persist_ai_fields(self, state: PipelineState) -> Dict[str, Any]:
        event = state["event"]

        try:
            ticket = await self.ticket_repo.update_ticket_ai_fields(event.ticket_id, state["analysis"])
        except TicketNotFoundError:
            logger.error(f"Ticket {event.ticket_id} not found, aborting run")
            raise

        logger.info(f"Ticket {event.ticket_id} updated with AI analysis (priority={ticket.priority.value})")
        return {"ticket": ticket, "stage": PipelineStage.SELECTING_ASSIGNEE}

    # ------------------------------------------------------------------
    # Step 3
    # ------------------------------------------------------------------

    async def select_assignee(self, state: PipelineState) -> Dict[str, Any]:
        required_skills = state["analysis"].required_skills
        update = {"selected": None, "stage": PipelineStage.ASSIGNING}

        if not required_skills:
            logger.info("No specific skills required, using admin fallback")
            return update

        try:
            moderators = await self.user_repo.find_moderators_by_skills(required_skills)
            workloads = await asyncio.gather(
                *(self.user_repo.count_active_tickets(m.id) for m in moderators)
            )
            candidates = [
                ModeratorCandidate(user=moderator, current_workload=workload)
                for moderator, workload in zip(moderators, workloads)
            ]
        except Exception as e:
            logger.error(f"Error finding suitable moderator, falling back: {e}")
            return update

        selected = select_assignee(required_skills, candidates)
        if selected is None:
            logger.info(f"No moderators found with required skills: {required_skills}")
        else:
            logger.info(
                f"Selected moderator: {selected.user.name} (workload: {selected.current_workload})"
            )

        update["selected"] = selected
        return update

    # ------------------------------------------------------------------
    # Step 4
    # ------------------------------------------------------------------

    async def assign(self, state: PipelineState) -> Dict[str, Any]:
        ticket_id = state["event"].ticket_id
        notifications = list(state.get("notifications", []))
        update: Dict[str, Any] = {
            "assignment": "none",
            "assignee": None,
            "stage": PipelineStage.NOTIFYING,
        }

        try:
            ticket = await self.ticket_repo.get_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(ticket_id)

            if ticket.is_assigned:
                logger.info(f"Ticket {ticket_id} already assigned to {ticket.assigned_to}, skipping")
                update["assignment"] = "existing"
                update["assignee"] = await self.user_repo.get_user(ticket.assigned_to)
                return update

            if ticket.status != TicketStatus.OPEN:
                logger.info(f"Ticket {ticket_id} is already {ticket.status.value}, skipping assignment")
                return update

            selected: Optional[ModeratorCandidate] = state.get("selected")
            if selected is not None:
                assignee, kind = selected.user, "moderator"
            else:
                assignee, kind = await self.user_repo.find_one_active_admin(), "fallback"

            if assignee is None:
                logger.info(f"Ticket {ticket_id} remains unassigned - no admin found")
                return update

            assigned = await self.ticket_repo.assign_ticket(
                ticket_id, assignee.id, SYSTEM_ACTOR, only_if_unassigned=True
            )
            if assigned is None:
                # Another run got there first; its notification stands
                update["assignment"] = "existing"
                return update

            if kind == "moderator":
                request = TicketAssignedNotification(
                    recipient_id=assignee.id,
                    recipient_email=assignee.email,
                    ticket_id=ticket_id,
                    ticket_number=assigned.ticket_number,
                    subject=assigned.subject,
                    priority=assigned.priority,
                )
                logger.info(f"Ticket {ticket_id} assigned to {assignee.name}")
            else:
                request = TicketAssignedFallbackNotification(
                    recipient_id=assignee.id,
                    recipient_email=assignee.email,
                    ticket_id=ticket_id,
                    ticket_number=assigned.ticket_number,
                    subject=assigned.subject,
                    priority=assigned.priority,
                    reason=FALLBACK_REASON,
                )
                logger.info(f"Ticket {ticket_id} assigned to admin {assignee.name} (fallback)")

            update["assignment"] = kind
            update["assignee"] = assignee
            self.dispatcher.enqueue(request)
            update["notifications"] = notifications + [request.type]

        except Exception as e:
            logger.error(f"Assignment failed for ticket {ticket_id}, leaving as is: {e}")

        return update

    # ------------------------------------------------------------------
    # Step 5
    # ------------------------------------------------------------------

    async def notify_requester(self, state: PipelineState) -> Dict[str, Any]:
        event = state["event"]
        assignment = state.get("assignment", "none")
        notifications = list(state.get("notifications", []))

        # an existing assignee counts as a moderator assignment only if skills match
        assignee: Optional[User] = state.get("assignee")
        skill_match = assignee is not None and bool(
            assignee.skill_set() & normalize_skills(state["analysis"].required_skills)
        )

        if assignment == "moderator" or (assignment == "existing" and skill_match):
            estimated = RESPONSE_WINDOW_ASSIGNED
        else:
            estimated = RESPONSE_WINDOW_FALLBACK

        try:
            request = TicketCreatedNotification(
                recipient_email=event.user_email,
                user_name=event.user_name,
                ticket_id=event.ticket_id,
                ticket_number=state["ticket"].ticket_number,
                subject=event.subject,
                estimated_response=estimated,
            )
            self.dispatcher.enqueue(request)
            notifications.append(request.type)
            logger.info(f"Confirmation notification queued for ticket {event.ticket_id}")
        except Exception as e:
            logger.error(f"Could not queue confirmation for ticket {event.ticket_id}: {e}")

        return {"notifications": notifications, "stage": PipelineStage.DONE}
