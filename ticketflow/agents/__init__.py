"""
Ticket processing workflow
"""
from ticketflow.agents.pipeline import TicketPipeline
from ticketflow.agents.runner import PipelineRunner

__all__ = [
    "TicketPipeline",
    "PipelineRunner",
]
