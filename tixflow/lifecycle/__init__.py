"""
Ticket lifecycle: transition table, planning and advancing, plus the
organizer batches that precede it.
"""

from .machine import (
    Transition,
    TRANSITIONS,
    TransitionPlan,
    TransitionResult,
    TicketLifecycle,
)
from .organizer import CREATE_EVENT, CREATE_CLASS, build_event_batch, build_class_batch

__all__ = [
    "Transition",
    "TRANSITIONS",
    "TransitionPlan",
    "TransitionResult",
    "TicketLifecycle",
    "CREATE_EVENT",
    "CREATE_CLASS",
    "build_event_batch",
    "build_class_batch",
]
