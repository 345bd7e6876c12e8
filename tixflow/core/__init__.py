"""
Core primitives shared by every component.

- State: immutable ticket, class, event, escrow and policy snapshots
- Canonical: deterministic serialization for signing and hashing
- IDs: opaque identifier helpers
- Errors: typed failures carrying transition and asset context
"""

from .state import Event, TicketClass, Ticket, TicketState, Escrow, TransferApproval
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, digest_of
from .ids import require_arg, require_id, stable_id, shorten
from .errors import (
    TicketingError,
    UnresolvedReferenceError,
    PolicyNotConfirmedError,
    MalformedReportError,
    InvalidTransitionError,
    PreconditionFailedError,
    LedgerExecutionFailure,
    IntegrityError,
    SettlementMismatchError,
    OwnershipMismatchError,
    FundingTimeoutError,
    RoyaltyNotObservedWarning,
    UnexpectedSpendWarning,
)

__all__ = [
    "Event",
    "TicketClass",
    "Ticket",
    "TicketState",
    "Escrow",
    "TransferApproval",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "digest_of",
    "require_arg",
    "require_id",
    "stable_id",
    "shorten",
    "TicketingError",
    "UnresolvedReferenceError",
    "PolicyNotConfirmedError",
    "MalformedReportError",
    "InvalidTransitionError",
    "PreconditionFailedError",
    "LedgerExecutionFailure",
    "IntegrityError",
    "SettlementMismatchError",
    "OwnershipMismatchError",
    "FundingTimeoutError",
    "RoyaltyNotObservedWarning",
    "UnexpectedSpendWarning",
]
