"""
Domain snapshots for tickets and the objects around them.

Snapshots are immutable. The core keeps no state between calls: the caller
passes in what it knows and receives updated snapshots back.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional


class TicketState(str, Enum):
    """Lifecycle states of a ticket."""

    MINTED = "Minted"
    LISTED = "Listed"
    OWNED = "Owned"
    CHECKED_IN = "CheckedIn"


@dataclass(frozen=True)
class Event:
    """
    A real-world occurrence. Created once by its organizer, immutable after.

    Fields:
        starts_at / ends_at: Unix seconds
        poster_ref: External poster reference (e.g. a blob id)
        creator: Address that owns the event object
    """
    id: str
    name: str
    starts_at: int
    ends_at: int
    poster_ref: str
    creator: str


@dataclass(frozen=True)
class TicketClass:
    """
    Template for tickets of one event.

    issued only ever grows, by one per successful mint.
    """
    id: str
    event_id: str
    face_price: int
    supply: int
    issued: int = 0

    def with_issued(self, issued: int) -> "TicketClass":
        if issued < self.issued:
            raise ValueError("TicketClass.issued cannot decrease")
        return replace(self, issued=issued)


@dataclass(frozen=True)
class Ticket:
    """
    The tradeable asset.

    Fields:
        holder: Current owner address (the seller while listed)
        used: Write-once flag, false -> true at check-in
        escrow_id: Escrow holding the ticket while LISTED
        listed_price: Listing price in minor units while LISTED
    """
    id: str
    class_id: str
    holder: str
    state: TicketState = TicketState.MINTED
    used: bool = False
    escrow_id: Optional[str] = None
    listed_price: Optional[int] = None

    def listed(self, escrow_id: str, price: int) -> "Ticket":
        return replace(self, state=TicketState.LISTED, escrow_id=escrow_id, listed_price=price)

    def sold_to(self, buyer: str) -> "Ticket":
        return replace(
            self, state=TicketState.OWNED, holder=buyer, escrow_id=None, listed_price=None
        )

    def checked_in(self) -> "Ticket":
        if self.used:
            raise ValueError("Ticket.used is write-once")
        return replace(self, state=TicketState.CHECKED_IN, used=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "class_id": self.class_id,
            "holder": self.holder,
            "state": self.state.value,
            "used": self.used,
            "escrow_id": self.escrow_id,
            "listed_price": self.listed_price,
        }


@dataclass(frozen=True)
class Escrow:
    """Shared custodial container (kiosk) plus its owner capability."""
    id: str
    owner_cap_id: str
    owner: str


@dataclass(frozen=True)
class TransferApproval:
    """Shared, class-scoped transfer policy that confirms escrow withdrawals."""
    id: str
    ticket_type: str
    royalty_recipient: Optional[str] = None
    royalty_bps: int = 0
