"""
Effects Extractor: raw execution report -> TypedEffects.

Lookups never raise for absent data: created_of() returns [], new_owner_of()
returns None, settlements is [] when the node did not report balances.
Only a missing status is fatal (MalformedReportError).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from . import type_tags as tags
from .report import (
    CREATED,
    DELETED,
    AddressOwner,
    EmittedEvent,
    ExecutionReport,
    ObjectChange,
    Owner,
    SharedOwner,
    parse_report,
)
from .type_tags import TypeTagMatcher


@dataclass(frozen=True)
class Settlement:
    """Signed balance delta attributed to one address."""
    address: str
    amount: int
    coin_type: Optional[str] = None


@dataclass(frozen=True)
class TypedEffects:
    """
    Normalized, read-only view of one ExecutionReport.

    Rebuilt per report; never persisted.
    """
    report: ExecutionReport
    matcher: TypeTagMatcher = field(default_factory=TypeTagMatcher)

    @property
    def succeeded(self) -> bool:
        return self.report.status.success

    @property
    def error(self) -> Optional[str]:
        return self.report.status.error

    @property
    def digest(self) -> Optional[str]:
        return self.report.digest

    @property
    def object_changes(self) -> Tuple[ObjectChange, ...]:
        return self.report.object_changes or ()

    def created_of(self, type_tag: str) -> List[str]:
        """Ids of created objects whose type matches type_tag, in report order."""
        return [
            c.object_id
            for c in self.object_changes
            if c.change_type == CREATED and self.matcher.matches(c.object_type, type_tag)
        ]

    def first_created(self, type_tag: str) -> Optional[str]:
        ids = self.created_of(type_tag)
        return ids[0] if ids else None

    def owner_of(self, object_id: str) -> Optional[Owner]:
        """Owner after execution, or None if unknown or deleted."""
        owner: Optional[Owner] = None
        for c in self.object_changes:
            if c.object_id != object_id:
                continue
            if c.change_type == DELETED:
                owner = None
            elif c.owner is not None:
                owner = c.owner
        return owner

    def new_owner_of(self, object_id: str) -> Optional[str]:
        """Address that owns object_id after execution, or None."""
        owner = self.owner_of(object_id)
        if isinstance(owner, AddressOwner):
            return owner.address
        return None

    def ambiguous(self, type_tag: str) -> bool:
        found = self.matcher.distinct_matches(
            (c.object_type for c in self.object_changes), type_tag
        )
        return len(found) > 1

    @property
    def balances_reported(self) -> bool:
        return self.report.balance_changes is not None

    @property
    def settlements(self) -> List[Settlement]:
        """
        Balance deltas with an address owner, in report order.

        Empty when the node omitted balance changes.
        """
        out: List[Settlement] = []
        for change in self.report.balance_changes or ():
            if change.address is None:
                continue
            out.append(Settlement(change.address, change.amount, change.coin_type))
        return out

    def settlements_in(self, coin_type: Optional[str]) -> List[Settlement]:
        if coin_type is None:
            return self.settlements
        return [s for s in self.settlements if s.coin_type in (None, coin_type)]

    def delta_for(self, address: str, coin_type: Optional[str] = None) -> int:
        return sum(s.amount for s in self.settlements_in(coin_type) if s.address == address)

    @property
    def network_fee(self) -> Optional[int]:
        """Net fee charged for the batch, or None if gas detail was omitted."""
        return self.report.gas.net_fee if self.report.gas is not None else None

    @property
    def events(self) -> Tuple[EmittedEvent, ...]:
        return self.report.events or ()

    def events_of(self, type_tag: str) -> List[EmittedEvent]:
        return [e for e in self.events if self.matcher.matches(e.event_type, type_tag)]


def extract_effects(raw: Dict[str, Any], matcher: Optional[TypeTagMatcher] = None) -> TypedEffects:
    """
    Parse a raw report into TypedEffects.

    Raises:
        MalformedReportError: If the status field is absent
    """
    return TypedEffects(report=parse_report(raw), matcher=matcher or TypeTagMatcher())


def find_ticket_id(effects: TypedEffects) -> Optional[str]:
    return effects.first_created(tags.TICKET)


def find_event_id(effects: TypedEffects) -> Optional[str]:
    return effects.first_created(tags.EVENT)


def find_class_id(effects: TypedEffects) -> Optional[str]:
    return effects.first_created(tags.TICKET_CLASS)


def _created_shared(effects: TypedEffects, type_tag: str) -> Optional[str]:
    for object_id in effects.created_of(type_tag):
        if isinstance(effects.owner_of(object_id), SharedOwner):
            return object_id
    return None


def _created_owned(effects: TypedEffects, type_tag: str) -> Optional[str]:
    for object_id in effects.created_of(type_tag):
        if isinstance(effects.owner_of(object_id), AddressOwner):
            return object_id
    return None


def find_escrow(effects: TypedEffects) -> Tuple[Optional[str], Optional[str]]:
    """
    (kiosk_id, owner_cap_id) created by an escrow bootstrap batch.

    The kiosk is the shared match; "::kiosk::Kiosk" alone also matches the cap.
    """
    return _created_shared(effects, tags.KIOSK), _created_owned(effects, tags.KIOSK_OWNER_CAP)


def find_policy_id(effects: TypedEffects) -> Optional[str]:
    """Shared TransferPolicy created by a policy bootstrap batch."""
    return _created_shared(effects, tags.TRANSFER_POLICY)


def find_listing_id(effects: TypedEffects, fallback: Optional[str] = None) -> Optional[str]:
    """Listing id from the ItemListed event, else fallback (the ticket id)."""
    for event in effects.events_of(tags.ITEM_LISTED):
        listing = event.fields.get("id")
        if listing:
            return listing
    return fallback
