"""
Type-tag matching: the one place that decides whether an object is a
Ticket, a TicketClass, a Kiosk, and so on.

Ledger reports carry full type paths such as
"0xabc::ticket::Ticket" or
"0x2::transfer_policy::TransferPolicy<0xabc::ticket::Ticket>".

Two modes:
- substring: the pattern appears anywhere in the full tag, generics
  included. "::kiosk::Kiosk" also matches "::kiosk::KioskOwnerCap", and
  "::ticket::Ticket" also matches a TransferPolicy<...::ticket::Ticket>.
  Callers that care pair it with an owner check.
- exact: module and struct name must equal the pattern's (address too, when
  the pattern has one); generics are ignored.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Set

logger = logging.getLogger(__name__)

SUBSTRING = "substring"
EXACT = "exact"

TICKET = "::ticket::Ticket"
EVENT = "::event::Event"
TICKET_CLASS = "::class::TicketClass"
KIOSK = "::kiosk::Kiosk"
KIOSK_OWNER_CAP = "::kiosk::KioskOwnerCap"
TRANSFER_POLICY = "::transfer_policy::TransferPolicy"
TRANSFER_POLICY_CAP = "::transfer_policy::TransferPolicyCap"
ITEM_LISTED = "::kiosk::ItemListed"
SUI_COIN = "0x2::sui::SUI"


@dataclass(frozen=True)
class TypeTag:
    """Parsed "address::module::Name<generics>"."""
    address: str
    module: str
    name: str
    generics: str = ""

    @classmethod
    def parse(cls, tag: str) -> Optional["TypeTag"]:
        base, _, rest = tag.partition("<")
        parts = base.split("::")
        if len(parts) != 3 or not all(parts[1:]):
            return None
        generics = rest[:-1] if rest.endswith(">") else rest
        return cls(address=parts[0], module=parts[1], name=parts[2], generics=generics)

    @property
    def struct_path(self) -> str:
        return f"{self.address}::{self.module}::{self.name}"


class TypeTagMatcher:
    """
    Matches report type tags against short patterns.

    Usage:
        matcher = TypeTagMatcher()
        matcher.matches("0xabc::ticket::Ticket", "::ticket::Ticket")  # True
    """

    def __init__(self, mode: str = SUBSTRING) -> None:
        if mode not in (SUBSTRING, EXACT):
            raise ValueError(f"Unknown type match mode: {mode}")
        self.mode = mode

    def matches(self, type_tag: Optional[str], pattern: str) -> bool:
        if not type_tag:
            return False
        if self.mode == SUBSTRING:
            return pattern in type_tag
        return self._exact(type_tag, pattern)

    def _exact(self, type_tag: str, pattern: str) -> bool:
        parsed = TypeTag.parse(type_tag)
        if parsed is None:
            return False
        wanted = pattern.split("::")
        if len(wanted) != 3:
            return False
        address, module, name = wanted
        if address and address != parsed.address:
            return False
        return module == parsed.module and name == parsed.name

    def distinct_matches(self, type_tags: Iterable[Optional[str]], pattern: str) -> Set[str]:
        """
        Struct paths that matched pattern. More than one means the pattern is
        ambiguous for this report.
        """
        found: Set[str] = set()
        for tag in type_tags:
            if not self.matches(tag, pattern):
                continue
            parsed = TypeTag.parse(tag)
            found.add(parsed.struct_path if parsed else tag)
        if len(found) > 1:
            logger.debug(
                "type pattern %s matched %d distinct types: %s",
                pattern,
                len(found),
                sorted(found),
            )
        return found
