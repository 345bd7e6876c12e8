"""
Execution report parsing.

- report: loose JSON -> ExecutionReport with explicit absent sections
- type_tags: the single adapter for type-tag matching
- extractor: TypedEffects lookups and semantic finders
"""

from .report import ExecutionReport, ExecutionStatus, ObjectChange, BalanceChange, parse_report
from .type_tags import TypeTag, TypeTagMatcher
from .extractor import (
    Settlement,
    TypedEffects,
    extract_effects,
    find_ticket_id,
    find_event_id,
    find_class_id,
    find_escrow,
    find_policy_id,
    find_listing_id,
)

__all__ = [
    "ExecutionReport",
    "ExecutionStatus",
    "ObjectChange",
    "BalanceChange",
    "parse_report",
    "TypeTag",
    "TypeTagMatcher",
    "Settlement",
    "TypedEffects",
    "extract_effects",
    "find_ticket_id",
    "find_event_id",
    "find_class_id",
    "find_escrow",
    "find_policy_id",
    "find_listing_id",
]
