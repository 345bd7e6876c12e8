"""
Typed view of a raw execution report.

Raw reports are loose JSON: a node may omit balance changes, events or gas
detail depending on the options the submitter asked for. Every optional
section is modelled explicitly:

- None: the section was absent from the report
- (): the section was present and empty

The status is the only mandatory field. Without it the report is rejected,
as it is when a present section is not a list.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.errors import MalformedReportError

SUCCESS = "success"
FAILURE = "failure"

CREATED = "created"
MUTATED = "mutated"
DELETED = "deleted"
TRANSFERRED = "transferred"
WRAPPED = "wrapped"


@dataclass(frozen=True)
class AddressOwner:
    address: str


@dataclass(frozen=True)
class ObjectOwner:
    object_id: str


@dataclass(frozen=True)
class SharedOwner:
    initial_shared_version: Optional[int] = None


@dataclass(frozen=True)
class Immutable:
    pass


@dataclass(frozen=True)
class UnknownOwner:
    raw: Any


Owner = Union[AddressOwner, ObjectOwner, SharedOwner, Immutable, UnknownOwner]


@dataclass(frozen=True)
class ExecutionStatus:
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ObjectChange:
    change_type: str
    object_id: str
    object_type: Optional[str] = None
    owner: Optional[Owner] = None


@dataclass(frozen=True)
class BalanceChange:
    owner: Optional[Owner]
    coin_type: Optional[str]
    amount: int

    @property
    def address(self) -> Optional[str]:
        if isinstance(self.owner, AddressOwner):
            return self.owner.address
        return None


@dataclass(frozen=True)
class EmittedEvent:
    event_type: str
    fields: Dict[str, Any]
    sender: Optional[str] = None


@dataclass(frozen=True)
class GasSummary:
    computation_cost: int = 0
    storage_cost: int = 0
    storage_rebate: int = 0

    @property
    def net_fee(self) -> int:
        return self.computation_cost + self.storage_cost - self.storage_rebate


@dataclass(frozen=True)
class ExecutionReport:
    status: ExecutionStatus
    digest: Optional[str] = None
    object_changes: Optional[Tuple[ObjectChange, ...]] = None
    balance_changes: Optional[Tuple[BalanceChange, ...]] = None
    events: Optional[Tuple[EmittedEvent, ...]] = None
    gas: Optional[GasSummary] = None


def parse_amount(value: Any, where: str) -> int:
    """
    Parse an integer minor-unit amount (int or decimal string).

    Raises:
        MalformedReportError: If the amount is a float or not a number
    """
    if isinstance(value, bool):
        raise MalformedReportError(f"{where}: boolean is not an amount")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("-", "+") else text
        if digits.isascii() and digits.isdecimal():
            return int(text)
    raise MalformedReportError(f"{where}: not an integer amount: {value!r}")


def parse_owner(raw: Any) -> Optional[Owner]:
    if raw is None:
        return None
    if raw == "Immutable":
        return Immutable()
    if isinstance(raw, dict):
        if "AddressOwner" in raw:
            return AddressOwner(raw["AddressOwner"])
        if "ObjectOwner" in raw:
            return ObjectOwner(raw["ObjectOwner"])
        if "Shared" in raw:
            shared = raw.get("Shared") or {}
            version = shared.get("initial_shared_version") if isinstance(shared, dict) else None
            if version is None:
                return SharedOwner(None)
            return SharedOwner(parse_amount(version, "owner.Shared.initial_shared_version"))
    return UnknownOwner(raw)


def _parse_status(raw: Dict[str, Any]) -> ExecutionStatus:
    effects = raw.get("effects")
    status = effects.get("status") if isinstance(effects, dict) else None
    if not isinstance(status, dict) or "status" not in status:
        raise MalformedReportError("execution report has no status")
    value = status["status"]
    if value == SUCCESS:
        return ExecutionStatus(success=True)
    if value == FAILURE:
        return ExecutionStatus(success=False, error=status.get("error"))
    raise MalformedReportError(f"execution report has unknown status {value!r}")


def _require_list(raw: Any, name: str) -> None:
    if not isinstance(raw, list):
        raise MalformedReportError(f"{name} must be a list, got {type(raw).__name__}")


def _parse_object_changes(raw: Any) -> Optional[Tuple[ObjectChange, ...]]:
    if raw is None:
        return None
    _require_list(raw, "objectChanges")
    changes: List[ObjectChange] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("objectId"):
            # entries without an id (e.g. "published") carry nothing we track
            continue
        changes.append(
            ObjectChange(
                change_type=entry.get("type", ""),
                object_id=entry["objectId"],
                object_type=entry.get("objectType"),
                owner=parse_owner(entry.get("owner")),
            )
        )
    return tuple(changes)


def _parse_balance_changes(raw: Any) -> Optional[Tuple[BalanceChange, ...]]:
    if raw is None:
        return None
    _require_list(raw, "balanceChanges")
    changes: List[BalanceChange] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict) or "amount" not in entry:
            raise MalformedReportError(f"balanceChanges[{i}] has no amount")
        changes.append(
            BalanceChange(
                owner=parse_owner(entry.get("owner")),
                coin_type=entry.get("coinType"),
                amount=parse_amount(entry["amount"], f"balanceChanges[{i}]"),
            )
        )
    return tuple(changes)


def _parse_events(raw: Any) -> Optional[Tuple[EmittedEvent, ...]]:
    if raw is None:
        return None
    _require_list(raw, "events")
    events: List[EmittedEvent] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("type"):
            continue
        fields = entry.get("parsedJson")
        events.append(
            EmittedEvent(
                event_type=entry["type"],
                fields=fields if isinstance(fields, dict) else {},
                sender=entry.get("sender"),
            )
        )
    return tuple(events)


def _parse_gas(raw: Dict[str, Any]) -> Optional[GasSummary]:
    effects = raw.get("effects") or {}
    gas = effects.get("gasUsed")
    if not isinstance(gas, dict):
        return None
    return GasSummary(
        computation_cost=parse_amount(gas.get("computationCost", 0), "gasUsed.computationCost"),
        storage_cost=parse_amount(gas.get("storageCost", 0), "gasUsed.storageCost"),
        storage_rebate=parse_amount(gas.get("storageRebate", 0), "gasUsed.storageRebate"),
    )


def parse_report(raw: Any) -> ExecutionReport:
    """
    Parse a raw report dict.

    Raises:
        MalformedReportError: If raw is not a mapping, has no status, or
            carries a section or amount of the wrong shape
    """
    if not isinstance(raw, dict):
        raise MalformedReportError(f"execution report must be a mapping, got {type(raw).__name__}")
    return ExecutionReport(
        status=_parse_status(raw),
        digest=raw.get("digest"),
        object_changes=_parse_object_changes(raw.get("objectChanges")),
        balance_changes=_parse_balance_changes(raw.get("balanceChanges")),
        events=_parse_events(raw.get("events")),
        gas=_parse_gas(raw),
    )
