"""
Typed arguments for batch operations.

An argument is either a typed literal (u64, u16, string, address, id), an
object input, the gas coin, or a reference to an output of an earlier
operation in the same batch.

Amounts are integers in the ledger's minor unit. Floats never cross this
boundary.
"""

from dataclasses import dataclass
from typing import Any, Dict, Union

from ..core.ids import require_id

U64_MAX = 2 ** 64 - 1
U16_MAX = 2 ** 16 - 1


def _require_int(value: Any, name: str, upper: int) -> int:
    # bool is an int subclass; reject it along with floats and strings
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} literal must be int, got {type(value).__name__}")
    if value < 0 or value > upper:
        raise ValueError(f"{name} literal out of range: {value}")
    return value


@dataclass(frozen=True)
class U64:
    value: int

    def __post_init__(self) -> None:
        _require_int(self.value, "u64", U64_MAX)

    def to_dict(self) -> Dict[str, Any]:
        # u64 does not fit a JSON double; carry it as a decimal string
        return {"kind": "pure", "type": "u64", "value": str(self.value)}


@dataclass(frozen=True)
class U16:
    value: int

    def __post_init__(self) -> None:
        _require_int(self.value, "u16", U16_MAX)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "pure", "type": "u16", "value": self.value}


@dataclass(frozen=True)
class Str:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("string literal must be str")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "pure", "type": "string", "value": self.value}


@dataclass(frozen=True)
class Address:
    value: str

    def __post_init__(self) -> None:
        require_id(self.value, "address")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "pure", "type": "address", "value": self.value}


@dataclass(frozen=True)
class Id:
    value: str

    def __post_init__(self) -> None:
        require_id(self.value, "id")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "pure", "type": "id", "value": self.value}


@dataclass(frozen=True)
class ObjectArg:
    """An existing ledger object passed as input (shared or owned)."""
    object_id: str

    def __post_init__(self) -> None:
        require_id(self.object_id, "object id")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "object", "id": self.object_id}


@dataclass(frozen=True)
class GasCoin:
    """The sender's gas coin; payments are split from it."""

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "gas"}


GAS = GasCoin()


@dataclass(frozen=True)
class Ref:
    """
    Reference to output `index` of operation `op` in the same batch.

    A non-borrowed reference moves the value: each output can be moved once.
    A borrowed reference reads it without consuming it.
    """
    op: int
    index: int = 0
    borrow: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "result", "op": self.op, "index": self.index, "borrow": self.borrow}


Pure = Union[U64, U16, Str, Address, Id]
Argument = Union[U64, U16, Str, Address, Id, ObjectArg, GasCoin, Ref]
