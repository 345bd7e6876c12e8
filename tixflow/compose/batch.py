"""
Transaction Composer: ordered, atomic batches of ledger operations.

Composition is pure data assembly. Nothing touches the network until the
finished Batch is handed to a LedgerClient.

Usage:
    composer = BatchComposer(gas_budget=20_000_000, label="buy_and_approve")
    (coin,) = composer.split_coins(GAS, [U64(price)])
    item, request = composer.move_call(purchase, [ObjectArg(kiosk), Id(ticket), coin], returns=2)
    composer.move_call(confirm, [ObjectArg(policy), request], returns=1)
    composer.transfer_objects([item], Address(buyer))
    batch = composer.build()
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.canonical import canonical_json_bytes, digest_of
from ..core.errors import UnresolvedReferenceError
from .args import Address, Argument, GasCoin, Ref, U64

MOVE_CALL = "move_call"
SPLIT_COINS = "split_coins"
TRANSFER_OBJECTS = "transfer_objects"

OPERATION_KINDS = (MOVE_CALL, SPLIT_COINS, TRANSFER_OBJECTS)


@dataclass(frozen=True)
class Operation:
    """
    One operation descriptor.

    Fields:
        kind: move_call, split_coins or transfer_objects
        target: Entry point ("pkg::module::function") or the kind name
        type_arguments: Generic type parameters
        arguments: Typed arguments, in call order
        outputs: Number of values the operation yields to later operations
    """
    kind: str
    target: str
    type_arguments: Tuple[str, ...] = ()
    arguments: Tuple[Argument, ...] = ()
    outputs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "target": self.target,
            "typeArguments": list(self.type_arguments),
            "arguments": [a.to_dict() for a in self.arguments],
            "outputs": self.outputs,
        }


@dataclass(frozen=True)
class Batch:
    """
    Immutable, validated batch plus its declared gas budget.

    Only compose_batch() should construct one; it resolves every reference.
    """
    operations: Tuple[Operation, ...]
    gas_budget: int
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "gasBudget": str(self.gas_budget),
            "operations": [op.to_dict() for op in self.operations],
        }

    def to_bytes(self) -> bytes:
        """Canonical bytes handed to the signer."""
        return canonical_json_bytes(self.to_dict())

    def digest(self) -> str:
        return digest_of(self.to_dict())

    @property
    def targets(self) -> List[str]:
        return [op.target for op in self.operations]

    def indexes_of(self, target: str) -> List[int]:
        return [i for i, op in enumerate(self.operations) if op.target == target]


def _check_reference(
    ops: Sequence[Operation], position: int, ref: Ref, consumed: Set[Tuple[int, int]]
) -> None:
    if ref.op < 0 or ref.op >= position:
        raise UnresolvedReferenceError(
            f"operation {position} references operation {ref.op}, which does not precede it"
        )
    produced = ops[ref.op].outputs
    if ref.index < 0 or ref.index >= produced:
        raise UnresolvedReferenceError(
            f"operation {position} references output {ref.index} of operation {ref.op}, "
            f"which yields {produced} output(s)"
        )
    key = (ref.op, ref.index)
    if key in consumed:
        raise UnresolvedReferenceError(
            f"operation {position} references output {ref.index} of operation {ref.op}, "
            "which was already consumed"
        )
    if not ref.borrow:
        consumed.add(key)


def _check_shape(position: int, op: Operation) -> None:
    if op.kind not in OPERATION_KINDS:
        raise ValueError(f"operation {position}: unknown kind {op.kind!r}")
    if op.outputs < 0:
        raise ValueError(f"operation {position}: outputs must be >= 0")
    if op.kind == SPLIT_COINS:
        if not op.arguments or not isinstance(op.arguments[0], (GasCoin, Ref)):
            raise TypeError(f"operation {position}: split_coins needs a coin source first")
        if op.outputs != len(op.arguments) - 1:
            raise ValueError(f"operation {position}: split_coins yields one coin per amount")
    if op.kind == TRANSFER_OBJECTS:
        if len(op.arguments) < 2 or not isinstance(op.arguments[-1], (Address, Ref)):
            raise TypeError(f"operation {position}: transfer_objects needs objects then a recipient")
        if op.outputs != 0:
            raise ValueError(f"operation {position}: transfer_objects yields nothing")


def compose_batch(
    operations: Iterable[Operation], gas_budget: int, label: Optional[str] = None
) -> Batch:
    """
    Validate an ordered list of operations and freeze it into a Batch.

    Args:
        operations: Operation descriptors, in execution order
        gas_budget: Declared resource budget (minor units)
        label: Transition name carried for logging and errors

    Returns:
        Batch

    Raises:
        UnresolvedReferenceError: If an argument references an output that
            does not exist, does not precede it, or was already consumed
    """
    if isinstance(gas_budget, bool) or not isinstance(gas_budget, int) or gas_budget <= 0:
        raise ValueError("gas_budget must be a positive integer")

    ops = tuple(operations)
    if not ops:
        raise ValueError("batch must contain at least one operation")

    consumed: Set[Tuple[int, int]] = set()
    try:
        for position, op in enumerate(ops):
            _check_shape(position, op)
            for arg in op.arguments:
                if isinstance(arg, Ref):
                    _check_reference(ops, position, arg, consumed)
    except UnresolvedReferenceError as e:
        e.transition = e.transition or label
        raise

    return Batch(operations=ops, gas_budget=gas_budget, label=label)


class BatchComposer:
    """
    Incremental builder over compose_batch().

    Each add method appends one Operation and returns Refs to its outputs.
    build() runs the full validation.
    """

    def __init__(self, gas_budget: int, label: Optional[str] = None) -> None:
        self.gas_budget = gas_budget
        self.label = label
        self._ops: List[Operation] = []

    def __len__(self) -> int:
        return len(self._ops)

    def add(self, op: Operation) -> Tuple[Ref, ...]:
        position = len(self._ops)
        self._ops.append(op)
        return tuple(Ref(position, i) for i in range(op.outputs))

    def move_call(
        self,
        target: str,
        arguments: Sequence[Argument] = (),
        type_arguments: Sequence[str] = (),
        returns: int = 0,
    ) -> Tuple[Ref, ...]:
        return self.add(
            Operation(
                kind=MOVE_CALL,
                target=target,
                type_arguments=tuple(type_arguments),
                arguments=tuple(arguments),
                outputs=returns,
            )
        )

    def split_coins(self, coin: Argument, amounts: Sequence[U64]) -> Tuple[Ref, ...]:
        return self.add(
            Operation(
                kind=SPLIT_COINS,
                target=SPLIT_COINS,
                arguments=(coin, *amounts),
                outputs=len(amounts),
            )
        )

    def transfer_objects(self, objects: Sequence[Argument], recipient: Argument) -> None:
        self.add(
            Operation(
                kind=TRANSFER_OBJECTS,
                target=TRANSFER_OBJECTS,
                arguments=(*objects, recipient),
            )
        )

    def build(self) -> Batch:
        return compose_batch(self._ops, self.gas_budget, label=self.label)
