"""
In-memory ledger.

Executes composed batches against a local object store and returns reports
in the same loose JSON shape a full node produces. Used by tests, the demo
CLI and any caller without a live node.

Execution model:
- every batch runs against a private copy of the store and commits only if
  every operation succeeds (all-or-nothing)
- by-value results without drop (coins, objects, transfer requests) must be
  consumed before the batch ends
- a fixed network fee is charged per batch, also when it fails
- submit() holds a lock, so racing submissions are serialized and at most
  one of two conflicting batches succeeds

Escrow sales pay the escrow owner directly, less any royalty the transfer
approval routes to its recipient.
"""

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..compose.args import Address, GasCoin, Id, ObjectArg, Ref, Str, U16, U64
from ..compose.batch import MOVE_CALL, SPLIT_COINS, TRANSFER_OBJECTS, Batch, Operation
from ..config import BPS_DENOMINATOR, FRAMEWORK
from ..core.ids import require_id, stable_id
from ..effects.type_tags import SUI_COIN
from .interfaces import DEFAULT_REPORT_OPTIONS, LedgerClient, ReportOptions, Signer
from .signer import address_from_public_key, verify_signature

logger = logging.getLogger(__name__)

DEFAULT_FEE = 1_000_000

KIOSK_TYPE = f"{FRAMEWORK}::kiosk::Kiosk"
KIOSK_CAP_TYPE = f"{FRAMEWORK}::kiosk::KioskOwnerCap"
PUBLISHER_TYPE = f"{FRAMEWORK}::package::Publisher"

# value kinds flowing between operations of one batch
OBJECT = "object"
COIN = "coin"
REQUEST = "request"
PLAIN = "plain"
GAS_SOURCE = "gas"


class ExecutionAbort(Exception):
    """Raised inside a batch; the batch fails and nothing commits."""

    def __init__(self, message: str, command: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.command = command

    def __str__(self) -> str:
        if self.command is None:
            return self.message
        return f"{self.message} in command {self.command}"


@dataclass
class _Value:
    kind: str
    payload: Any = None
    droppable: bool = False


def _owner_address(address: str) -> Dict[str, Any]:
    return {"AddressOwner": address}


def _owner_shared(version: int) -> Dict[str, Any]:
    return {"Shared": {"initial_shared_version": version}}


def _owner_object(object_id: str) -> Dict[str, Any]:
    return {"ObjectOwner": object_id}


def _abort(module: str, function: str, code: int, reason: str) -> ExecutionAbort:
    return ExecutionAbort(f"MoveAbort({module}::{function}, {code}) {reason}")


@dataclass
class _Execution:
    """Working state of one batch."""
    sender: str
    version: int
    objects: Dict[str, Dict[str, Any]]
    balances: Dict[str, int]
    reserved_fee: int
    results: List[List[_Value]] = field(default_factory=list)
    consumed: Set[Tuple[int, int]] = field(default_factory=set)
    created: List[str] = field(default_factory=list)
    touched: List[str] = field(default_factory=list)
    balance_order: List[str] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def credit(self, address: str, amount: int) -> None:
        if address not in self.balance_order:
            self.balance_order.append(address)
        self.balances[address] = self.balances.get(address, 0) + amount

    def touch(self, object_id: str) -> None:
        if object_id not in self.touched:
            self.touched.append(object_id)
        self.objects[object_id]["version"] = self.version

    def new_object(self, object_type: str, fields: Dict[str, Any]) -> str:
        object_id = stable_id("object", str(self.version), str(len(self.created)), object_type)
        self.objects[object_id] = {
            "objectId": object_id,
            "type": object_type,
            "owner": None,
            "version": self.version,
            "fields": fields,
        }
        self.created.append(object_id)
        self.touch(object_id)
        return object_id

    def set_owner(self, object_id: str, owner: Dict[str, Any]) -> None:
        self.objects[object_id]["owner"] = owner
        self.touch(object_id)

    def resolve(self, arg: Any) -> Any:
        """Argument -> python value (pure) or _Value (object/coin/result)."""
        if isinstance(arg, (U64, U16, Str, Address, Id)):
            return arg.value
        if isinstance(arg, GasCoin):
            return _Value(GAS_SOURCE)
        if isinstance(arg, ObjectArg):
            obj = self.objects.get(arg.object_id)
            if obj is None:
                raise ExecutionAbort(f"ObjectNotFound({arg.object_id})")
            owner = obj["owner"] or {}
            if "AddressOwner" in owner and owner["AddressOwner"] != self.sender:
                raise ExecutionAbort(f"ObjectNotOwnedBySender({arg.object_id})")
            if "ObjectOwner" in owner:
                raise ExecutionAbort(f"ObjectNotAccessible({arg.object_id})")
            return _Value(OBJECT, arg.object_id)
        if isinstance(arg, Ref):
            value = self.results[arg.op][arg.index]
            if not arg.borrow:
                self.consumed.add((arg.op, arg.index))
            return value
        raise ExecutionAbort(f"UnsupportedArgument({type(arg).__name__})")

    def object_of(self, value: Any, type_prefix: str) -> Dict[str, Any]:
        if not isinstance(value, _Value) or value.kind != OBJECT:
            raise ExecutionAbort(f"TypeMismatch: expected object of {type_prefix}")
        obj = self.objects[value.payload]
        if not obj["type"].startswith(type_prefix):
            raise ExecutionAbort(f"TypeMismatch: {obj['type']} is not {type_prefix}")
        return obj

    def emit(self, event_type: str, module: str, fields: Dict[str, Any]) -> None:
        self.events.append(
            {
                "type": event_type,
                "transactionModule": module,
                "sender": self.sender,
                "parsedJson": fields,
            }
        )


Handler = Callable[[_Execution, Operation, List[Any]], List[_Value]]


class InMemoryLedger(LedgerClient):
    """
    Thread-safe simulated ledger for one ticketing package.

    Usage:
        ledger = InMemoryLedger(package_id="0xabc")
        ledger.fund(signer.address(), 1_000_000_000)
        report = ledger.submit(batch, signer)
    """

    def __init__(self, package_id: str, fee: int = DEFAULT_FEE):
        require_id(package_id, "package_id")
        if fee < 0:
            raise ValueError("fee must be >= 0")
        self.package_id = package_id
        self.fee = fee
        self._objects: Dict[str, Dict[str, Any]] = {}
        self._balances: Dict[str, int] = {}
        self._version = 0
        self._submissions = 0
        self._lock = threading.Lock()
        self._handlers: Dict[str, Handler] = {}

        pkg = package_id
        self.register(f"{pkg}::event::new", self._event_new)
        self.register(f"{pkg}::class::new", self._class_new)
        self.register(f"{pkg}::ticket::mint", self._ticket_mint)
        self.register(f"{pkg}::ticket::mark_used", self._ticket_mark_used)
        self.register(f"{pkg}::royalty::add_rule", self._royalty_add_rule)
        self.register(f"{FRAMEWORK}::kiosk::default", self._kiosk_default)
        self.register(f"{FRAMEWORK}::kiosk::place_and_list", self._kiosk_place_and_list)
        self.register(f"{FRAMEWORK}::kiosk::purchase", self._kiosk_purchase)
        self.register(f"{FRAMEWORK}::transfer_policy::new", self._policy_new)
        self.register(f"{FRAMEWORK}::transfer_policy::confirm_request", self._policy_confirm)
        self.register(f"{FRAMEWORK}::transfer::public_share_object", self._share_object)

    def register(self, target: str, handler: Handler) -> None:
        self._handlers[target] = handler

    @property
    def ticket_type(self) -> str:
        return f"{self.package_id}::ticket::Ticket"

    @property
    def submissions(self) -> int:
        return self._submissions

    # setup helpers

    def fund(self, address: str, amount: int) -> int:
        """Credit address with amount of the native coin; returns new balance."""
        require_id(address, "address")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("amount must be a positive integer")
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount
            return self._balances[address]

    def create_publisher(self, owner: str) -> str:
        """Seed a package Publisher owned by owner (needed to create a policy)."""
        require_id(owner, "owner")
        with self._lock:
            self._version += 1
            object_id = stable_id("publisher", self.package_id, owner, str(self._version))
            self._objects[object_id] = {
                "objectId": object_id,
                "type": PUBLISHER_TYPE,
                "owner": _owner_address(owner),
                "version": self._version,
                "fields": {"package": self.package_id},
            }
            return object_id

    # LedgerClient

    def get_balance(self, address: str, coin_type: Optional[str] = None) -> int:
        if coin_type is not None and coin_type != SUI_COIN:
            return 0
        with self._lock:
            return self._balances.get(address, 0)

    def get_object(self, object_id: str) -> Dict[str, Any]:
        with self._lock:
            if object_id not in self._objects:
                raise KeyError(object_id)
            return copy.deepcopy(self._objects[object_id])

    def submit(
        self, batch: Batch, signer: Signer, options: Optional[ReportOptions] = None
    ) -> Dict[str, Any]:
        options = options or DEFAULT_REPORT_OPTIONS
        sender = signer.address()
        data = batch.to_bytes()
        signature = signer.sign(data)

        with self._lock:
            self._submissions += 1
            self._version += 1
            digest = stable_id("tx", str(self._version), batch.digest(), sender)

            public_key = signer.public_key_bytes()
            if address_from_public_key(public_key) != sender or not verify_signature(
                public_key, data, signature
            ):
                return self._report(digest, sender, options, error="InvalidSignature", fee=0)

            balance = self._balances.get(sender, 0)
            if balance < batch.gas_budget:
                return self._report(
                    digest, sender, options,
                    error=f"InsufficientGas: balance {balance} below budget {batch.gas_budget}",
                    fee=0,
                )

            charged = min(self.fee, batch.gas_budget)
            if self.fee > batch.gas_budget:
                return self._fail(digest, sender, options, "InsufficientGas", charged)

            run = _Execution(
                sender=sender,
                version=self._version,
                objects=copy.deepcopy(self._objects),
                balances=dict(self._balances),
                reserved_fee=charged,
            )
            try:
                self._execute(run, batch)
            except ExecutionAbort as e:
                logger.info("batch %s aborted: %s", batch.label or "-", e)
                return self._fail(digest, sender, options, str(e), charged)

            run.credit(sender, -charged)
            before = dict(self._balances)
            self._objects = run.objects
            self._balances = run.balances
            return self._report(digest, sender, options, run=run, before=before, fee=charged)

    # execution

    def _execute(self, run: _Execution, batch: Batch) -> None:
        for position, op in enumerate(batch.operations):
            try:
                args = [run.resolve(a) for a in op.arguments]
                if op.kind == SPLIT_COINS:
                    outputs = self._split_coins(run, args)
                elif op.kind == TRANSFER_OBJECTS:
                    outputs = self._transfer_objects(run, args)
                elif op.kind == MOVE_CALL:
                    handler = self._handlers.get(op.target)
                    if handler is None:
                        raise ExecutionAbort(f"FunctionNotFound({op.target})")
                    outputs = handler(run, op, args)
                else:
                    raise ExecutionAbort(f"UnknownOperation({op.kind})")
            except ExecutionAbort as e:
                if e.command is None:
                    e.command = position
                raise
            if len(outputs) != op.outputs:
                raise ExecutionAbort(
                    f"ArityMismatch: {op.target} yields {len(outputs)}, batch expects {op.outputs}",
                    command=position,
                )
            run.results.append(outputs)

        for position, outputs in enumerate(run.results):
            for index, value in enumerate(outputs):
                if value.droppable or (position, index) in run.consumed:
                    continue
                raise ExecutionAbort(
                    f"UnusedValueWithoutDrop {{ result_idx: {position}, secondary_idx: {index} }}"
                )

    def _split_coins(self, run: _Execution, args: List[Any]) -> List[_Value]:
        source, amounts = args[0], args[1:]
        if not isinstance(source, _Value) or source.kind not in (GAS_SOURCE, COIN):
            raise ExecutionAbort("TypeMismatch: split_coins needs a coin")
        total = sum(amounts)
        if source.kind == GAS_SOURCE:
            available = run.balances.get(run.sender, 0) - run.reserved_fee
            if total > available:
                raise ExecutionAbort(f"InsufficientCoinBalance: need {total}, have {available}")
            run.credit(run.sender, -total)
        else:
            if total > source.payload:
                raise ExecutionAbort(f"InsufficientCoinBalance: need {total}, have {source.payload}")
            source.payload -= total
        return [_Value(COIN, amount) for amount in amounts]

    def _transfer_objects(self, run: _Execution, args: List[Any]) -> List[_Value]:
        values, recipient = args[:-1], args[-1]
        if isinstance(recipient, _Value):
            recipient = recipient.payload
        if not isinstance(recipient, str):
            raise ExecutionAbort("TypeMismatch: recipient must be an address")
        for value in values:
            if not isinstance(value, _Value):
                raise ExecutionAbort("TypeMismatch: transfer_objects moves objects or coins")
            if value.kind == COIN:
                run.credit(recipient, value.payload)
            elif value.kind == OBJECT:
                run.set_owner(value.payload, _owner_address(recipient))
            else:
                raise ExecutionAbort(f"TypeMismatch: cannot transfer a {value.kind}")
        return []

    # ticketing package

    def _event_new(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        name, starts_at, ends_at, poster_ref = args
        if ends_at < starts_at:
            raise _abort("event", "new", 1, "event ends before it starts")
        event_id = run.new_object(
            f"{self.package_id}::event::Event",
            {
                "name": name,
                "starts_at": starts_at,
                "ends_at": ends_at,
                "poster_ref": poster_ref,
                "creator": run.sender,
            },
        )
        run.set_owner(event_id, _owner_address(run.sender))
        return []

    def _class_new(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        event_value, face_price, supply = args
        event = run.object_of(event_value, f"{self.package_id}::event::Event")
        if supply <= 0:
            raise _abort("class", "new", 1, "supply must be positive")
        class_id = run.new_object(
            f"{self.package_id}::class::TicketClass",
            {
                "event_id": event["objectId"],
                "face_price": face_price,
                "supply": supply,
                "issued": 0,
                "organizer": run.sender,
            },
        )
        run.set_owner(class_id, _owner_shared(run.version))
        return []

    def _ticket_mint(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        (class_value,) = args
        ticket_class = run.object_of(class_value, f"{self.package_id}::class::TicketClass")
        fields = ticket_class["fields"]
        if run.sender != fields["organizer"]:
            raise _abort("ticket", "mint", 2, "sender is not the organizer")
        if fields["issued"] >= fields["supply"]:
            raise _abort("ticket", "mint", 1, "supply exhausted")
        fields["issued"] += 1
        run.touch(ticket_class["objectId"])
        ticket_id = run.new_object(
            self.ticket_type,
            {"class_id": ticket_class["objectId"], "event_id": fields["event_id"], "used": False},
        )
        run.set_owner(ticket_id, _owner_address(run.sender))
        return []

    def _ticket_mark_used(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        (ticket_value,) = args
        ticket = run.object_of(ticket_value, self.ticket_type)
        if ticket["fields"]["used"]:
            raise _abort("ticket", "mark_used", 3, "ticket already used")
        ticket["fields"]["used"] = True
        run.touch(ticket["objectId"])
        return []

    def _royalty_add_rule(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        policy_value, cap_value, recipient, bps = args
        policy = run.object_of(policy_value, f"{FRAMEWORK}::transfer_policy::TransferPolicy<")
        cap = run.object_of(cap_value, f"{FRAMEWORK}::transfer_policy::TransferPolicyCap<")
        if cap["fields"]["policy_id"] != policy["objectId"]:
            raise _abort("royalty", "add_rule", 1, "capability does not match policy")
        if bps > BPS_DENOMINATOR:
            raise _abort("royalty", "add_rule", 2, "royalty above 100%")
        policy["fields"]["royalty"] = {"recipient": recipient, "bps": bps}
        run.touch(policy["objectId"])
        return []

    # framework

    def _kiosk_default(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        kiosk_id = run.new_object(KIOSK_TYPE, {"owner": run.sender, "items": [], "listings": {}})
        cap_id = run.new_object(KIOSK_CAP_TYPE, {"for": kiosk_id})
        run.set_owner(kiosk_id, _owner_shared(run.version))
        run.set_owner(cap_id, _owner_address(run.sender))
        return []

    def _kiosk_place_and_list(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        kiosk_value, cap_value, item_value, price = args
        kiosk = run.object_of(kiosk_value, KIOSK_TYPE)
        cap = run.object_of(cap_value, KIOSK_CAP_TYPE)
        if cap["fields"]["for"] != kiosk["objectId"]:
            raise _abort("kiosk", "place_and_list", 0, "owner capability does not match kiosk")
        item_type = op.type_arguments[0] if op.type_arguments else None
        item = run.object_of(item_value, item_type or "")
        item_id = item["objectId"]
        kiosk["fields"]["items"].append(item_id)
        kiosk["fields"]["listings"][item_id] = price
        run.touch(kiosk["objectId"])
        run.set_owner(item_id, _owner_object(kiosk["objectId"]))
        run.emit(
            f"{FRAMEWORK}::kiosk::ItemListed<{item['type']}>",
            "kiosk",
            {"kiosk": kiosk["objectId"], "id": item_id, "price": str(price)},
        )
        return []

    def _kiosk_purchase(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        kiosk_value, item_id, payment = args
        kiosk = run.object_of(kiosk_value, KIOSK_TYPE)
        listings = kiosk["fields"]["listings"]
        if item_id not in listings:
            raise _abort("kiosk", "purchase", 1, "item is not listed")
        if not isinstance(payment, _Value) or payment.kind != COIN:
            raise ExecutionAbort("TypeMismatch: purchase needs a payment coin")
        price = listings[item_id]
        if payment.payload != price:
            raise _abort("kiosk", "purchase", 2, f"incorrect amount {payment.payload}, listed {price}")
        item = run.objects[item_id]
        if op.type_arguments and item["type"] != op.type_arguments[0]:
            raise ExecutionAbort(f"TypeMismatch: item is {item['type']}")

        del listings[item_id]
        kiosk["fields"]["items"].remove(item_id)
        run.touch(kiosk["objectId"])
        run.objects[item_id]["owner"] = None
        request = {
            "item": item_id,
            "item_type": item["type"],
            "paid": payment.payload,
            "seller": kiosk["fields"]["owner"],
        }
        return [_Value(OBJECT, item_id), _Value(REQUEST, request)]

    def _policy_new(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        (publisher_value,) = args
        run.object_of(publisher_value, PUBLISHER_TYPE)
        if not op.type_arguments:
            raise ExecutionAbort("TypeMismatch: transfer_policy::new needs a type argument")
        item_type = op.type_arguments[0]
        policy_id = run.new_object(
            f"{FRAMEWORK}::transfer_policy::TransferPolicy<{item_type}>",
            {"item_type": item_type, "royalty": None},
        )
        cap_id = run.new_object(
            f"{FRAMEWORK}::transfer_policy::TransferPolicyCap<{item_type}>",
            {"policy_id": policy_id},
        )
        return [_Value(OBJECT, policy_id), _Value(OBJECT, cap_id)]

    def _policy_confirm(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        policy_value, request_value = args
        policy = run.object_of(policy_value, f"{FRAMEWORK}::transfer_policy::TransferPolicy<")
        if not isinstance(request_value, _Value) or request_value.kind != REQUEST:
            raise ExecutionAbort("TypeMismatch: confirm_request needs a transfer request")
        request = request_value.payload
        if policy["fields"]["item_type"] != request["item_type"]:
            raise _abort("transfer_policy", "confirm_request", 0, "policy does not cover this type")

        paid = request["paid"]
        royalty = policy["fields"].get("royalty")
        owed = 0
        if royalty:
            owed = paid * royalty["bps"] // BPS_DENOMINATOR
            if owed:
                run.credit(royalty["recipient"], owed)
        run.credit(request["seller"], paid - owed)
        return [_Value(PLAIN, (request["item"], paid), droppable=True)]

    def _share_object(self, run: _Execution, op: Operation, args: List[Any]) -> List[_Value]:
        (value,) = args
        if not isinstance(value, _Value) or value.kind != OBJECT:
            raise ExecutionAbort("TypeMismatch: only objects can be shared")
        run.set_owner(value.payload, _owner_shared(run.version))
        return []

    # reports

    def _fail(
        self, digest: str, sender: str, options: ReportOptions, error: str, fee: int
    ) -> Dict[str, Any]:
        # committed state is untouched apart from the fee
        self._balances[sender] = self._balances.get(sender, 0) - fee
        return self._report(digest, sender, options, error=error, fee=fee)

    def _report(
        self,
        digest: str,
        sender: str,
        options: ReportOptions,
        run: Optional[_Execution] = None,
        before: Optional[Dict[str, int]] = None,
        error: Optional[str] = None,
        fee: int = 0,
    ) -> Dict[str, Any]:
        status: Dict[str, Any] = {"status": "failure", "error": error} if error else {"status": "success"}
        effects: Dict[str, Any] = {"status": status}
        if options.show_effects:
            effects["gasUsed"] = {
                "computationCost": str(fee),
                "storageCost": "0",
                "storageRebate": "0",
                "nonRefundableStorageFee": "0",
            }
        report: Dict[str, Any] = {"digest": digest, "effects": effects}

        if options.show_object_changes:
            report["objectChanges"] = self._object_changes(run, sender) if run else []
        if options.show_balance_changes:
            if run is not None:
                report["balanceChanges"] = self._balance_changes(run, before or {})
            elif fee:
                report["balanceChanges"] = [
                    {"owner": _owner_address(sender), "coinType": SUI_COIN, "amount": str(-fee)}
                ]
            else:
                report["balanceChanges"] = []
        if options.show_events:
            report["events"] = []
            for seq, event in enumerate(run.events if run else []):
                report["events"].append(
                    dict(event, id={"txDigest": digest, "eventSeq": str(seq)}, packageId=FRAMEWORK)
                )
        return report

    def _object_changes(self, run: _Execution, sender: str) -> List[Dict[str, Any]]:
        changes = []
        for object_id in run.touched:
            obj = run.objects[object_id]
            changes.append(
                {
                    "type": "created" if object_id in run.created else "mutated",
                    "sender": sender,
                    "owner": obj["owner"],
                    "objectType": obj["type"],
                    "objectId": object_id,
                    "version": str(obj["version"]),
                }
            )
        return changes

    def _balance_changes(self, run: _Execution, before: Dict[str, int]) -> List[Dict[str, Any]]:
        changes = []
        for address in run.balance_order:
            delta = run.balances.get(address, 0) - before.get(address, 0)
            if delta:
                changes.append(
                    {"owner": _owner_address(address), "coinType": SUI_COIN, "amount": str(delta)}
                )
        return changes
