"""
Ticket Lifecycle State Machine.

    Minted --list--> Listed --buy_and_approve--> Owned --check_in--> CheckedIn

Planning is pure: plan_*() checks the transition's precondition against the
snapshot the caller supplies and composes the batch that implements it.
Nothing is submitted here. A precondition failure raises before any batch
exists.

Advancing is also pure: advance() maps (plan, successful effects) to the new
snapshots. Handlers are registered per transition, reducer-style.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..compose.args import ObjectArg
from ..compose.batch import Batch, BatchComposer
from ..config import TicketingConfig
from ..core import errors
from ..core.errors import (
    InvalidTransitionError,
    LedgerExecutionFailure,
    MalformedReportError,
    OwnershipMismatchError,
    PreconditionFailedError,
)
from ..core.ids import require_arg
from ..core.state import Escrow, Ticket, TicketClass, TicketState
from ..effects.extractor import TypedEffects, find_ticket_id
from ..escrow.coordinator import EscrowPolicyCoordinator
from ..escrow.purchase import validate_purchase_batch


class Transition(str, Enum):
    MINT = "mint"
    LIST = "list"
    BUY_AND_APPROVE = "buy_and_approve"
    CHECK_IN = "check_in"


# transition -> (required state, resulting state); mint has no prior ticket
TRANSITIONS: Dict[Transition, tuple] = {
    Transition.MINT: (None, TicketState.MINTED),
    Transition.LIST: (TicketState.MINTED, TicketState.LISTED),
    Transition.BUY_AND_APPROVE: (TicketState.LISTED, TicketState.OWNED),
    Transition.CHECK_IN: (TicketState.OWNED, TicketState.CHECKED_IN),
}


@dataclass(frozen=True)
class TransitionPlan:
    """
    A composed, not-yet-submitted transition.

    Fields:
        asset_id: Ticket id, or the class id for mint
        context: Transition inputs needed to advance (issuer, buyer, price...)
    """
    transition: Transition
    asset_id: str
    batch: Batch
    ticket: Optional[Ticket] = None
    ticket_class: Optional[TicketClass] = None
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionResult:
    """Snapshots after a successful transition."""
    ticket: Ticket
    ticket_class: Optional[TicketClass] = None


Advancer = Callable[[TransitionPlan, TypedEffects], TransitionResult]


def _require_state(ticket: Ticket, transition: Transition) -> None:
    required, _ = TRANSITIONS[transition]
    if ticket.state != required:
        raise PreconditionFailedError(
            errors.WRONG_STATE,
            f"ticket is {ticket.state.value}, {transition.value} requires {required.value}",
            transition=transition.value,
            asset_id=ticket.id,
        )


class TicketLifecycle:
    """
    Transition table, preconditions and batch shape per transition.

    Usage:
        lifecycle = TicketLifecycle(config)
        plan = lifecycle.plan_check_in(ticket)
        ...submit plan.batch, extract effects...
        result = lifecycle.advance(plan, effects)
    """

    def __init__(
        self, config: TicketingConfig, coordinator: Optional[EscrowPolicyCoordinator] = None
    ) -> None:
        self.config = config
        self.coordinator = coordinator or EscrowPolicyCoordinator(config)
        self._advancers: Dict[Transition, Advancer] = {}
        self.register(Transition.MINT, self._advance_mint)
        self.register(Transition.LIST, self._advance_list)
        self.register(Transition.BUY_AND_APPROVE, self._advance_buy)
        self.register(Transition.CHECK_IN, self._advance_check_in)

    def register(self, transition: Transition, advancer: Advancer) -> None:
        self._advancers[transition] = advancer

    # planning

    def plan_mint(self, ticket_class: TicketClass, issuer: str) -> TransitionPlan:
        """
        Mint one ticket of ticket_class to issuer.

        Raises:
            PreconditionFailedError: SUPPLY_EXHAUSTED when issued >= supply,
                INVALID_ARGUMENT when issuer is empty
        """
        require_arg(issuer, "issuer", Transition.MINT.value, ticket_class.id)
        if ticket_class.issued >= ticket_class.supply:
            raise PreconditionFailedError(
                errors.SUPPLY_EXHAUSTED,
                f"class issued {ticket_class.issued} of {ticket_class.supply}",
                transition=Transition.MINT.value,
                asset_id=ticket_class.id,
            )
        composer = BatchComposer(self.config.gas.mint, label=Transition.MINT.value)
        composer.move_call(self.config.target("ticket", "mint"), [ObjectArg(ticket_class.id)])
        return TransitionPlan(
            transition=Transition.MINT,
            asset_id=ticket_class.id,
            batch=composer.build(),
            ticket_class=ticket_class,
            context={"issuer": issuer},
        )

    def plan_list(self, ticket: Ticket, escrow: Optional[Escrow], caller: str, price: int) -> TransitionPlan:
        """
        Deposit a minted ticket into the caller's escrow at price.

        Raises:
            PreconditionFailedError: WRONG_STATE, NOT_HOLDER, ESCROW_REQUIRED,
                INVALID_PRICE
        """
        _require_state(ticket, Transition.LIST)
        if caller != ticket.holder:
            raise PreconditionFailedError(
                errors.NOT_HOLDER,
                f"caller {caller} does not hold the ticket",
                transition=Transition.LIST.value,
                asset_id=ticket.id,
            )
        if escrow is None:
            raise PreconditionFailedError(
                errors.ESCROW_REQUIRED,
                "listing requires an existing escrow",
                transition=Transition.LIST.value,
                asset_id=ticket.id,
            )
        if escrow.owner != caller:
            raise PreconditionFailedError(
                errors.ESCROW_REQUIRED,
                f"escrow {escrow.id} is not owned by the caller",
                transition=Transition.LIST.value,
                asset_id=ticket.id,
            )
        batch = self.coordinator.build_listing_batch(escrow, ticket.id, price)
        return TransitionPlan(
            transition=Transition.LIST,
            asset_id=ticket.id,
            batch=batch,
            ticket=ticket,
            context={"escrow_id": escrow.id, "price": price, "seller": caller},
        )

    def plan_buy_and_approve(
        self,
        ticket: Ticket,
        ticket_class: TicketClass,
        approval_id: str,
        buyer: str,
        payment: int,
    ) -> TransitionPlan:
        """
        Buy a listed ticket out of escrow and transfer it to buyer, with the
        transfer approval confirmed in the same batch.

        Raises:
            PreconditionFailedError: WRONG_STATE, UNDERPAID, INVALID_PRICE,
                INVALID_ARGUMENT (empty approval or buyer, non-integer payment)
            PolicyNotConfirmedError: If the composed batch skips confirmation
        """
        _require_state(ticket, Transition.BUY_AND_APPROVE)
        if ticket.class_id != ticket_class.id:
            raise InvalidTransitionError(
                f"ticket belongs to class {ticket.class_id}, not {ticket_class.id}",
                transition=Transition.BUY_AND_APPROVE.value,
                asset_id=ticket.id,
            )
        if ticket.escrow_id is None:
            raise PreconditionFailedError(
                errors.ESCROW_REQUIRED,
                "listed ticket has no escrow",
                transition=Transition.BUY_AND_APPROVE.value,
                asset_id=ticket.id,
            )
        require_arg(approval_id, "approval_id", Transition.BUY_AND_APPROVE.value, ticket.id)
        require_arg(buyer, "buyer", Transition.BUY_AND_APPROVE.value, ticket.id)
        if isinstance(payment, bool) or not isinstance(payment, int):
            raise PreconditionFailedError(
                errors.INVALID_ARGUMENT,
                f"payment must be an integer amount in minor units, got {type(payment).__name__}",
                transition=Transition.BUY_AND_APPROVE.value,
                asset_id=ticket.id,
            )
        floor = max(ticket_class.face_price, ticket.listed_price or 0)
        if payment < floor:
            raise PreconditionFailedError(
                errors.UNDERPAID,
                f"payment {payment} below required {floor}",
                transition=Transition.BUY_AND_APPROVE.value,
                asset_id=ticket.id,
            )
        batch = self.coordinator.build_purchase_batch(
            ticket.escrow_id, ticket.id, payment, approval_id, buyer
        )
        return TransitionPlan(
            transition=Transition.BUY_AND_APPROVE,
            asset_id=ticket.id,
            batch=batch,
            ticket=ticket,
            ticket_class=ticket_class,
            context={
                "buyer": buyer,
                "seller": ticket.holder,
                "price": payment,
                "approval_id": approval_id,
            },
        )

    def plan_check_in(self, ticket: Ticket) -> TransitionPlan:
        """
        Mark an owned ticket used.

        Raises:
            PreconditionFailedError: ALREADY_USED, WRONG_STATE
        """
        if ticket.used:
            raise PreconditionFailedError(
                errors.ALREADY_USED,
                "ticket is already used",
                transition=Transition.CHECK_IN.value,
                asset_id=ticket.id,
            )
        _require_state(ticket, Transition.CHECK_IN)
        composer = BatchComposer(self.config.gas.check_in, label=Transition.CHECK_IN.value)
        composer.move_call(self.config.target("ticket", "mark_used"), [ObjectArg(ticket.id)])
        return TransitionPlan(
            transition=Transition.CHECK_IN,
            asset_id=ticket.id,
            batch=composer.build(),
            ticket=ticket,
        )

    def check_plan(self, plan: TransitionPlan) -> TransitionPlan:
        """
        Re-validate a plan's batch shape before submission.

        Raises:
            PolicyNotConfirmedError: If a purchase batch skips confirmation
        """
        if plan.transition is Transition.BUY_AND_APPROVE:
            validate_purchase_batch(plan.batch, asset_id=plan.asset_id)
        return plan

    # advancing

    def advance(self, plan: TransitionPlan, effects: TypedEffects) -> TransitionResult:
        """
        New snapshots after plan's batch executed successfully.

        Raises:
            LedgerExecutionFailure: If effects report failure (nothing advances)
            InvalidTransitionError: If no handler is registered
        """
        if not effects.succeeded:
            raise LedgerExecutionFailure(
                effects.error,
                transition=plan.transition.value,
                asset_id=plan.asset_id,
                digest=effects.digest,
            )
        if plan.transition not in self._advancers:
            raise InvalidTransitionError(
                f"No handler for transition: {plan.transition.value}",
                transition=plan.transition.value,
                asset_id=plan.asset_id,
            )
        return self._advancers[plan.transition](plan, effects)

    def _advance_mint(self, plan: TransitionPlan, effects: TypedEffects) -> TransitionResult:
        ticket_id = find_ticket_id(effects)
        if ticket_id is None:
            raise MalformedReportError(
                "successful mint report has no created ticket",
                transition=plan.transition.value,
                asset_id=plan.asset_id,
            )
        ticket_class = plan.ticket_class
        holder = effects.new_owner_of(ticket_id) or plan.context["issuer"]
        return TransitionResult(
            ticket=Ticket(id=ticket_id, class_id=ticket_class.id, holder=holder),
            ticket_class=ticket_class.with_issued(ticket_class.issued + 1),
        )

    def _advance_list(self, plan: TransitionPlan, effects: TypedEffects) -> TransitionResult:
        return TransitionResult(
            ticket=plan.ticket.listed(plan.context["escrow_id"], plan.context["price"])
        )

    def _advance_buy(self, plan: TransitionPlan, effects: TypedEffects) -> TransitionResult:
        buyer = plan.context["buyer"]
        new_owner = effects.new_owner_of(plan.ticket.id)
        if new_owner is not None and new_owner != buyer:
            raise OwnershipMismatchError(
                f"asset landed with {new_owner}, expected {buyer}",
                transition=plan.transition.value,
                asset_id=plan.asset_id,
            )
        return TransitionResult(ticket=plan.ticket.sold_to(buyer), ticket_class=plan.ticket_class)

    def _advance_check_in(self, plan: TransitionPlan, effects: TypedEffects) -> TransitionResult:
        return TransitionResult(ticket=plan.ticket.checked_in())
