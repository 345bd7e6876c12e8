"""
Ticket orchestrator: one blocking round-trip per transition.

    plan (local preconditions, batch composed)
      -> submit through the LedgerClient
      -> extract TypedEffects
      -> advance snapshots (nothing advances on a failure report)
      -> reconcile settlements (purchases)

The orchestrator keeps no state between calls. Callers pass the snapshots
they hold and get new ones back on the outcome. It never retries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .compose.batch import Batch
from .config import TicketingConfig
from .core.errors import (
    IntegrityError,
    LedgerExecutionFailure,
    MalformedReportError,
    SettlementMismatchError,
)
from .core.state import Escrow, Event, Ticket, TicketClass, TransferApproval
from .effects.extractor import (
    TypedEffects,
    extract_effects,
    find_class_id,
    find_escrow,
    find_event_id,
    find_listing_id,
    find_policy_id,
)
from .effects.type_tags import TypeTagMatcher
from .escrow.coordinator import EscrowPolicyCoordinator
from .explorer import tx_url
from .ledger.interfaces import LedgerClient, ReportOptions, Signer
from .lifecycle.machine import TicketLifecycle, Transition, TransitionPlan
from .lifecycle.organizer import CREATE_CLASS, CREATE_EVENT, build_class_batch, build_event_batch
from .logging_config import get_logger
from .metrics import track_settlement_mismatch, track_submit_duration, track_transition
from .settlement.reconciler import BalanceReconciler, Reconciliation

CREATE_ESCROW = "create_escrow"
CREATE_POLICY = "create_policy"


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of one successful lifecycle transition.

    Fields:
        ticket: Ticket snapshot after the transition
        ticket_class: Class snapshot (mint bumps issued)
        reconciliation: Settlement checks, for purchases
        listing_id: Listing id, for list
    """
    transition: str
    asset_id: str
    digest: Optional[str]
    effects: TypedEffects
    ticket: Optional[Ticket] = None
    ticket_class: Optional[TicketClass] = None
    reconciliation: Optional[Reconciliation] = None
    listing_id: Optional[str] = None

    @property
    def warnings(self) -> Tuple[Warning, ...]:
        return self.reconciliation.warnings if self.reconciliation else ()

    def to_dict(self, network: str = "testnet") -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "transition": self.transition,
            "asset_id": self.asset_id,
            "digest": self.digest,
            "explorer": tx_url(self.digest, network) if self.digest else None,
            "ticket": self.ticket.to_dict() if self.ticket else None,
            "warnings": [str(w) for w in self.warnings],
        }
        if self.ticket_class is not None:
            data["class_issued"] = self.ticket_class.issued
        if self.listing_id is not None:
            data["listing_id"] = self.listing_id
        if self.reconciliation is not None:
            rec = self.reconciliation
            data["settlement"] = {
                "payer_delta": rec.payer_delta,
                "network_fee": rec.network_fee,
                "credited": rec.credited,
                "debited": rec.debited,
                "royalty_observed": rec.royalty_observed,
                "payouts": [
                    {"role": p.role, "address": p.address, "expected": p.expected, "observed": p.observed}
                    for p in rec.payouts
                ],
            }
        return data


@dataclass(frozen=True)
class SetupOutcome:
    """Result of an organizer or bootstrap batch (event, class, escrow, policy)."""
    kind: str
    digest: Optional[str]
    effects: TypedEffects
    created: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)


class TicketOrchestrator:
    """
    Runs transitions end to end against a LedgerClient.

    Usage:
        orchestrator = TicketOrchestrator(config, ledger)
        outcome = orchestrator.mint(organizer, ticket_class)
        outcome = orchestrator.list(organizer, outcome.ticket, escrow, 250_000_000)
        outcome = orchestrator.buy_and_approve(buyer, outcome.ticket, ticket_class, policy_id, 250_000_000)
    """

    def __init__(
        self,
        config: TicketingConfig,
        ledger: LedgerClient,
        reconciler: Optional[BalanceReconciler] = None,
        lifecycle: Optional[TicketLifecycle] = None,
        options: Optional[ReportOptions] = None,
    ) -> None:
        self.config = config
        self.ledger = ledger
        self.coordinator = EscrowPolicyCoordinator(config)
        self.lifecycle = lifecycle or TicketLifecycle(config, self.coordinator)
        self.reconciler = reconciler or BalanceReconciler.from_config(config)
        self.matcher = TypeTagMatcher(config.type_match)
        self.options = options

    # submission

    def submit(self, batch: Batch, signer: Signer, transition: str, asset_id: Optional[str]) -> TypedEffects:
        """
        Submit batch and extract its effects.

        Raises:
            MalformedReportError: If the report has no status
            LedgerExecutionFailure: If the report status is failure
        """
        logger = get_logger(__name__, trace_id=asset_id)
        logger.info(
            "submitting %s (%d operations, budget %d)",
            transition, len(batch.operations), batch.gas_budget,
        )
        with track_submit_duration(transition):
            raw = self.ledger.submit(batch, signer, self.options)

        try:
            effects = extract_effects(raw, self.matcher)
        except MalformedReportError as e:
            track_transition(transition, "malformed_report")
            raise e.with_context(transition, asset_id)

        if not effects.succeeded:
            track_transition(transition, "ledger_failure")
            logger.error("%s rejected by ledger: %s", transition, effects.error)
            raise LedgerExecutionFailure(
                effects.error, transition=transition, asset_id=asset_id, digest=effects.digest
            )
        logger.info("%s executed: %s", transition, effects.digest)
        return effects

    def execute(self, plan: TransitionPlan, signer: Signer) -> TransitionOutcome:
        """
        Submit a planned transition and advance its snapshots.

        Raises:
            PolicyNotConfirmedError: If a purchase batch skips confirmation
            LedgerExecutionFailure: If the ledger rejects the batch
            IntegrityError: If a successful report contradicts the batch
        """
        transition = plan.transition.value
        self.lifecycle.check_plan(plan)

        pre_balances: Dict[str, int] = {}
        payer = signer.address()
        if plan.transition is Transition.BUY_AND_APPROVE:
            pre_balances[payer] = self.ledger.get_balance(payer)

        effects = self.submit(plan.batch, signer, transition, plan.asset_id)

        try:
            result = self.lifecycle.advance(plan, effects)
            reconciliation = None
            if plan.transition is Transition.BUY_AND_APPROVE:
                price = plan.context["price"]
                reconciliation = self.reconciler.reconcile(
                    pre_balances,
                    effects,
                    expected_spend=price,
                    payer=payer,
                    price=price,
                    transition=transition,
                    asset_id=plan.asset_id,
                )
        except IntegrityError as e:
            if isinstance(e, SettlementMismatchError):
                track_settlement_mismatch()
            track_transition(transition, "integrity_error")
            get_logger(__name__, trace_id=plan.asset_id).error("integrity check failed: %s", e)
            raise

        listing_id = None
        if plan.transition is Transition.LIST:
            listing_id = find_listing_id(effects, fallback=plan.asset_id)

        track_transition(transition, "success")
        return TransitionOutcome(
            transition=transition,
            asset_id=plan.asset_id,
            digest=effects.digest,
            effects=effects,
            ticket=result.ticket,
            ticket_class=result.ticket_class,
            reconciliation=reconciliation,
            listing_id=listing_id,
        )

    # lifecycle transitions

    def mint(self, signer: Signer, ticket_class: TicketClass) -> TransitionOutcome:
        return self.execute(self.lifecycle.plan_mint(ticket_class, signer.address()), signer)

    def list(self, signer: Signer, ticket: Ticket, escrow: Optional[Escrow], price: int) -> TransitionOutcome:
        return self.execute(self.lifecycle.plan_list(ticket, escrow, signer.address(), price), signer)

    def buy_and_approve(
        self,
        signer: Signer,
        ticket: Ticket,
        ticket_class: TicketClass,
        approval_id: Optional[str] = None,
        payment: Optional[int] = None,
    ) -> TransitionOutcome:
        """
        Buy a listed ticket; payment defaults to the listed price and the
        approval to the configured policy.
        """
        approval_id = approval_id or self.config.policy_id
        if payment is None:
            payment = ticket.listed_price if ticket.listed_price is not None else ticket_class.face_price
        plan = self.lifecycle.plan_buy_and_approve(
            ticket, ticket_class, approval_id, signer.address(), payment
        )
        return self.execute(plan, signer)

    def check_in(self, signer: Signer, ticket: Ticket) -> TransitionOutcome:
        return self.execute(self.lifecycle.plan_check_in(ticket), signer)

    # organizer and bootstrap

    def create_event(
        self, signer: Signer, name: str, starts_at: int, ends_at: int, poster_ref: str = ""
    ) -> SetupOutcome:
        batch = build_event_batch(self.config, name, starts_at, ends_at, poster_ref)
        effects = self.submit(batch, signer, CREATE_EVENT, None)
        event_id = self._require(find_event_id(effects), "event", CREATE_EVENT)
        event = Event(
            id=event_id,
            name=name,
            starts_at=starts_at,
            ends_at=ends_at,
            poster_ref=poster_ref,
            creator=signer.address(),
        )
        return SetupOutcome(CREATE_EVENT, effects.digest, effects, created=event)

    def create_class(self, signer: Signer, event: Event, face_price: int, supply: int) -> SetupOutcome:
        batch = build_class_batch(self.config, event.id, face_price, supply)
        effects = self.submit(batch, signer, CREATE_CLASS, event.id)
        class_id = self._require(find_class_id(effects), "ticket class", CREATE_CLASS, event.id)
        ticket_class = TicketClass(id=class_id, event_id=event.id, face_price=face_price, supply=supply)
        return SetupOutcome(CREATE_CLASS, effects.digest, effects, created=ticket_class)

    def create_escrow(self, signer: Signer) -> SetupOutcome:
        effects = self.submit(self.coordinator.build_escrow_batch(), signer, CREATE_ESCROW, None)
        kiosk_id, cap_id = find_escrow(effects)
        kiosk_id = self._require(kiosk_id, "escrow", CREATE_ESCROW)
        cap_id = self._require(cap_id, "escrow owner capability", CREATE_ESCROW, kiosk_id)
        escrow = Escrow(id=kiosk_id, owner_cap_id=cap_id, owner=signer.address())
        return SetupOutcome(CREATE_ESCROW, effects.digest, effects, created=escrow)

    def create_policy(
        self,
        signer: Signer,
        publisher_id: str,
        royalty_recipient: str,
        royalty_bps: int,
        admin: Optional[str] = None,
    ) -> SetupOutcome:
        batch = self.coordinator.build_policy_batch(publisher_id, royalty_recipient, royalty_bps, admin)
        effects = self.submit(batch, signer, CREATE_POLICY, publisher_id)
        policy_id = self._require(find_policy_id(effects), "transfer policy", CREATE_POLICY, publisher_id)
        approval = TransferApproval(
            id=policy_id,
            ticket_type=self.config.ticket_type,
            royalty_recipient=royalty_recipient,
            royalty_bps=royalty_bps,
        )
        return SetupOutcome(CREATE_POLICY, effects.digest, effects, created=approval)

    def _require(self, value: Optional[str], what: str, transition: str, asset_id: Optional[str] = None) -> str:
        if value is None:
            raise MalformedReportError(
                f"successful report has no created {what}", transition=transition, asset_id=asset_id
            )
        return value
