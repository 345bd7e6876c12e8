"""
Tests for the ticket lifecycle state machine.

Preconditions fail locally, before any batch exists. Advancing happens
only on a success report.
"""

import pytest

from tixflow.config import TicketingConfig
from tixflow.core import errors
from tixflow.core.errors import (
    InvalidTransitionError,
    LedgerExecutionFailure,
    OwnershipMismatchError,
    PreconditionFailedError,
)
from tixflow.core.state import Escrow, Ticket, TicketClass, TicketState
from tixflow.effects import extract_effects
from tixflow.lifecycle import Transition, TicketLifecycle, build_class_batch
from tixflow.tests.reports import PKG, addr, created, mutated, report

CONFIG = TicketingConfig(package_id=PKG)
TICKET_TYPE = f"{PKG}::ticket::Ticket"


def _class(issued=0, supply=100, face_price=200):
    return TicketClass(id="0xclass", event_id="0xevent", face_price=face_price, supply=supply, issued=issued)


def _listed(price=250):
    return Ticket(
        id="0xticket", class_id="0xclass", holder="0xseller",
        state=TicketState.LISTED, escrow_id="0xkiosk", listed_price=price,
    )


def _mint_report(ticket_id):
    return extract_effects(report(changes=[
        mutated("0xclass", f"{PKG}::class::TicketClass", {"Shared": {}}),
        created(ticket_id, TICKET_TYPE, addr("0xorg")),
    ]))


def test_mint_supply_cap_enforced_locally():
    """100 mints succeed; the 101st is rejected before composing a batch."""
    lifecycle = TicketLifecycle(CONFIG)
    ticket_class = _class(supply=100)

    for i in range(100):
        plan = lifecycle.plan_mint(ticket_class, "0xorg")
        result = lifecycle.advance(plan, _mint_report(f"0xt{i}"))
        ticket_class = result.ticket_class
        if i == 0:
            assert ticket_class.issued == 1

    assert ticket_class.issued == 100
    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_mint(ticket_class, "0xorg")
    assert exc.value.reason == errors.SUPPLY_EXHAUSTED
    assert exc.value.transition == "mint"
    assert exc.value.asset_id == "0xclass"


def test_mint_advances_new_ticket_to_minted():
    """The created ticket lands with its issuer in Minted."""
    lifecycle = TicketLifecycle(CONFIG)
    plan = lifecycle.plan_mint(_class(), "0xorg")

    result = lifecycle.advance(plan, _mint_report("0xnew"))

    assert result.ticket.id == "0xnew"
    assert result.ticket.holder == "0xorg"
    assert result.ticket.state is TicketState.MINTED


def test_list_requires_holder_and_own_escrow():
    """Only the holder can list, and only into their own escrow."""
    lifecycle = TicketLifecycle(CONFIG)
    ticket = Ticket(id="0xt", class_id="0xclass", holder="0xseller")
    escrow = Escrow(id="0xkiosk", owner_cap_id="0xcap", owner="0xseller")

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_list(ticket, escrow, "0xstranger", 100)
    assert exc.value.reason == errors.NOT_HOLDER

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_list(ticket, None, "0xseller", 100)
    assert exc.value.reason == errors.ESCROW_REQUIRED

    foreign = Escrow(id="0xother", owner_cap_id="0xcap2", owner="0xsomeone")
    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_list(ticket, foreign, "0xseller", 100)
    assert exc.value.reason == errors.ESCROW_REQUIRED

    plan = lifecycle.plan_list(ticket, escrow, "0xseller", 100)
    assert plan.batch.targets == ["0x2::kiosk::place_and_list"]


def test_list_advances_to_listed():
    """Listing records escrow and price."""
    lifecycle = TicketLifecycle(CONFIG)
    ticket = Ticket(id="0xt", class_id="0xclass", holder="0xseller")
    escrow = Escrow(id="0xkiosk", owner_cap_id="0xcap", owner="0xseller")
    plan = lifecycle.plan_list(ticket, escrow, "0xseller", 300)

    result = lifecycle.advance(plan, extract_effects(report(changes=[])))

    assert result.ticket.state is TicketState.LISTED
    assert result.ticket.escrow_id == "0xkiosk"
    assert result.ticket.listed_price == 300


def test_buy_requires_listed_state_and_payment():
    """Wrong state and underpayment fail before composition."""
    lifecycle = TicketLifecycle(CONFIG)
    minted = Ticket(id="0xticket", class_id="0xclass", holder="0xseller")

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_buy_and_approve(minted, _class(), "0xpolicy", "0xbuyer", 250)
    assert exc.value.reason == errors.WRONG_STATE

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_buy_and_approve(_listed(price=250), _class(face_price=200), "0xpolicy", "0xbuyer", 199)
    assert exc.value.reason == errors.UNDERPAID

    plan = lifecycle.plan_buy_and_approve(_listed(), _class(), "0xpolicy", "0xbuyer", 250)
    assert plan.context["buyer"] == "0xbuyer"
    assert plan.context["seller"] == "0xseller"


def test_buy_without_approval_names_transition_and_ticket():
    """No transfer approval configured: a precondition failure on the ticket."""
    lifecycle = TicketLifecycle(CONFIG)

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_buy_and_approve(_listed(), _class(), None, "0xbuyer", 250)

    assert exc.value.reason == errors.INVALID_ARGUMENT
    assert exc.value.transition == "buy_and_approve"
    assert exc.value.asset_id == "0xticket"
    assert "transition=buy_and_approve" in str(exc.value)


def test_buy_rejects_bad_buyer_and_payment_type():
    lifecycle = TicketLifecycle(CONFIG)

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_buy_and_approve(_listed(), _class(), "0xpolicy", "", 250)
    assert exc.value.reason == errors.INVALID_ARGUMENT
    assert exc.value.asset_id == "0xticket"

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_buy_and_approve(_listed(), _class(), "0xpolicy", "0xbuyer", 250.0)
    assert exc.value.reason == errors.INVALID_ARGUMENT
    assert exc.value.transition == "buy_and_approve"


def test_mint_rejects_empty_issuer():
    lifecycle = TicketLifecycle(CONFIG)

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_mint(_class(), "")

    assert exc.value.reason == errors.INVALID_ARGUMENT
    assert exc.value.transition == "mint"
    assert exc.value.asset_id == "0xclass"


def test_class_batch_rejects_bad_supply():
    """Organizer batches report bad arguments with their transition too."""
    with pytest.raises(PreconditionFailedError) as exc:
        build_class_batch(CONFIG, "0xevent", 100, 0)

    assert exc.value.reason == errors.INVALID_ARGUMENT
    assert exc.value.transition == "create_class"
    assert exc.value.asset_id == "0xevent"


def test_buy_rejects_ticket_from_other_class():
    """The class snapshot must be the ticket's class."""
    lifecycle = TicketLifecycle(CONFIG)
    other = TicketClass(id="0xother", event_id="0xevent", face_price=1, supply=1)

    with pytest.raises(InvalidTransitionError):
        lifecycle.plan_buy_and_approve(_listed(), other, "0xpolicy", "0xbuyer", 250)


def test_buy_advances_to_owned_by_buyer():
    """Ownership moves to the buyer; escrow fields clear."""
    lifecycle = TicketLifecycle(CONFIG)
    plan = lifecycle.plan_buy_and_approve(_listed(), _class(), "0xpolicy", "0xbuyer", 250)
    effects = extract_effects(report(changes=[mutated("0xticket", TICKET_TYPE, addr("0xbuyer"))]))

    result = lifecycle.advance(plan, effects)

    assert result.ticket.state is TicketState.OWNED
    assert result.ticket.holder == "0xbuyer"
    assert result.ticket.escrow_id is None


def test_buy_detects_asset_landing_elsewhere():
    """A success report that hands the ticket to someone else is an integrity error."""
    lifecycle = TicketLifecycle(CONFIG)
    plan = lifecycle.plan_buy_and_approve(_listed(), _class(), "0xpolicy", "0xbuyer", 250)
    effects = extract_effects(report(changes=[mutated("0xticket", TICKET_TYPE, addr("0xthief"))]))

    with pytest.raises(OwnershipMismatchError):
        lifecycle.advance(plan, effects)


def test_check_in_already_used_checked_first():
    """A used ticket reports ALREADY_USED whatever its state."""
    lifecycle = TicketLifecycle(CONFIG)
    used = Ticket(id="0xt", class_id="0xc", holder="0xb", state=TicketState.CHECKED_IN, used=True)

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_check_in(used)
    assert exc.value.reason == errors.ALREADY_USED


def test_check_in_requires_owned():
    """A minted ticket cannot be checked in."""
    lifecycle = TicketLifecycle(CONFIG)
    minted = Ticket(id="0xt", class_id="0xc", holder="0xb")

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_check_in(minted)
    assert exc.value.reason == errors.WRONG_STATE


def test_failure_report_advances_nothing():
    """A failure report raises with the ledger's cause and keeps the snapshot."""
    lifecycle = TicketLifecycle(CONFIG)
    owned = Ticket(id="0xt", class_id="0xc", holder="0xb", state=TicketState.OWNED)
    plan = lifecycle.plan_check_in(owned)
    effects = extract_effects(report(status="failure", error="MoveAbort(ticket::mark_used, 3)"))

    with pytest.raises(LedgerExecutionFailure) as exc:
        lifecycle.advance(plan, effects)

    assert exc.value.cause == "MoveAbort(ticket::mark_used, 3)"
    assert exc.value.transition == Transition.CHECK_IN.value
    assert exc.value.asset_id == "0xt"
    assert owned.used is False
    assert owned.state is TicketState.OWNED


def test_check_in_flips_used_once():
    """used goes false -> true and never back."""
    lifecycle = TicketLifecycle(CONFIG)
    owned = Ticket(id="0xt", class_id="0xc", holder="0xb", state=TicketState.OWNED)
    plan = lifecycle.plan_check_in(owned)

    result = lifecycle.advance(plan, extract_effects(report(changes=[])))

    assert result.ticket.used is True
    assert result.ticket.state is TicketState.CHECKED_IN
    with pytest.raises(ValueError):
        result.ticket.checked_in()


def test_error_message_names_transition_and_asset():
    """str(error) identifies kind, transition and asset."""
    lifecycle = TicketLifecycle(CONFIG)

    with pytest.raises(PreconditionFailedError) as exc:
        lifecycle.plan_mint(_class(issued=100, supply=100), "0xorg")

    text = str(exc.value)
    assert "SUPPLY_EXHAUSTED" in text
    assert "transition=mint" in text
    assert "asset=0xclass" in text
