"""
Tests for the simulated ledger: atomic batches, fees, hot-potato requests.
"""

import threading

import pytest

from tixflow.compose import GAS, Address, BatchComposer, Id, ObjectArg, U64
from tixflow.config import TicketingConfig
from tixflow.effects import extract_effects, find_class_id, find_escrow, find_event_id, find_ticket_id
from tixflow.escrow import KIOSK_PURCHASE, EscrowPolicyCoordinator
from tixflow.ledger import Ed25519Signer, InMemoryLedger, ReportOptions
from tixflow.ledger.interfaces import Signer
from tixflow.lifecycle import build_class_batch, build_event_batch

PKG = "0xpkg"
CONFIG = TicketingConfig(package_id=PKG)
FEE = 1_000_000


def _setup():
    ledger = InMemoryLedger(PKG, fee=FEE)
    organizer = Ed25519Signer.generate("organizer")
    ledger.fund(organizer.address(), 1_000_000_000)
    return ledger, organizer


def _class(ledger, organizer, supply=2):
    event = extract_effects(ledger.submit(build_event_batch(CONFIG, "Show", 1, 2, "poster"), organizer))
    created = ledger.submit(build_class_batch(CONFIG, find_event_id(event), 100, supply), organizer)
    return find_class_id(extract_effects(created))


def _mint(ledger, organizer, class_id):
    composer = BatchComposer(CONFIG.gas.mint, label="mint")
    composer.move_call(CONFIG.target("ticket", "mint"), [ObjectArg(class_id)])
    return extract_effects(ledger.submit(composer.build(), organizer))


def test_success_report_shape():
    """Reports carry status, created objects, balance changes and gas."""
    ledger, organizer = _setup()
    class_id = _class(ledger, organizer)

    effects = _mint(ledger, organizer, class_id)

    assert effects.succeeded
    ticket_id = find_ticket_id(effects)
    assert effects.new_owner_of(ticket_id) == organizer.address()
    assert effects.network_fee == FEE
    assert [(s.address, s.amount) for s in effects.settlements] == [(organizer.address(), -FEE)]
    assert ledger.get_object(ticket_id)["fields"]["used"] is False
    assert ledger.get_object(class_id)["fields"]["issued"] == 1


def test_supply_cap_enforced_by_ledger():
    """Minting past supply aborts on the ledger too."""
    ledger, organizer = _setup()
    class_id = _class(ledger, organizer, supply=1)

    assert _mint(ledger, organizer, class_id).succeeded
    failed = _mint(ledger, organizer, class_id)

    assert not failed.succeeded
    assert "supply exhausted" in failed.error
    assert ledger.get_object(class_id)["fields"]["issued"] == 1


def test_failed_batch_charges_fee_and_commits_nothing():
    """All-or-nothing: a failure leaves objects untouched except the fee."""
    ledger, organizer = _setup()
    class_id = _class(ledger, organizer, supply=5)
    before = ledger.get_balance(organizer.address())

    composer = BatchComposer(CONFIG.gas.mint, label="mint")
    composer.move_call(CONFIG.target("ticket", "mint"), [ObjectArg(class_id)])
    composer.move_call(CONFIG.target("ticket", "nope"), [])
    report = ledger.submit(composer.build(), organizer)
    effects = extract_effects(report)

    assert not effects.succeeded
    assert "FunctionNotFound" in effects.error
    assert "command 1" in effects.error
    assert ledger.get_object(class_id)["fields"]["issued"] == 0
    assert ledger.get_balance(organizer.address()) == before - FEE
    assert [(s.address, s.amount) for s in effects.settlements] == [(organizer.address(), -FEE)]


def test_unconfirmed_transfer_request_fails_batch():
    """A purchase whose request is never confirmed cannot execute."""
    ledger, organizer = _setup()
    buyer = Ed25519Signer.generate("buyer")
    ledger.fund(buyer.address(), 1_000_000_000)
    class_id = _class(ledger, organizer)
    ticket_id = find_ticket_id(_mint(ledger, organizer, class_id))
    kiosk_id, cap_id = find_escrow(extract_effects(
        ledger.submit(EscrowPolicyCoordinator(CONFIG).build_escrow_batch(), organizer)
    ))
    composer = BatchComposer(CONFIG.gas.list, label="list")
    composer.move_call(
        "0x2::kiosk::place_and_list",
        [ObjectArg(kiosk_id), ObjectArg(cap_id), ObjectArg(ticket_id), U64(500)],
        type_arguments=[CONFIG.ticket_type],
    )
    assert extract_effects(ledger.submit(composer.build(), organizer)).succeeded

    seller_before = ledger.get_balance(organizer.address())
    buyer_before = ledger.get_balance(buyer.address())
    composer = BatchComposer(CONFIG.gas.buy_and_approve, label="buy_and_approve")
    (coin,) = composer.split_coins(GAS, [U64(500)])
    item, request = composer.move_call(
        KIOSK_PURCHASE, [ObjectArg(kiosk_id), Id(ticket_id), coin],
        type_arguments=[CONFIG.ticket_type], returns=2,
    )
    composer.transfer_objects([item], Address(buyer.address()))
    effects = extract_effects(ledger.submit(composer.build(), buyer))

    assert not effects.succeeded
    assert "UnusedValueWithoutDrop" in effects.error
    assert ledger.get_object(ticket_id)["owner"] == {"ObjectOwner": kiosk_id}
    assert ledger.get_balance(organizer.address()) == seller_before
    assert ledger.get_balance(buyer.address()) == buyer_before - FEE


def test_report_options_omit_sections():
    """Sections switched off are absent, not empty."""
    ledger, organizer = _setup()
    options = ReportOptions(show_balance_changes=False, show_events=False, show_effects=False)

    raw = ledger.submit(build_event_batch(CONFIG, "Show", 1, 2, "p"), organizer, options)

    assert "balanceChanges" not in raw
    assert "events" not in raw
    assert "gasUsed" not in raw["effects"]
    effects = extract_effects(raw)
    assert effects.balances_reported is False
    assert find_event_id(effects) is not None


def test_insufficient_gas_budget_balance():
    """A sender who cannot cover the budget is rejected without charge."""
    ledger = InMemoryLedger(PKG)
    poor = Ed25519Signer.generate()
    ledger.fund(poor.address(), 10)

    effects = extract_effects(ledger.submit(build_event_batch(CONFIG, "Show", 1, 2, "p"), poor))

    assert not effects.succeeded
    assert "InsufficientGas" in effects.error
    assert ledger.get_balance(poor.address()) == 10


class _ForgedSigner(Signer):
    """Claims another signer's address."""

    def __init__(self, victim, key):
        self._victim = victim
        self._key = key

    def address(self):
        return self._victim.address()

    def sign(self, data):
        return self._key.sign(data)

    def public_key_bytes(self):
        return self._key.public_key_bytes()


def test_forged_signature_rejected():
    """The signing key must derive the sender address."""
    ledger, organizer = _setup()
    forged = _ForgedSigner(organizer, Ed25519Signer.generate())

    effects = extract_effects(ledger.submit(build_event_batch(CONFIG, "Show", 1, 2, "p"), forged))

    assert effects.error == "InvalidSignature"


def test_get_object_missing_raises_key_error():
    ledger, _ = _setup()

    with pytest.raises(KeyError):
        ledger.get_object("0xnothing")


def test_concurrent_submissions_are_serialized():
    """Parallel mints on one class never exceed supply."""
    ledger, organizer = _setup()
    class_id = _class(ledger, organizer, supply=5)
    results = []

    def worker():
        results.append(_mint(ledger, organizer, class_id).succeeded)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert ledger.get_object(class_id)["fields"]["issued"] == 5
    assert ledger.submissions == 12
