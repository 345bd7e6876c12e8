"""
Tests for report parsing and TypedEffects lookups.
"""

import pytest

from tixflow.core.errors import MalformedReportError
from tixflow.effects import (
    TypeTagMatcher,
    extract_effects,
    find_class_id,
    find_escrow,
    find_event_id,
    find_listing_id,
    find_policy_id,
    find_ticket_id,
)
from tixflow.tests.reports import PKG, addr, balance, created, mutated, report, shared

TICKET_TYPE = f"{PKG}::ticket::Ticket"


def test_missing_status_is_malformed():
    """Status is the one mandatory field."""
    with pytest.raises(MalformedReportError):
        extract_effects({"digest": "0x1", "effects": {}})
    with pytest.raises(MalformedReportError):
        extract_effects({"digest": "0x1"})
    with pytest.raises(MalformedReportError):
        extract_effects([])


def test_unknown_status_is_malformed():
    with pytest.raises(MalformedReportError):
        extract_effects({"effects": {"status": {"status": "pending"}}})


def test_created_of_preserves_report_order():
    """Ids come back in the order the report lists them."""
    effects = extract_effects(report(changes=[
        created("0xb", TICKET_TYPE, addr("0xo")),
        created("0xa", TICKET_TYPE, addr("0xo")),
        created("0xc", TICKET_TYPE, addr("0xo")),
    ]))

    assert effects.created_of("::ticket::Ticket") == ["0xb", "0xa", "0xc"]


def test_lookups_tolerate_absent_sections():
    """Absent objects, balances and events give empty answers, not errors."""
    effects = extract_effects(report())

    assert effects.created_of("::ticket::Ticket") == []
    assert effects.new_owner_of("0xmissing") is None
    assert effects.settlements == []
    assert effects.balances_reported is False
    assert effects.events == ()
    assert effects.network_fee is None


def test_absent_and_empty_sections_are_distinct():
    """None means absent; () means present and empty."""
    absent = extract_effects(report())
    empty = extract_effects(report(changes=[], balances=[], events=[]))

    assert absent.report.balance_changes is None
    assert empty.report.balance_changes == ()
    assert empty.balances_reported is True


def test_new_owner_follows_last_change():
    """The final owner of a mutated object is reported."""
    effects = extract_effects(report(changes=[
        mutated("0xt", TICKET_TYPE, {"ObjectOwner": "0xkiosk"}),
        mutated("0xt", TICKET_TYPE, addr("0xbuyer")),
    ]))

    assert effects.new_owner_of("0xt") == "0xbuyer"


def test_new_owner_none_for_shared_or_object_owner():
    effects = extract_effects(report(changes=[
        created("0xk", "0x2::kiosk::Kiosk", shared()),
        mutated("0xt", TICKET_TYPE, {"ObjectOwner": "0xk"}),
    ]))

    assert effects.new_owner_of("0xk") is None
    assert effects.new_owner_of("0xt") is None


def test_settlements_parse_string_amounts():
    """Amounts arrive as decimal strings and become ints."""
    effects = extract_effects(report(balances=[balance("0xa", -250), balance("0xb", 250)]))

    assert [(s.address, s.amount) for s in effects.settlements] == [("0xa", -250), ("0xb", 250)]
    assert effects.delta_for("0xa") == -250


def test_float_amount_is_malformed():
    """Floats never become amounts."""
    raw = report(balances=[{"owner": addr("0xa"), "coinType": "0x2::sui::SUI", "amount": 1.5}])

    with pytest.raises(MalformedReportError):
        extract_effects(raw)


def test_non_ascii_digit_amount_is_malformed():
    """Only ASCII decimal digits count; "²" and "٣" are rejected."""
    for amount in ("²", "-²", "٣"):
        raw = report(balances=[{"owner": addr("0xa"), "coinType": "0x2::sui::SUI", "amount": amount}])

        with pytest.raises(MalformedReportError):
            extract_effects(raw)


def test_bad_shared_version_is_malformed():
    """A non-numeric initial_shared_version is a malformed report, not a crash."""
    for version in ("v1", 1.5, {"n": 1}):
        raw = report(changes=[created("0xk", "0x2::kiosk::Kiosk", shared(version))])

        with pytest.raises(MalformedReportError):
            extract_effects(raw)


def test_shared_version_accepts_string_or_int():
    raw = report(changes=[
        created("0xk", "0x2::kiosk::Kiosk", shared("7")),
        created("0xp", "0x2::kiosk::Kiosk", shared(9)),
    ])

    versions = [c.owner.initial_shared_version for c in extract_effects(raw).report.object_changes]
    assert versions == [7, 9]


@pytest.mark.parametrize("section", ["objectChanges", "balanceChanges", "events"])
@pytest.mark.parametrize("value", [5, "x", {"a": 1}])
def test_non_list_section_is_malformed(section, value):
    """A present section must be a list."""
    raw = report()
    raw[section] = value

    with pytest.raises(MalformedReportError, match=section):
        extract_effects(raw)


def test_settlements_skip_non_address_owners():
    raw = report(balances=[
        {"owner": {"ObjectOwner": "0xk"}, "coinType": "0x2::sui::SUI", "amount": "5"},
        balance("0xa", -5),
    ])

    assert [s.address for s in extract_effects(raw).settlements] == ["0xa"]


def test_network_fee_from_gas_summary():
    raw = report(fee=1_000_000)
    raw["effects"]["gasUsed"]["storageCost"] = "300"
    raw["effects"]["gasUsed"]["storageRebate"] = "100"

    assert extract_effects(raw).network_fee == 1_000_200


def test_failure_carries_cause():
    effects = extract_effects(report(status="failure", error="InsufficientGas"))

    assert effects.succeeded is False
    assert effects.error == "InsufficientGas"


def test_semantic_finders():
    """Event, class and ticket ids found by type tag."""
    effects = extract_effects(report(changes=[
        created("0xe", f"{PKG}::event::Event", addr("0xo")),
        created("0xc", f"{PKG}::class::TicketClass", shared()),
        created("0xt", TICKET_TYPE, addr("0xo")),
    ]))

    assert find_event_id(effects) == "0xe"
    assert find_class_id(effects) == "0xc"
    assert find_ticket_id(effects) == "0xt"


def test_find_escrow_separates_kiosk_from_cap():
    """'::kiosk::Kiosk' also matches the cap; the owner check separates them."""
    effects = extract_effects(report(changes=[
        created("0xcap", "0x2::kiosk::KioskOwnerCap", addr("0xo")),
        created("0xkiosk", "0x2::kiosk::Kiosk", shared()),
    ]))

    assert effects.created_of("::kiosk::Kiosk") == ["0xcap", "0xkiosk"]
    assert effects.ambiguous("::kiosk::Kiosk") is True
    assert find_escrow(effects) == ("0xkiosk", "0xcap")


def test_find_policy_ignores_cap_and_generic_ticket():
    """The shared policy wins over its cap and over a generic ticket match."""
    effects = extract_effects(report(changes=[
        created("0xpol", f"0x2::transfer_policy::TransferPolicy<{TICKET_TYPE}>", shared()),
        created("0xpcap", f"0x2::transfer_policy::TransferPolicyCap<{TICKET_TYPE}>", addr("0xa")),
    ]))

    assert find_policy_id(effects) == "0xpol"
    # substring matching sees the generic parameter
    assert find_ticket_id(effects) == "0xpol"

    raw = report(changes=[
        created("0xpol", f"0x2::transfer_policy::TransferPolicy<{TICKET_TYPE}>", shared()),
    ])
    exact = extract_effects(raw, TypeTagMatcher("exact"))
    assert find_ticket_id(exact) is None
    assert find_policy_id(exact) == "0xpol"


def test_listing_id_from_event_or_fallback():
    events = [{"type": f"0x2::kiosk::ItemListed<{TICKET_TYPE}>", "parsedJson": {"id": "0xlisting", "price": "5"}}]

    assert find_listing_id(extract_effects(report(events=events)), fallback="0xt") == "0xlisting"
    assert find_listing_id(extract_effects(report(events=[])), fallback="0xt") == "0xt"
