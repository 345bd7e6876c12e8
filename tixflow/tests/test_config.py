"""
Tests for TicketingConfig construction and validation.
"""

import pytest
from pydantic import ValidationError

from tixflow.config import GasBudgets, RoyaltySplit, TicketingConfig


def test_defaults_and_derived_types():
    config = TicketingConfig(package_id="0xabc")

    assert config.network == "testnet"
    assert config.type_match == "substring"
    assert config.ticket_type == "0xabc::ticket::Ticket"
    assert config.target("ticket", "mint") == "0xabc::ticket::mint"
    assert config.gas.buy_and_approve == 20_000_000


def test_from_env_reads_tix_variables():
    config = TicketingConfig.from_env({
        "TIX_PACKAGE_ID": "0xabc",
        "TIX_POLICY_ID": "0xpol",
        "TIX_NETWORK": "mainnet",
        "TIX_FEE_ALLOWANCE": "5000",
        "TIX_ROYALTY_RECIPIENT": "0xartist",
        "TIX_ROYALTY_BPS": "500",
        "TIX_TYPE_MATCH": "exact",
    })

    assert config.policy_id == "0xpol"
    assert config.network == "mainnet"
    assert config.fee_allowance == 5_000
    assert config.royalty.recipient == "0xartist"
    assert config.royalty.bps == 500
    assert config.type_match == "exact"


def test_from_env_requires_package():
    with pytest.raises(ValueError, match="TIX_PACKAGE_ID"):
        TicketingConfig.from_env({})


def test_from_env_file_accepts_bare_and_exported_names(tmp_path):
    """Deployment env files write `export PACKAGE_ID=...`."""
    env = tmp_path / "deploy.env"
    env.write_text(
        "# published package\n"
        "export PACKAGE_ID=0xabc\n"
        "POLICY_ID='0xpol'\n"
        "TIX_NETWORK=devnet\n"
        "not an assignment\n"
    )

    config = TicketingConfig.from_env_file(str(env))

    assert config.package_id == "0xabc"
    assert config.policy_id == "0xpol"
    assert config.network == "devnet"


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        TicketingConfig(package_id="  ")
    with pytest.raises(ValidationError):
        TicketingConfig(package_id="0xabc", network="moon")
    with pytest.raises(ValidationError):
        TicketingConfig(package_id="0xabc", fee_allowance=-1)
    with pytest.raises(ValidationError):
        GasBudgets(mint="5")


def test_split_must_sum_to_whole():
    with pytest.raises(ValidationError):
        RoyaltySplit(artist=9_000, organizer=900, platform=200)
    assert RoyaltySplit(artist=10_000, organizer=0, platform=0).artist == 10_000


def test_config_is_frozen():
    config = TicketingConfig(package_id="0xabc")

    with pytest.raises(ValidationError):
        config.package_id = "0xother"
