"""
Tests for the tixctl command line.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from tixctl.commands.demo import run_demo
from tixctl.main import app
from tixflow.tests.reports import addr, balance, created, report

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _write(tmp_path, raw):
    path = tmp_path / "report.json"
    path.write_text(json.dumps(raw))
    return str(path)


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "tixflow" in result.stdout


def test_compose_mint_json():
    result = runner.invoke(app, [
        "compose", "mint", "--class", "0xc", "--supply", "100", "--issuer", "0xorg", "-p", "0xpkg", "--json",
    ])

    assert result.exit_code == 0
    out = json.loads(result.stdout)
    assert out["transition"] == "mint"
    assert out["asset_id"] == "0xc"
    assert out["batch"]["operations"][0]["target"] == "0xpkg::ticket::mint"


def test_compose_mint_supply_exhausted_exits_1():
    result = runner.invoke(app, [
        "compose", "mint", "--class", "0xc", "--supply", "1", "--issued", "1",
        "--issuer", "0xorg", "-p", "0xpkg", "--json",
    ])

    assert result.exit_code == 1
    out = json.loads(result.stdout)
    assert out["reason"] == "SUPPLY_EXHAUSTED"
    assert out["transition"] == "mint"


def test_compose_buy_confirms_policy():
    result = runner.invoke(app, [
        "compose", "buy", "--ticket", "0xt", "--class", "0xc", "--kiosk", "0xk", "--policy", "0xpol",
        "--buyer", "0xb", "--seller", "0xs", "--price", "250000000", "-p", "0xpkg", "--json",
    ])

    assert result.exit_code == 0
    targets = [op["target"] for op in json.loads(result.stdout)["batch"]["operations"]]
    assert "0x2::kiosk::purchase" in targets
    assert "0x2::transfer_policy::confirm_request" in targets


def test_compose_buy_without_policy_exits_1(monkeypatch):
    monkeypatch.delenv("TIX_POLICY_ID", raising=False)

    result = runner.invoke(app, [
        "compose", "buy", "--ticket", "0xt", "--class", "0xc", "--kiosk", "0xk",
        "--buyer", "0xb", "--seller", "0xs", "--price", "250000000", "-p", "0xpkg", "--json",
    ])

    assert result.exit_code == 1
    out = json.loads(result.stdout)
    assert out["reason"] == "INVALID_ARGUMENT"
    assert out["transition"] == "buy_and_approve"
    assert out["asset_id"] == "0xt"


def test_compose_without_package_exits_1(monkeypatch):
    monkeypatch.delenv("TIX_PACKAGE_ID", raising=False)

    result = runner.invoke(app, ["compose", "check-in", "--ticket", "0xt", "--holder", "0xb", "--json"])

    assert result.exit_code == 1


def test_effects_success(tmp_path):
    path = _write(tmp_path, report(
        changes=[created("0xt", "0xpkg::ticket::Ticket", addr("0xo"))],
        balances=[balance("0xo", -1_000)],
        fee=1_000,
    ))

    result = runner.invoke(app, ["effects", path, "--json"])

    assert result.exit_code == 0
    out = json.loads(result.stdout)
    assert out["found"]["ticket"] == "0xt"
    assert out["network_fee"] == 1_000
    assert out["explorer"]["tx"] == "https://suiscan.xyz/testnet/tx/0xdigest"
    assert out["explorer"]["objects"]["ticket"] == "https://suiscan.xyz/testnet/object/0xt"
    assert out["explorer"]["accounts"]["0xo"] == "https://suiscan.xyz/testnet/account/0xo"


def test_effects_unknown_network_exits_1(tmp_path):
    path = _write(tmp_path, report())

    result = runner.invoke(app, ["effects", path, "--network", "moon", "--json"])

    assert result.exit_code == 1


def test_effects_failure_exits_2(tmp_path):
    path = _write(tmp_path, report(status="failure", error="MoveAbort"))

    result = runner.invoke(app, ["effects", path, "--json"])

    assert result.exit_code == 2
    assert json.loads(result.stdout)["error"] == "MoveAbort"


def test_effects_malformed_exits_2(tmp_path):
    path = _write(tmp_path, {"digest": "0x1"})

    result = runner.invoke(app, ["effects", path, "--json"])

    assert result.exit_code == 2
    assert json.loads(result.stdout)["error"] == "MALFORMED_REPORT"


def test_effects_non_list_section_exits_2(tmp_path):
    raw = report()
    raw["objectChanges"] = 5
    path = _write(tmp_path, raw)

    result = runner.invoke(app, ["effects", path, "--json"])

    assert result.exit_code == 2
    assert json.loads(result.stdout)["error"] == "MALFORMED_REPORT"


def test_reconcile_unicode_digit_amount_exits_2(tmp_path):
    path = _write(tmp_path, report(balances=[balance("0xb", "²")]))

    result = runner.invoke(app, ["reconcile", path, "--payer", "0xb", "--spend", "2", "--json"])

    assert result.exit_code == 2
    assert json.loads(result.stdout)["error"] == "MALFORMED_REPORT"


def test_reconcile_clean(tmp_path):
    path = _write(tmp_path, report(
        balances=[balance("0xb", -251_000_000), balance("0xs", 225_000_000), balance("0xa", 25_000_000)],
        fee=1_000_000,
    ))

    result = runner.invoke(app, [
        "reconcile", path, "--payer", "0xb", "--spend", "250000000", "--royalty-recipient", "0xa", "--json",
    ])

    assert result.exit_code == 0
    out = json.loads(result.stdout)
    assert out["royalty_observed"] is True
    assert out["warnings"] == []


def test_reconcile_mismatch_exits_2(tmp_path):
    path = _write(tmp_path, report(balances=[balance("0xb", -100), balance("0xs", 150)]))

    result = runner.invoke(app, ["reconcile", path, "--payer", "0xb", "--spend", "100", "--json"])

    assert result.exit_code == 2
    assert json.loads(result.stdout)["error"] == "SETTLEMENT_MISMATCH"


def test_demo_runs_lifecycle():
    summary = run_demo()

    steps = [s["step"] for s in summary["steps"]]
    assert steps[-3:] == ["buy_and_approve", "check_in", "check_in_again"]
    assert "rejected" in summary["steps"][-1]["detail"]
    assert summary["final_ticket"]["used"] is True
    assert summary["warnings"] == []
    amounts = {s["address"]: s["amount"] for s in summary["purchase_settlements"]}
    assert amounts[summary["artist"]] == 25_000_000
    assert amounts[summary["organizer"]] == 225_000_000


def test_demo_command_exit_code():
    result = runner.invoke(app, ["demo", "--supply", "5"])

    assert result.exit_code == 0
