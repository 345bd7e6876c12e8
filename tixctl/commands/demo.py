"""
Demo command: run the whole ticket lifecycle on the simulated ledger.

organizer: create event -> create class -> create escrow -> create policy
           -> mint -> list
buyer:     buy and approve -> check in -> check in again (rejected)
"""

import json
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.table import Table

from tixflow.config import RoyaltyConfig, TicketingConfig
from tixflow.core.errors import LedgerExecutionFailure, TicketingError
from tixflow.core.ids import shorten, stable_id
from tixflow.ledger import Ed25519Signer, InMemoryLedger, RetryPolicy, wait_for_balance
from tixflow.logging_config import setup_logging
from tixflow.metrics import metrics_enabled_from_env, metrics_port_from_env, start_metrics_server
from tixflow.orchestrator import TicketOrchestrator

from ._common import fail

console = Console()


def run_demo(
    price: int = 250_000_000,
    supply: int = 100,
    face_price: int = 200_000_000,
    royalty_bps: int = 1_000,
    funding: int = 1_000_000_000,
) -> Dict[str, Any]:
    """
    Run the lifecycle and return a summary.

    Raises:
        TicketingError: If any step other than the repeated check-in fails
    """
    funding = max(funding, 2 * price)
    organizer = Ed25519Signer.generate("organizer")
    buyer = Ed25519Signer.generate("buyer")
    artist = Ed25519Signer.generate("artist")

    package_id = stable_id("package", "tixflow-demo")
    config = TicketingConfig(
        package_id=package_id,
        network="localnet",
        royalty=RoyaltyConfig(recipient=artist.address(), bps=royalty_bps),
    )
    ledger = InMemoryLedger(package_id)
    ledger.fund(organizer.address(), funding)
    ledger.fund(buyer.address(), funding)
    wait_for_balance(ledger, buyer.address(), price + config.gas.buy_and_approve, RetryPolicy.from_env())
    orchestrator = TicketOrchestrator(config, ledger)

    steps: List[Dict[str, Any]] = []

    def record(name: str, digest: str, detail: str) -> None:
        steps.append({"step": name, "digest": digest, "detail": detail})

    event = orchestrator.create_event(organizer, "Launch Night", 1_767_225_600, 1_767_240_000, "poster-blob")
    record("create_event", event.digest, event.created.id)

    created_class = orchestrator.create_class(organizer, event.created, face_price, supply)
    ticket_class = created_class.created
    record("create_class", created_class.digest, ticket_class.id)

    created_escrow = orchestrator.create_escrow(organizer)
    escrow = created_escrow.created
    record("create_escrow", created_escrow.digest, escrow.id)

    publisher_id = ledger.create_publisher(organizer.address())
    policy = orchestrator.create_policy(organizer, publisher_id, artist.address(), royalty_bps)
    record("create_policy", policy.digest, policy.created.id)

    minted = orchestrator.mint(organizer, ticket_class)
    ticket_class = minted.ticket_class
    record("mint", minted.digest, f"{minted.ticket.id} issued={ticket_class.issued}/{supply}")

    listed = orchestrator.list(organizer, minted.ticket, escrow, price)
    record("list", listed.digest, f"listing={listed.listing_id} price={price}")

    bought = orchestrator.buy_and_approve(buyer, listed.ticket, ticket_class, policy.created.id)
    rec = bought.reconciliation
    record("buy_and_approve", bought.digest, f"buyer delta={rec.payer_delta} fee={rec.network_fee}")

    checked = orchestrator.check_in(buyer, bought.ticket)
    record("check_in", checked.digest, f"state={checked.ticket.state.value} used={checked.ticket.used}")

    # replay the stale snapshot: the ledger must reject it
    try:
        orchestrator.check_in(buyer, bought.ticket)
        record("check_in_again", None, "unexpectedly accepted")
    except LedgerExecutionFailure as e:
        record("check_in_again", e.digest, f"rejected: {e.cause}")

    settlements = [
        {"address": s.address, "amount": s.amount} for s in bought.effects.settlements
    ]
    return {
        "package_id": package_id,
        "organizer": organizer.address(),
        "buyer": buyer.address(),
        "artist": artist.address(),
        "steps": steps,
        "purchase_settlements": settlements,
        "warnings": [str(w) for w in bought.warnings],
        "final_ticket": checked.ticket.to_dict(),
        "submissions": ledger.submissions,
    }


def demo_command(
    price: int = typer.Option(250_000_000, "--price", help="Listing price in minor units"),
    supply: int = typer.Option(100, "--supply", help="Class supply"),
    royalty_bps: int = typer.Option(1_000, "--royalty-bps", help="Royalty rate in basis points"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine logs"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Run mint -> list -> buy -> check-in against an in-memory ledger.

    Examples:
        tixctl demo
        tixctl demo --price 300000000 --royalty-bps 500 --json
    """
    setup_logging(level="INFO" if verbose else "WARNING", fmt="text")
    start_metrics_server(metrics_enabled_from_env(), metrics_port_from_env())
    try:
        summary = run_demo(price=price, supply=supply, royalty_bps=royalty_bps)
    except (TicketingError, ValueError, TypeError) as e:
        fail(e, json_output)
        return

    if json_output:
        print(json.dumps(summary, indent=2))
        raise typer.Exit(0)

    table = Table(title="Ticket Lifecycle")
    table.add_column("Step", style="green")
    table.add_column("Digest", style="yellow")
    table.add_column("Detail", style="cyan")
    for step in summary["steps"]:
        table.add_row(step["step"], shorten(step["digest"] or "-", 6), step["detail"])
    console.print(table)

    settlements = Table(title="Purchase Settlements")
    settlements.add_column("Address", style="green")
    settlements.add_column("Amount", style="cyan", justify="right")
    names = {summary["buyer"]: "buyer", summary["organizer"]: "seller", summary["artist"]: "royalty"}
    for s in summary["purchase_settlements"]:
        settlements.add_row(f"{names.get(s['address'], '?')} {shorten(s['address'])}", str(s["amount"]))
    console.print(settlements)

    for warning in summary["warnings"]:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    console.print(f"[green]✓ {summary['submissions']} batches submitted[/green]")
    raise typer.Exit(0)
