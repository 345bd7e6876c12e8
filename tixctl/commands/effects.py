"""
Effects command: inspect a raw execution report.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tixflow.core.errors import LedgerExecutionFailure, MalformedReportError
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
from tixflow.explorer import address_url, object_url, tx_url

from ._common import fail, load_report

console = Console()


def effects_command(
    report_path: str = typer.Argument(..., help="Report JSON file, or - for stdin"),
    type_match: str = typer.Option("substring", "--type-match", help="substring or exact"),
    network: str = typer.Option("testnet", "--network", help="Network for explorer links"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Parse an execution report and show what it created, moved and paid.

    Exits 2 when the report is malformed or reports a failed batch.

    Examples:
        tixctl effects report.json
        cat report.json | tixctl effects - --json
    """
    try:
        raw = load_report(report_path)
        effects = extract_effects(raw, TypeTagMatcher(type_match))
    except (MalformedReportError, ValueError, OSError) as e:
        fail(e, json_output)
        return

    kiosk_id, cap_id = find_escrow(effects)
    found = {
        "event": find_event_id(effects),
        "ticket_class": find_class_id(effects),
        "ticket": find_ticket_id(effects),
        "escrow": kiosk_id,
        "escrow_cap": cap_id,
        "policy": find_policy_id(effects),
        "listing": find_listing_id(effects),
    }
    ambiguous = sorted(
        name
        for name, pattern in (("ticket", "::ticket::Ticket"), ("escrow", "::kiosk::Kiosk"))
        if effects.ambiguous(pattern)
    )

    try:
        explorer = {
            "tx": tx_url(effects.digest, network),
            "objects": {name: object_url(value, network) for name, value in found.items() if value},
            "accounts": {s.address: address_url(s.address, network) for s in effects.settlements},
        }
    except ValueError as e:
        fail(e, json_output)
        return

    if json_output:
        output = {
            "success": effects.succeeded,
            "error": effects.error,
            "digest": effects.digest,
            "found": found,
            "ambiguous": ambiguous,
            "explorer": explorer,
            "network_fee": effects.network_fee,
            "balances_reported": effects.balances_reported,
            "settlements": [
                {"address": s.address, "amount": s.amount, "coin_type": s.coin_type}
                for s in effects.settlements
            ],
            "events": [e.event_type for e in effects.events],
        }
        print(json.dumps(output, indent=2))
    else:
        status = "[green]success[/green]" if effects.succeeded else f"[red]failure[/red] ({effects.error})"
        console.print(f"Status: {status}")
        console.print(f"  Digest: [yellow]{effects.digest or '-'}[/yellow]")
        if effects.network_fee is not None:
            console.print(f"  Network fee: [cyan]{effects.network_fee}[/cyan]")
        if explorer["tx"]:
            console.print(f"  Explorer: {explorer['tx']}")

        table = Table(title="Identified Objects")
        table.add_column("Kind", style="green")
        table.add_column("Id", style="cyan")
        for name, value in found.items():
            if value:
                table.add_row(name, value)
        console.print(table)
        for name in ambiguous:
            console.print(f"[yellow]Warning: {name} pattern matched more than one type[/yellow]")

        if effects.balances_reported:
            settlements = Table(title="Settlements")
            settlements.add_column("Address", style="green")
            settlements.add_column("Amount", style="cyan", justify="right")
            for s in effects.settlements:
                settlements.add_row(s.address, str(s.amount))
            console.print(settlements)
        else:
            console.print("[dim]Balance changes not reported[/dim]")

    if not effects.succeeded:
        if not json_output:
            console.print(f"[red]Error:[/red] {LedgerExecutionFailure(effects.error, digest=effects.digest)}")
        raise typer.Exit(2)
    raise typer.Exit(0)
