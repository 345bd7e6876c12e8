"""
Reconcile command: verify a purchase report's settlements offline.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tixflow.config import RoyaltyConfig
from tixflow.core.errors import MalformedReportError, SettlementMismatchError
from tixflow.effects import extract_effects
from tixflow.settlement import BalanceReconciler

from ._common import fail, load_report

console = Console()


def reconcile_command(
    report_path: str = typer.Argument(..., help="Report JSON file, or - for stdin"),
    payer: str = typer.Option(..., "--payer", help="Address that paid"),
    spend: int = typer.Option(..., "--spend", help="Expected spend in minor units, fees excluded"),
    pre_balance: Optional[int] = typer.Option(None, "--pre-balance", help="Payer balance before the batch"),
    fee_allowance: int = typer.Option(20_000_000, "--fee-allowance", help="Tolerated network fee"),
    royalty_recipient: Optional[str] = typer.Option(None, "--royalty-recipient", help="Expected royalty recipient"),
    royalty_bps: int = typer.Option(1_000, "--royalty-bps", help="Royalty rate in basis points"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Check payer spend, value conservation and royalty routing.

    Exits 2 when settlements do not conserve value; soft findings are
    printed as warnings with exit 0.

    Examples:
        tixctl reconcile report.json --payer 0xb --spend 250000000 --royalty-recipient 0xa
    """
    try:
        raw = load_report(report_path)
        effects = extract_effects(raw)
        royalty = RoyaltyConfig(recipient=royalty_recipient, bps=royalty_bps) if royalty_recipient else None
        reconciler = BalanceReconciler(fee_allowance=fee_allowance, royalty=royalty)
        pre = {payer: pre_balance} if pre_balance is not None else {}
        result = reconciler.reconcile(pre, effects, expected_spend=spend, payer=payer)
    except (SettlementMismatchError, MalformedReportError, ValueError, OSError) as e:
        fail(e, json_output)
        return

    if json_output:
        output = {
            "verified": result.verified,
            "payer_delta": result.payer_delta,
            "post_balance": result.post_balance,
            "network_fee": result.network_fee,
            "credited": result.credited,
            "debited": result.debited,
            "royalty_observed": result.royalty_observed,
            "warnings": [str(w) for w in result.warnings],
        }
        print(json.dumps(output, indent=2))
        raise typer.Exit(0)

    console.print("[green]✓ Settlements conserve value[/green]")
    table = Table(show_header=False, box=None)
    table.add_row("Payer delta", str(result.payer_delta))
    if result.post_balance is not None:
        table.add_row("Payer balance after", str(result.post_balance))
    table.add_row("Network fee", str(result.network_fee if result.network_fee is not None else "-"))
    table.add_row("Credited / debited", f"{result.credited} / {result.debited}")
    if result.royalty_observed is not None:
        table.add_row("Royalty observed", "yes" if result.royalty_observed else "no")
    console.print(table)
    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    raise typer.Exit(0)
