"""
Compose commands: build a transition's batch without submitting it.

Each command checks the transition's preconditions against the snapshot
given on the command line and prints the batch descriptor.
"""

import json
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from tixflow.compose.batch import Batch
from tixflow.core.errors import TicketingError
from tixflow.core.state import Escrow, Ticket, TicketClass, TicketState
from tixflow.lifecycle import TicketLifecycle, TransitionPlan

from ._common import fail, load_config

app = typer.Typer()
console = Console()

PACKAGE_OPTION = typer.Option(None, "--package", "-p", help="Ticketing package id (default: TIX_PACKAGE_ID)")
ENV_FILE_OPTION = typer.Option(None, "--env-file", help="Shell env file with PACKAGE_ID=...")
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")


def _print_plan(plan: TransitionPlan, json_output: bool) -> None:
    batch: Batch = plan.batch
    if json_output:
        output = {
            "transition": plan.transition.value,
            "asset_id": plan.asset_id,
            "digest": batch.digest(),
            "batch": batch.to_dict(),
        }
        print(json.dumps(output, indent=2))
        return

    console.print(f"[bold]{plan.transition.value}[/bold] on [cyan]{plan.asset_id}[/cyan]")
    console.print(f"  Gas budget: [yellow]{batch.gas_budget}[/yellow]")
    console.print(f"  Digest: [yellow]{batch.digest()}[/yellow]")

    table = Table(title="Operations")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Kind", style="green")
    table.add_column("Target", style="cyan")
    table.add_column("Outputs", justify="right")
    for i, op in enumerate(batch.operations):
        table.add_row(str(i), op.kind, op.target, str(op.outputs))
    console.print(table)
    console.print(Syntax(json.dumps(batch.to_dict(), indent=2), "json", theme="monokai"))


def _run(build, package_id, env_file, json_output) -> None:
    try:
        config = load_config(package_id, env_file)
        plan = build(TicketLifecycle(config))
    except (TicketingError, ValueError, TypeError, ValidationError) as e:
        fail(e, json_output)
        return
    _print_plan(plan, json_output)


@app.command()
def mint(
    class_id: str = typer.Option(..., "--class", help="Ticket class id"),
    supply: int = typer.Option(..., "--supply", help="Class supply"),
    issued: int = typer.Option(0, "--issued", help="Tickets already issued"),
    issuer: str = typer.Option(..., "--issuer", help="Organizer address"),
    package_id: Optional[str] = PACKAGE_OPTION,
    env_file: Optional[str] = ENV_FILE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Compose a mint batch.

    Examples:
        tixctl compose mint --class 0xc1 --supply 100 --issuer 0xorg -p 0xpkg
    """
    ticket_class = TicketClass(id=class_id, event_id="", face_price=0, supply=supply, issued=issued)
    _run(lambda lc: lc.plan_mint(ticket_class, issuer), package_id, env_file, json_output)


@app.command("list")
def list_ticket(
    ticket_id: str = typer.Option(..., "--ticket", help="Ticket id"),
    kiosk_id: str = typer.Option(..., "--kiosk", help="Escrow (kiosk) id"),
    cap_id: str = typer.Option(..., "--cap", help="Escrow owner capability id"),
    seller: str = typer.Option(..., "--seller", help="Seller address (holder and escrow owner)"),
    price: int = typer.Option(..., "--price", help="Listing price in minor units"),
    package_id: Optional[str] = PACKAGE_OPTION,
    env_file: Optional[str] = ENV_FILE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Compose a listing batch for a minted ticket.

    Examples:
        tixctl compose list --ticket 0xt --kiosk 0xk --cap 0xcap --seller 0xs --price 250000000
    """
    ticket = Ticket(id=ticket_id, class_id="", holder=seller)
    escrow = Escrow(id=kiosk_id, owner_cap_id=cap_id, owner=seller)
    _run(lambda lc: lc.plan_list(ticket, escrow, seller, price), package_id, env_file, json_output)


@app.command()
def buy(
    ticket_id: str = typer.Option(..., "--ticket", help="Ticket id"),
    class_id: str = typer.Option(..., "--class", help="Ticket class id"),
    kiosk_id: str = typer.Option(..., "--kiosk", help="Escrow (kiosk) holding the ticket"),
    policy_id: Optional[str] = typer.Option(None, "--policy", help="Transfer approval id (default: TIX_POLICY_ID)"),
    buyer: str = typer.Option(..., "--buyer", help="Buyer address"),
    seller: str = typer.Option(..., "--seller", help="Seller address"),
    price: int = typer.Option(..., "--price", help="Listed price in minor units"),
    face_price: int = typer.Option(0, "--face-price", help="Class face price in minor units"),
    payment: Optional[int] = typer.Option(None, "--payment", help="Payment (default: --price)"),
    package_id: Optional[str] = PACKAGE_OPTION,
    env_file: Optional[str] = ENV_FILE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Compose a buy-and-approve batch for a listed ticket.

    Examples:
        tixctl compose buy --ticket 0xt --class 0xc --kiosk 0xk --policy 0xp \\
            --buyer 0xb --seller 0xs --price 250000000
    """
    ticket = Ticket(
        id=ticket_id,
        class_id=class_id,
        holder=seller,
        state=TicketState.LISTED,
        escrow_id=kiosk_id,
        listed_price=price,
    )
    ticket_class = TicketClass(id=class_id, event_id="", face_price=face_price, supply=1, issued=1)

    def build(lc: TicketLifecycle) -> TransitionPlan:
        approval = policy_id or lc.config.policy_id
        amount = payment if payment is not None else price
        return lc.plan_buy_and_approve(ticket, ticket_class, approval, buyer, amount)

    _run(build, package_id, env_file, json_output)


@app.command("check-in")
def check_in(
    ticket_id: str = typer.Option(..., "--ticket", help="Ticket id"),
    holder: str = typer.Option(..., "--holder", help="Holder address"),
    used: bool = typer.Option(False, "--used", help="Ticket is already marked used"),
    package_id: Optional[str] = PACKAGE_OPTION,
    env_file: Optional[str] = ENV_FILE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Compose a check-in batch for an owned ticket.

    Examples:
        tixctl compose check-in --ticket 0xt --holder 0xb
    """
    ticket = Ticket(id=ticket_id, class_id="", holder=holder, state=TicketState.OWNED, used=used)
    _run(lambda lc: lc.plan_check_in(ticket), package_id, env_file, json_output)
