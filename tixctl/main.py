#!/usr/bin/env python3
"""
tixctl - ticket lifecycle orchestration CLI

Main entrypoint for the tixctl command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from tixctl.commands import compose, demo, effects, reconcile

app = typer.Typer(
    name="tixctl",
    help="Ticket lifecycle orchestration and effects verification",
    add_completion=False,
)

console = Console()

app.add_typer(compose.app, name="compose", help="Compose transition batches (dry run)")

app.command("effects")(effects.effects_command)
app.command("reconcile")(reconcile.reconcile_command)
app.command("demo")(demo.demo_command)


@app.command()
def version():
    """Show version information."""
    from tixctl import __version__
    from tixflow import __version__ as engine_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]tixctl[/bold]", f"v{__version__}")
    table.add_row("Engine", f"tixflow v{engine_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
