"""
Shared CLI helpers: config loading, report loading, error output.

Exit codes:
    0: success
    1: usage, configuration or precondition error
    2: ledger failure, malformed report or integrity error
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from tixflow.config import TicketingConfig
from tixflow.core.errors import InvalidTransitionError, TicketingError

console = Console()

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_LEDGER = 2


def exit_code_for(error: Exception) -> int:
    if isinstance(error, (InvalidTransitionError, ValueError, TypeError, ValidationError, OSError)):
        return EXIT_USAGE
    return EXIT_LEDGER


def fail(error: Exception, json_output: bool) -> None:
    """Print error and exit with its mapped code."""
    if json_output:
        payload = error.to_dict() if isinstance(error, TicketingError) else {"error": str(error)}
        print(json.dumps(payload))
    else:
        console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(exit_code_for(error))


def load_config(
    package_id: Optional[str] = None,
    env_file: Optional[str] = None,
    type_match: Optional[str] = None,
) -> TicketingConfig:
    """
    Config from --package, else --env-file, else TIX_* variables.

    Raises:
        ValueError: If no package id can be found
    """
    if package_id:
        config = TicketingConfig(package_id=package_id)
    elif env_file:
        config = TicketingConfig.from_env_file(env_file)
    else:
        config = TicketingConfig.from_env()
    if type_match:
        config = config.model_copy(update={"type_match": type_match})
    return config


def load_report(path: str) -> Dict[str, Any]:
    """Raw report JSON from a file, or stdin when path is "-"."""
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))
