"""Shared output utilities used by the CLI and the interactive prompt.

JSON results go to stdout; progress messages and prompts go to stderr so
scripted callers can parse stdout directly.
"""

from __future__ import annotations

import json
import sys

from rich.console import Console
from rich.json import JSON as RichJSON

console = Console(stderr=True)
stdout_console = Console()


def output_json(data: dict | list):
    """Standard JSON output for scripts and agents."""
    if sys.stdout.isatty():
        stdout_console.print(RichJSON(json.dumps(data, indent=2, default=str)))
    else:
        print(json.dumps(data, default=str))


def output_error(err) -> None:
    """Print a PairingToolError (or any exception) as JSON and report it on stderr."""
    data = err.to_dict() if hasattr(err, "to_dict") else {"error": str(err), "kind": "error"}
    console.print(f"[red]✗ {err}[/red]")
    output_json(data)
