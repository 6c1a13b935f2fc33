"""Interactive prompts rendered with rich."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from .core.orchestrator import Operation, UserPrompt
from .core.types import DeviceDescriptor
from .output import console


class RichPrompt(UserPrompt):
    """Numbered menus and text input on the terminal."""

    def __init__(self, default_directory: str | None = None):
        self.default_directory = default_directory

    def _pick(self, title: str, rows: list[str]) -> int:
        table = Table(title=title, show_header=False)
        table.add_column("#", style="bold", width=4)
        table.add_column("Choice")
        for i, row in enumerate(rows, 1):
            table.add_row(str(i), row)
        console.print(table)
        choice = IntPrompt.ask(
            "Choose",
            console=console,
            choices=[str(i) for i in range(1, len(rows) + 1)],
            default=1,
        )
        return choice - 1

    def choose_device(self, devices: Sequence[DeviceDescriptor]) -> DeviceDescriptor:
        index = self._pick("Choose a device", [f"{d.label} - {d.identity}" for d in devices])
        return devices[index]

    def choose_operation(self) -> Operation:
        operations = list(Operation)
        return operations[self._pick("Choose an option", [op.title for op in operations])]

    def ask_address(self, device: DeviceDescriptor) -> str:
        return Prompt.ask("Enter the IP address of your device", console=console)

    def choose_directory(self, record_name: str) -> Optional[Path]:
        console.print(f"Select a folder to save [bold]{record_name}[/bold] to (leave empty to cancel)")
        answer = Prompt.ask(
            "Folder",
            console=console,
            default=self.default_directory or "",
            show_default=bool(self.default_directory),
        )
        answer = answer.strip()
        if not answer:
            return None
        return Path(answer).expanduser()
