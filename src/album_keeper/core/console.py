"""Terminal output for the album-keeper commands.

One shared Rich Console, with a style per message kind so every command
reports success, trouble and detail lines the same way.
"""

from typing import Literal

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

MessageKind = Literal["info", "success", "warning", "error", "detail"]

STYLES: dict[str, str | None] = {
    "info": None,
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "detail": "dim",
}

_console: Console | None = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console(highlight=False)
    return _console


def report(message: str, kind: MessageKind = "info") -> None:
    """Print a message styled for its kind (info, success, warning, error, detail)."""
    style = STYLES[kind]
    if style:
        get_console().print(message, style=style)
    else:
        get_console().print(message)


def upload_progress() -> Progress:
    """Progress display for a single upload: stage label, bar and percentage."""
    return Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=get_console(),
        transient=False,
    )
