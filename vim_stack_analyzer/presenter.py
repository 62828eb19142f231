from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .builder import HeaderEntry, TraceResult, TraceStatus
from .parser import ErrorKind

STATUS_MESSAGES = {
    TraceStatus.NO_ERROR: "No error found in messages.",
    TraceStatus.UNRESOLVED: "Error found, but the trace could not be parsed into navigable locations.",
}

KIND_STYLES = {
    ErrorKind.RUNTIME: "bold red",
    ErrorKind.COMPILE_TIME: "bold magenta",
}


def render_table(result: TraceResult, console: Optional[Console] = None) -> None:
    """Print a trace result as a rich table."""
    console = console or Console()

    if result.status is TraceStatus.NO_ERROR:
        console.print(f"[yellow]{STATUS_MESSAGES[result.status]}[/yellow]")
        return

    table = Table(title=Text(result.title), show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Frame")
    table.add_column("Location")

    for entry in result.entries:
        if isinstance(entry, HeaderEntry):
            table.add_row("", Text(entry.message), "", style=KIND_STYLES[entry.kind])
        else:
            table.add_row(str(entry.index), Text(entry.label), Text(f"{entry.file_path}:{entry.line}"))

    console.print(table)
    if result.status is TraceStatus.UNRESOLVED:
        console.print(f"[yellow]{STATUS_MESSAGES[result.status]}[/yellow]")


def format_quickfix(result: TraceResult) -> List[str]:
    """Lines in Vim's default errorformat, loadable with :cfile."""
    lines = []
    for entry in result.entries:
        if isinstance(entry, HeaderEntry):
            lines.append(entry.message)
        else:
            lines.append(f"{entry.file_path}:{entry.line}: {entry.label}".rstrip())
    return lines
