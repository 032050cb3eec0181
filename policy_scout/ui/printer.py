from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape

from policy_scout.models.org import PathResult, TreeLine
from policy_scout.ui.tree_renderer import format_line


class TreePrinter:
    """
    Writes rendered trees to stdout and notices to stderr.

    The tree goes out with markup and highlighting disabled: OU and account
    names are user data and may contain '[' or ']', and the bytes on stdout
    must be exactly what the renderer produced.
    """
    def __init__(self, out: Optional[Console] = None, err: Optional[Console] = None):
        self.out = out or Console(highlight=False, markup=False, emoji=False, soft_wrap=True)
        self.err = err or Console(stderr=True, highlight=False, soft_wrap=True)

    def print_line(self, line: TreeLine) -> None:
        self.out.print(format_line(line))

    def print_lines(self, lines: Iterable[TreeLine]) -> int:
        count = 0
        for line in lines:
            self.print_line(line)
            count += 1
        return count

    def print_placeholder(self, marker: str) -> None:
        self.out.print(marker)

    def print_not_found(self, result: PathResult) -> None:
        self.err.print(
            f"[yellow]Target account ID {result.target_id} was not found in the organization[/yellow] "
            f"[dim]({result.explored} parent(s) inspected)[/dim]"
        )

    def print_error(self, title: str, message: str) -> None:
        self.err.print(f"[bold red]{escape(title)}:[/bold red] {escape(message)}")

    def print_unsupported(self, provider: str) -> None:
        self.out.print(f"{provider} is not supported yet")
