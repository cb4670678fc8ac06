"""Rich console output for the command-line interface.

:class:`EnhancerConsole` renders the history log, cycle results and breaker
status as ``rich`` tables.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from site_autoenhance.domain.enums import BreakerState, CycleOutcome
from site_autoenhance.domain.values import MutationRecord

_OUTCOME_STYLES = {
    CycleOutcome.MUTATED: "green",
    CycleOutcome.NO_CHANGE: "dim",
    CycleOutcome.NO_CATEGORY: "dim",
    CycleOutcome.RATE_LIMITED: "yellow",
    CycleOutcome.ARTIFACT_UNAVAILABLE: "red",
    CycleOutcome.HISTORY_UNAVAILABLE: "red",
}

_STATE_STYLES = {
    BreakerState.NORMAL: "green",
    BreakerState.MAINTENANCE: "bold red",
}


class EnhancerConsole:
    """Console presentation of history, cycles and breaker status.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout``.
    width:
        Fixed console width; ``None`` lets rich detect it.
    """

    def __init__(self, file: Any = None, width: int | None = None) -> None:
        self._console = Console(file=file or sys.stdout, width=width)

    @property
    def console(self) -> Console:
        return self._console

    def print_history(self, records: Sequence[MutationRecord]) -> None:
        """Print *records* in the order given (callers pass newest first)."""
        if not records:
            self._console.print("[dim]No enhancements recorded yet.[/dim]")
            return

        table = Table(
            title=f"Enhancement history ({len(records)} shown)",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("When (UTC)", no_wrap=True)
        table.add_column("Artifact", style="bold", no_wrap=True)
        table.add_column("Category", no_wrap=True)
        table.add_column("Edits", justify="right")
        table.add_column("Description")

        for record in records:
            table.add_row(
                record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                record.artifact,
                record.category,
                str(record.edit_count),
                record.description,
            )
        self._console.print(table)

    def print_cycle(self, result: Any) -> None:
        """Print a one-cycle summary (a :class:`CycleResult`)."""
        colour = _OUTCOME_STYLES.get(result.outcome, "white")
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Outcome", f"[{colour}]{result.outcome.value}[/{colour}]")
        if result.artifact:
            table.add_row("Artifact", result.artifact)
        if result.category:
            table.add_row("Category", result.category)
        if result.mutated:
            table.add_row("Edits", str(result.edit_count))
            table.add_row("Description", result.description)
            table.add_row("Published", "yes" if result.published else "[yellow]no[/yellow]")
        state_colour = _STATE_STYLES[result.breaker_state]
        table.add_row(
            "Site state",
            f"[{state_colour}]{result.breaker_state.value}[/{state_colour}]",
        )
        if result.transition is not None:
            table.add_row(
                "Breaker",
                f"{result.transition.from_state.value} -> {result.transition.to_state.value}",
            )
        if result.error:
            table.add_row("Error", f"[red]{result.error}[/red]")
        self._console.print(table)

    def print_status(
        self,
        current: BreakerState,
        desired: BreakerState,
        recent_count: int,
        threshold: int,
        window_seconds: float,
        total_records: int,
    ) -> None:
        """Print breaker status and trailing-window usage."""
        table = Table(title="Site status", show_header=False, header_style="bold cyan")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        colour = _STATE_STYLES[current]
        table.add_row("Site state", f"[{colour}]{current.value}[/{colour}]")
        if desired is not current:
            table.add_row("Pending", f"[yellow]switch to {desired.value}[/yellow]")
        table.add_row(
            "Recent mutations",
            f"{recent_count} / {threshold} in the last {window_seconds:g}s",
        )
        table.add_row("Total recorded", str(total_records))
        self._console.print(table)

    def print_message(self, message: str) -> None:
        self._console.print(message)
