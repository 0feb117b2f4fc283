"""Rich formatting helpers for the Kiwi CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from kiwibranch.models.branch import BranchSummary
    from kiwibranch.models.message import MessageInfo
    from kiwibranch.models.results import CopyFailure, ForkResult, MergeResult

_MAX_PREVIEW = 60


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > _MAX_PREVIEW:
        text = text[: _MAX_PREVIEW - 3] + "..."
    return escape(text)


def format_branches(summaries: list[BranchSummary], console: Console) -> None:
    """Display a user's branches as a table."""
    if not summaries:
        console.print("[dim]No branches.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Branch", style="yellow", no_wrap=True)
    table.add_column("Kind", style="cyan")
    table.add_column("From")
    table.add_column("Messages", justify="right", style="green")
    table.add_column("Created", style="dim")

    for summary in summaries:
        b = summary.branch
        if b.merge_source_ids:
            origin = " + ".join(s[:8] for s in b.merge_source_ids)
        elif b.parent_id:
            origin = b.parent_id[:8]
            if b.fork_point_message_id:
                origin += f" @ {b.fork_point_message_id[:8]}"
        else:
            origin = ""
        table.add_row(
            b.id,
            b.kind.value,
            origin,
            str(summary.message_count),
            b.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


def format_log(messages: list[MessageInfo], console: Console) -> None:
    """Display a branch log, oldest first."""
    if not messages:
        console.print("[dim]No messages.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Id", style="yellow", width=8)
    table.add_column("Time", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Flags")
    table.add_column("Content")

    for m in messages:
        flags = ("P" if m.is_pinned else "") + ("B" if m.is_bookmarked else "")
        table.add_row(
            m.id[:8],
            m.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            m.role.value,
            flags,
            _preview(m.content),
        )

    console.print(table)


def _format_failures(failures: list[CopyFailure], console: Console) -> None:
    console.print(f"[yellow]{len(failures)} message(s) could not be copied:[/yellow]")
    for f in failures:
        console.print(f"  [yellow]{f.source_message_id[:8]}[/yellow] {escape(f.error)}")


def format_fork_result(result: ForkResult, console: Console) -> None:
    """Display the outcome of a fork."""
    verb = "Resumed fork" if result.resumed else "Forked"
    console.print(
        f"{verb} [yellow]{result.branch.id}[/yellow] "
        f"from [yellow]{result.branch.parent_id}[/yellow]: "
        f"{result.copied_count} message(s) copied"
    )
    if result.partial:
        _format_failures(result.failures, console)


def format_merge_result(result: MergeResult, console: Console) -> None:
    """Display the outcome of a merge."""
    source, target = result.branch.merge_source_ids or ["?", "?"]
    verb = "Resumed merge" if result.resumed else "Merged"
    console.print(
        f"{verb} [yellow]{source}[/yellow] + [yellow]{target}[/yellow] "
        f"into [yellow]{result.branch.id}[/yellow]: "
        f"{result.merged_count} message(s)"
    )
    if result.partial:
        _format_failures(result.failures, console)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
