"""Kiwi CLI -- terminal interface for branching conversations.

This module is NEVER imported from kiwibranch/__init__.py.
It is only loaded via the ``kiwi`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install kiwibranch[cli]"
    ) from None

from kiwibranch.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from kiwibranch.kiwi import Kiwi


@click.group()
@click.option(
    "--db",
    default=".kiwi.db",
    envvar="KIWI_DB",
    help="Path to the kiwi database.",
)
@click.option(
    "--deterministic-ids",
    is_flag=True,
    help="Derive copy ids from source and destination (retry-safe forks/merges).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, db: str, deterministic_ids: bool, verbose: bool) -> None:
    """Kiwi: fork and merge branches of a conversation."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["copy_ids"] = "deterministic" if deterministic_ids else "random"


def _get_kiwi(ctx: click.Context) -> Kiwi:
    """Open a Kiwi instance from Click context."""
    from kiwibranch.kiwi import Kiwi
    from kiwibranch.models.config import KiwiConfig

    config = KiwiConfig(db_path=ctx.obj["db_path"], copy_ids=ctx.obj["copy_ids"])
    return Kiwi.open(config=config)


@contextmanager
def _kiwi_session(ctx: click.Context) -> Iterator[tuple[Kiwi, Console]]:
    """Context manager that opens a Kiwi, yields (kiwi, console), and handles cleanup.

    Ensures the database is closed on exit and formats exceptions as CLI errors.
    """
    console = get_console()
    try:
        k = _get_kiwi(ctx)
        try:
            yield k, console
        finally:
            k.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from kiwibranch.cli.commands.append import append  # noqa: E402
from kiwibranch.cli.commands.branches import branches  # noqa: E402
from kiwibranch.cli.commands.flags import bookmark, pin  # noqa: E402
from kiwibranch.cli.commands.fork import fork  # noqa: E402
from kiwibranch.cli.commands.log import log  # noqa: E402
from kiwibranch.cli.commands.merge import merge  # noqa: E402
from kiwibranch.cli.commands.rm import rm  # noqa: E402

cli.add_command(append)
cli.add_command(branches)
cli.add_command(log)
cli.add_command(fork)
cli.add_command(merge)
cli.add_command(pin)
cli.add_command(bookmark)
cli.add_command(rm)
