"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from treesize import __version__
from treesize.cli.commands import config, diff, history, partitions, reconcile, report, scan, tree
from treesize.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="treesize",
    help="Track folder sizes across partitions over time.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"treesize version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Show debug records.
        quiet: Show errors only.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """treesize - Track folder sizes across partitions over time.

    Scan configured root folders on a schedule (cron or a systemd
    timer), then compare the two latest scans to see where disk space
    went.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    configure_logging(verbose, quiet)


# Register commands
app.command(name="scan")(scan.scan)
app.command(name="diff")(diff.diff)
app.command(name="reconcile")(reconcile.reconcile)
app.command(name="report")(report.report)
app.command(name="partitions")(partitions.partitions)
app.command(name="tree")(tree.tree)
app.command(name="history")(history.history)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
