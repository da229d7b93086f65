"""CLI package for treesize.

This package contains the Typer application and all subcommands.
"""

from treesize.cli.main import app

__all__ = ["app"]
