"""CLI commands for treesize.

This package contains all subcommand implementations.
"""

from treesize.cli.commands import config, diff, history, partitions, reconcile, report, scan, tree

__all__ = ["config", "diff", "history", "partitions", "reconcile", "report", "scan", "tree"]
