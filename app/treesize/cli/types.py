"""Shared helpers for CLI commands.

Loading the configuration, resolving the partitions a command acts on,
and building the scan service, with user-facing error handling.
"""

import typer

from treesize.core.config import ConfigError, get_partition_config, load_config_or_default
from treesize.core.scanner import ScanService
from treesize.models.config import GlobalConfiguration
from treesize.utils.formatting import print_error, print_info


def require_config() -> GlobalConfiguration:
    """Load the configuration or exit with a helpful error message.

    A missing configuration file yields an empty configuration.

    Raises:
        typer.Exit: If the configuration file is invalid.
    """
    try:
        return load_config_or_default()
    except ConfigError as e:
        print_error(f"Failed to load configuration: {e}")
        raise typer.Exit(code=1) from e


def resolve_partitions(config: GlobalConfiguration, partition: str | None) -> list[str]:
    """Partitions a command acts on.

    Args:
        config: Loaded configuration.
        partition: Partition named on the command line, if any.

    Returns:
        ``[partition]`` if given, else every enabled configured partition.

    Raises:
        typer.Exit: If no partition is given and none is configured.
    """
    if partition is not None:
        get_partition_config(config, partition)
        return [partition]

    partitions = [c.partition_path for c in config.enabled_partitions]
    if not partitions:
        print_error("No partitions configured.")
        print_info("Run 'treesize config add-partition /' to track a partition.")
        raise typer.Exit(code=1)
    return partitions


def get_service(config: GlobalConfiguration) -> ScanService:
    """Build the scan service for a configuration."""
    return ScanService(config)
