"""XDG-compliant path management for treesize.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage.

XDG defaults:
- Config: ~/.config/treesize/
- State: ~/.local/state/treesize/ (snapshot databases and reports)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "treesize"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/treesize/ (or XDG_CONFIG_HOME/treesize/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    Returns:
        Path to ~/.local/state/treesize/ (or XDG_STATE_HOME/treesize/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/treesize/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the directory holding one snapshot database per partition.

    Returns:
        Path to ~/.local/state/treesize/data/.
    """
    return get_state_dir() / "data"


def get_reports_dir() -> Path:
    """Get the directory where size reports are written.

    Returns:
        Path to ~/.local/state/treesize/reports/.
    """
    return get_state_dir() / "reports"


def partition_safe_name(partition: str) -> str:
    """Convert a partition path into a filesystem-safe file stem.

    Examples: ``"C:"`` -> ``"C"``, ``"/"`` -> ``"root"``,
    ``"/mnt/data"`` -> ``"mnt_data"``.

    Args:
        partition: Partition mount point or drive.

    Returns:
        File stem usable as a database name.
    """
    safe = partition.replace(":", "").replace("\\", "_").replace("/", "_").strip("_")
    return safe or "root"


def get_database_path(partition: str, data_dir: Path | None = None) -> Path:
    """Get the snapshot database path for a partition.

    Args:
        partition: Partition mount point or drive.
        data_dir: Optional override for the data directory.

    Returns:
        Path to ``<data_dir>/<safe-name>.db``.
    """
    base = data_dir if data_dir is not None else get_data_dir()
    return base / f"{partition_safe_name(partition)}.db"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_data_dir() -> Path:
    """Create the snapshot data directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_data_dir(), "data")


def ensure_reports_dir() -> Path:
    """Create the reports directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_reports_dir(), "reports")
