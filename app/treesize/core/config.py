"""Configuration file I/O operations.

This module provides functions for loading and saving the scan
configuration in TOML format with validation using Pydantic models,
plus helpers for the default per-partition policy and for editing
per-folder depth overrides.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import ValidationError

from treesize.core.paths import get_config_path
from treesize.core.policy import path_key
from treesize.models.config import (
    ExclusionKind,
    ExclusionRule,
    GlobalConfiguration,
    InclusionOverride,
    RootFolder,
    ScanConfiguration,
)


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content is invalid."""


# Common exclusions for POSIX partitions.
_POSIX_EXCLUSIONS: tuple[tuple[str, ExclusionKind, str], ...] = (
    ("/proc", ExclusionKind.EXACT_PATH, "Process information pseudo-filesystem"),
    ("/sys", ExclusionKind.EXACT_PATH, "Sysfs virtual filesystem"),
    ("/dev", ExclusionKind.EXACT_PATH, "Device files"),
    ("/run", ExclusionKind.EXACT_PATH, "Runtime data"),
    ("/tmp", ExclusionKind.EXACT_PATH, "Temporary files"),
    (".cache", ExclusionKind.FOLDER_NAME, "Cache directories"),
    ("lost+found", ExclusionKind.FOLDER_NAME, "Filesystem recovery directories"),
    ("node_modules", ExclusionKind.FOLDER_NAME, "Node.js dependencies"),
    (".git", ExclusionKind.FOLDER_NAME, "Git repositories"),
)

# Common exclusions for Windows drives. PATH_PREFIX patterns are relative
# to the drive root and anchored when the partition is added.
_WINDOWS_EXCLUSIONS: tuple[tuple[str, ExclusionKind, str], ...] = (
    (r"Windows\WinSxS", ExclusionKind.PATH_PREFIX, "Windows Side-by-Side assemblies"),
    (r"Windows\Installer", ExclusionKind.PATH_PREFIX, "Windows Installer cache"),
    ("$Recycle.Bin", ExclusionKind.FOLDER_NAME, "Recycle Bin"),
    ("System Volume Information", ExclusionKind.FOLDER_NAME, "System restore points"),
    (r"*\AppData\Local\Temp*", ExclusionKind.GLOB, "User temp folders"),
    ("node_modules", ExclusionKind.FOLDER_NAME, "Node.js dependencies"),
    (".git", ExclusionKind.FOLDER_NAME, "Git repositories"),
)

# Overrides added to the POSIX root partition: (path, depth, description).
_ROOT_PARTITION_OVERRIDES: tuple[tuple[str, int, str], ...] = (
    ("/usr", 1, "usr folder - one level deep to see major subdirectories"),
    ("/opt", 1, "opt folder - one level deep to see installed applications"),
    ("/home", 2, "home folder - two levels deep to see user folders"),
)


def load_config(path: Path | None = None) -> GlobalConfiguration:
    """Load and validate the configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses default config path.

    Returns:
        Validated GlobalConfiguration object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return GlobalConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> GlobalConfiguration:
    """Load the configuration, returning an empty one if no file exists.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return GlobalConfiguration()


def save_config(config: GlobalConfiguration, path: Path | None = None) -> Path:
    """Save the configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        config: The configuration to save.
        path: Path to save to. If None, uses default config path.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    from tempfile import NamedTemporaryFile

    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: GlobalConfiguration) -> dict[str, Any]:
    """Convert the configuration to a dictionary suitable for TOML.

    TOML has no null value, so unset optional fields are omitted.
    """
    return config.model_dump(mode="json", exclude_none=True)


def default_exclusion_rules(partition: str, *, windows: bool | None = None) -> list[ExclusionRule]:
    """Build the default exclusion rules for a partition.

    Args:
        partition: Partition mount point or drive (``C:\\`` on Windows).
        windows: Use the Windows rule set. Defaults to the running platform.

    Returns:
        Exclusion rules with drive-relative prefixes anchored to ``partition``.
    """
    if windows is None:
        windows = os.name == "nt"
    if not windows:
        return [
            ExclusionRule(pattern=pattern, kind=kind, description=description)
            for pattern, kind, description in _POSIX_EXCLUSIONS
        ]

    drive = partition.rstrip("\\/")
    rules: list[ExclusionRule] = []
    for pattern, kind, description in _WINDOWS_EXCLUSIONS:
        if kind is ExclusionKind.PATH_PREFIX:
            pattern = f"{drive}\\{pattern}"
        rules.append(ExclusionRule(pattern=pattern, kind=kind, description=description))
    return rules


def create_default_partition_config(partition: str) -> ScanConfiguration:
    """Build the default scan policy for a partition.

    The partition itself becomes the only root folder. Common system
    and cache folders are excluded, and the POSIX root partition gets
    shallow overrides for /usr, /opt and /home.

    Args:
        partition: Partition mount point or drive.

    Returns:
        New ScanConfiguration for the partition.
    """
    config = ScanConfiguration(
        partition_path=partition,
        root_folders=[RootFolder(path=partition)],
        exclusion_rules=default_exclusion_rules(partition),
    )

    if os.name != "nt" and partition == "/":
        config.inclusion_overrides = [
            InclusionOverride(path=path, scan_depth=depth, description=description)
            for path, depth, description in _ROOT_PARTITION_OVERRIDES
        ]

    return config


def get_partition_config(config: GlobalConfiguration, partition: str) -> ScanConfiguration:
    """Get the scan configuration of a partition, creating a default one.

    A newly created default is stored in ``config`` (in memory only; the
    caller decides whether to save).

    Args:
        config: Global configuration.
        partition: Partition mount point or drive.

    Returns:
        The partition's ScanConfiguration.
    """
    existing = config.partitions.get(partition)
    if existing is not None:
        return existing

    created = create_default_partition_config(partition)
    config.partitions[partition] = created
    return created


def set_folder_depth_override(
    config: ScanConfiguration,
    folder: str,
    depth: int | None,
) -> InclusionOverride | None:
    """Add, update or remove the depth override of a folder.

    Matching is by normalized, case-insensitive path. A new override is
    created without force-include.

    Args:
        config: Partition scan configuration to modify in place.
        folder: Folder path the override applies to.
        depth: Levels below ``folder`` to scan, or None to remove the override.

    Returns:
        The added/updated override, or None if it was removed.
    """
    key = path_key(folder)
    existing = next(
        (o for o in config.inclusion_overrides if path_key(o.path) == key),
        None,
    )

    if depth is None:
        if existing is not None:
            config.inclusion_overrides.remove(existing)
        return None

    if existing is not None:
        existing.scan_depth = depth
        return existing

    created = InclusionOverride(path=folder, scan_depth=depth, force_include=False)
    config.inclusion_overrides.append(created)
    return created
