"""Scan configuration models.

This module defines the Pydantic models representing the config.toml
structure: one ScanConfiguration per partition, holding the root
folders to walk, the exclusion rules, the inclusion overrides and the
default depth at which individual folder recording stops.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Hard ceiling applied to every configured depth to bound recursion.
MAX_SCAN_DEPTH = 100


class ExclusionKind(str, Enum):
    """How an exclusion rule pattern is matched against a path.

    Attributes:
        EXACT_PATH: Whole normalized path equals the pattern.
        PATH_PREFIX: Normalized path starts with the pattern.
        FOLDER_NAME: Final path component equals the pattern (any depth).
        GLOB: Wildcard pattern (``*`` and ``?``) matched against the full path.
        REGEX: Regular expression searched anywhere in the path.
    """

    EXACT_PATH = "path"
    PATH_PREFIX = "path_prefix"
    FOLDER_NAME = "folder_name"
    GLOB = "wildcard"
    REGEX = "regex"


class ExclusionRule(BaseModel):
    """A single exclusion rule.

    Attributes:
        pattern: Pattern string, interpreted according to ``kind``.
        kind: Matching strategy for the pattern.
        enabled: Disabled rules are ignored.
        description: Optional human-readable explanation.
    """

    model_config = ConfigDict(extra="forbid")

    pattern: Annotated[str, Field(min_length=1, description="Pattern to match")]
    kind: Annotated[ExclusionKind, Field(description="Matching strategy")] = (
        ExclusionKind.EXACT_PATH
    )
    enabled: Annotated[bool, Field(description="Whether the rule is active")] = True
    description: Annotated[str, Field(description="Rule description")] = ""


class RootFolder(BaseModel):
    """A configured starting point for traversal within a partition.

    Attributes:
        path: Absolute folder path.
        enabled: Disabled roots are not scanned.
        max_depth: Overrides the partition default depth for this root only.
    """

    model_config = ConfigDict(extra="forbid")

    path: Annotated[str, Field(min_length=1, description="Absolute root path")]
    enabled: Annotated[bool, Field(description="Whether the root is scanned")] = True
    max_depth: Annotated[
        int | None,
        Field(ge=0, description="Depth override for this root (None = partition default)"),
    ] = None


class InclusionOverride(BaseModel):
    """Per-folder depth override.

    The depth is counted in levels below ``path`` itself, independent of
    how deep ``path`` sits under its root folder.

    Attributes:
        path: Absolute folder path the override applies to (exact match only).
        scan_depth: Levels below ``path`` to record individually.
        enabled: Disabled overrides are ignored.
        force_include: Scan ``path`` even when an exclusion rule matches it.
        description: Optional human-readable explanation.
    """

    model_config = ConfigDict(extra="forbid")

    path: Annotated[str, Field(min_length=1, description="Absolute folder path")]
    scan_depth: Annotated[int, Field(ge=0, description="Levels below this path")] = 1
    enabled: Annotated[bool, Field(description="Whether the override is active")] = True
    force_include: Annotated[
        bool,
        Field(description="Scan even when matched by an exclusion rule"),
    ] = True
    description: Annotated[str, Field(description="Override description")] = ""


class ScanConfiguration(BaseModel):
    """Scan policy for a single partition.

    Attributes:
        partition_path: Mount point or drive identifying the partition.
        root_folders: Ordered list of traversal starting points.
        exclusion_rules: Ordered exclusion rules (first match wins).
        inclusion_overrides: Per-folder depth overrides.
        default_scan_depth: Depth used by roots without their own override.
            None means unbounded (clamped to MAX_SCAN_DEPTH at use).
        enabled: Disabled partitions are skipped by "scan all".
    """

    model_config = ConfigDict(extra="forbid")

    partition_path: Annotated[str, Field(min_length=1, description="Partition mount point")]
    root_folders: Annotated[
        list[RootFolder],
        Field(default_factory=list, description="Traversal starting points"),
    ]
    exclusion_rules: Annotated[
        list[ExclusionRule],
        Field(default_factory=list, description="Exclusion rules in evaluation order"),
    ]
    inclusion_overrides: Annotated[
        list[InclusionOverride],
        Field(default_factory=list, description="Per-folder depth overrides"),
    ]
    default_scan_depth: Annotated[
        int | None,
        Field(ge=0, description="Default depth (None = unbounded)"),
    ] = None
    enabled: Annotated[bool, Field(description="Whether the partition is scanned")] = True

    @property
    def active_roots(self) -> list[RootFolder]:
        """Enabled root folders in configured order."""
        return [r for r in self.root_folders if r.enabled]

    @property
    def active_exclusions(self) -> list[ExclusionRule]:
        """Enabled exclusion rules in configured order."""
        return [r for r in self.exclusion_rules if r.enabled]

    @property
    def active_overrides(self) -> list[InclusionOverride]:
        """Enabled inclusion overrides in configured order."""
        return [o for o in self.inclusion_overrides if o.enabled]


class GlobalConfiguration(BaseModel):
    """Top-level configuration file contents.

    Attributes:
        partitions: Scan configuration keyed by partition path.
        cron_schedule: Cron expression for the external scheduler.
        scheduled_scan_enabled: Whether scheduled scans should run.
    """

    model_config = ConfigDict(extra="forbid")

    partitions: Annotated[
        dict[str, ScanConfiguration],
        Field(default_factory=dict, description="Per-partition scan configuration"),
    ]
    cron_schedule: Annotated[str, Field(description="Scan schedule (cron syntax)")] = "0 0 * * *"
    scheduled_scan_enabled: Annotated[
        bool,
        Field(description="Whether scheduled scans are enabled"),
    ] = True

    @model_validator(mode="after")
    def validate_partition_keys(self) -> GlobalConfiguration:
        """Validate that every partition key matches its configuration."""
        mismatched = {
            key for key, config in self.partitions.items() if key != config.partition_path
        }
        if mismatched:
            msg = f"Partition keys do not match partition_path: {mismatched}"
            raise ValueError(msg)
        return self

    @property
    def enabled_partitions(self) -> list[ScanConfiguration]:
        """Enabled partition configurations in key order."""
        return [c for c in self.partitions.values() if c.enabled]
