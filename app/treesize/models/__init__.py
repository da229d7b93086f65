"""Data models for treesize.

This module exports the core data structures used throughout the application.
"""

from treesize.models.config import (
    MAX_SCAN_DEPTH,
    ExclusionKind,
    ExclusionRule,
    GlobalConfiguration,
    InclusionOverride,
    RootFolder,
    ScanConfiguration,
)
from treesize.models.scan import ScanOutcome, ScanProgress, ScanStatus
from treesize.models.snapshot import FolderSizeDiff, FolderSizeSnapshot

__all__ = [
    "MAX_SCAN_DEPTH",
    "ExclusionKind",
    "ExclusionRule",
    "FolderSizeDiff",
    "FolderSizeSnapshot",
    "GlobalConfiguration",
    "InclusionOverride",
    "RootFolder",
    "ScanConfiguration",
    "ScanOutcome",
    "ScanProgress",
    "ScanStatus",
]
