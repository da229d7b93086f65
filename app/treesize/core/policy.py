"""Scan policy resolution.

Answers the two questions the walker and the reconciliation engine ask
about any path of a partition: is it excluded, and how deep may the
scan go below it. Resolution is a pure function of the partition's
ScanConfiguration and the path; no filesystem access is performed.
"""

import logging
import os
import re
from collections.abc import Callable

from treesize.models.config import (
    MAX_SCAN_DEPTH,
    ExclusionKind,
    ExclusionRule,
    InclusionOverride,
    RootFolder,
    ScanConfiguration,
)

logger = logging.getLogger(__name__)

PathMatcher = Callable[[str], bool]


def normalize_path(path: str) -> str:
    """Normalize a path to absolute form with native separators.

    Args:
        path: Absolute or relative path, with either separator style.

    Returns:
        Absolute, normalized path string.
    """
    alt = "\\" if os.sep == "/" else "/"
    return os.path.abspath(path.replace(alt, os.sep))


def path_key(path: str) -> str:
    """Case-insensitive comparison key of a path."""
    return normalize_path(path).casefold()


def _looks_absolute(pattern: str) -> bool:
    """Check if a pattern names an absolute path (drive or root marker)."""
    return ":" in pattern or pattern.startswith(("/", "\\"))


def _pattern_path(pattern: str) -> str:
    """Prepare an ExactPath/PathPrefix pattern for comparison."""
    alt = "\\" if os.sep == "/" else "/"
    native = pattern.replace(alt, os.sep)
    if _looks_absolute(native):
        native = normalize_path(native)
    return native.casefold()


def _never(_path: str) -> bool:
    return False


def _build_exact(pattern: str) -> PathMatcher:
    expected = _pattern_path(pattern)
    return lambda path: path.casefold() == expected


def _build_prefix(pattern: str) -> PathMatcher:
    # Plain string prefix: "/data/log" also matches "/data/logs".
    prefix = _pattern_path(pattern)
    return lambda path: path.casefold().startswith(prefix)


def _build_folder_name(pattern: str) -> PathMatcher:
    name = pattern.casefold()
    return lambda path: os.path.basename(path).casefold() == name


def _build_glob(pattern: str) -> PathMatcher:
    regex = "".join(
        ".*" if char == "*" else "." if char == "?" else re.escape(char) for char in pattern
    )
    compiled = re.compile(regex, re.IGNORECASE | re.DOTALL)
    return lambda path: compiled.fullmatch(path) is not None


def _build_regex(pattern: str) -> PathMatcher:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda path: compiled.search(path) is not None


_MATCHER_BUILDERS: dict[ExclusionKind, Callable[[str], PathMatcher]] = {
    ExclusionKind.EXACT_PATH: _build_exact,
    ExclusionKind.PATH_PREFIX: _build_prefix,
    ExclusionKind.FOLDER_NAME: _build_folder_name,
    ExclusionKind.GLOB: _build_glob,
    ExclusionKind.REGEX: _build_regex,
}


def compile_rule(rule: ExclusionRule) -> PathMatcher:
    """Compile an exclusion rule into a predicate over normalized paths.

    A rule whose pattern cannot be compiled matches nothing.

    Args:
        rule: Exclusion rule to compile.

    Returns:
        Callable returning True when a normalized path matches the rule.
    """
    try:
        return _MATCHER_BUILDERS[rule.kind](rule.pattern)
    except re.error as e:
        logger.warning("Ignoring malformed %s rule %r: %s", rule.kind.value, rule.pattern, e)
        return _never


def clamp_depth(depth: int | None) -> int:
    """Clamp a configured depth to MAX_SCAN_DEPTH (None means unbounded)."""
    if depth is None:
        return MAX_SCAN_DEPTH
    return min(depth, MAX_SCAN_DEPTH)


class PolicyResolver:
    """Resolves exclusion and depth decisions for one partition.

    The resolver snapshots the enabled rules and overrides of the
    configuration at construction time; build a new one when the
    configuration changes.

    Args:
        config: Partition scan configuration.
    """

    def __init__(self, config: ScanConfiguration) -> None:
        self._config = config
        self._rules: list[tuple[ExclusionRule, PathMatcher]] = [
            (rule, compile_rule(rule)) for rule in config.active_exclusions
        ]
        self._overrides: dict[str, InclusionOverride] = {}
        for override in config.active_overrides:
            self._overrides.setdefault(path_key(override.path), override)

    @property
    def config(self) -> ScanConfiguration:
        """Partition configuration the resolver was built from."""
        return self._config

    def is_excluded(self, path: str) -> bool:
        """Check if a path matches any enabled exclusion rule.

        Rules are evaluated in configured order; the first match wins.

        Args:
            path: Path to check (normalized before matching).

        Returns:
            True if an exclusion rule matches.
        """
        return self.matching_rule(path) is not None

    def matching_rule(self, path: str) -> ExclusionRule | None:
        """Return the first enabled exclusion rule matching a path."""
        normalized = normalize_path(path)
        for rule, matcher in self._rules:
            if matcher(normalized):
                return rule
        return None

    def find_inclusion_override(self, path: str) -> InclusionOverride | None:
        """Find the enabled override naming exactly this path.

        Args:
            path: Path to look up (normalized, case-insensitive).

        Returns:
            The matching override, or None.
        """
        return self._overrides.get(path_key(path))

    def should_scan(self, path: str, override: InclusionOverride | None = None) -> bool:
        """Check if a path is walked: not excluded, or force-included.

        Args:
            path: Path to check.
            override: Pre-resolved override for ``path`` (looked up if None).
        """
        if override is None:
            override = self.find_inclusion_override(path)
        if override is not None and override.force_include:
            return True
        return not self.is_excluded(path)

    def effective_max_depth(
        self,
        root: RootFolder,
        override: InclusionOverride | None = None,
    ) -> int:
        """Depth budget controlling a node.

        Args:
            root: Root folder the node was reached from.
            override: Override naming the node exactly, if any.

        Returns:
            The override depth if given, else the root's depth or the
            partition default, clamped to MAX_SCAN_DEPTH.
        """
        if override is not None:
            return clamp_depth(override.scan_depth)
        if root.max_depth is not None:
            return clamp_depth(root.max_depth)
        return clamp_depth(self._config.default_scan_depth)
