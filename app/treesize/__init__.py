"""treesize - Track directory size growth across partitions."""

__version__ = "0.1.0"
