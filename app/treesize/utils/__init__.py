"""Utility modules for treesize."""
