"""Bundled data files for treesize."""
