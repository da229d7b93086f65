"""Core scanning, storage and analysis logic for treesize."""
