"""
Error taxonomy for the tree engine.
"""
from __future__ import annotations


class TreeViewError(Exception):
    """Base class for every error raised by the tree engine."""


class DataSourceError(TreeViewError):
    """No data source, or both a local and a remote source, were configured."""


class DataLoadError(TreeViewError):
    """The data source could not be fetched or parsed."""


class NodeOrderError(TreeViewError):
    """Two distinct node ids compared equal; the index is corrupt."""

    def __init__(self, first: str, second: str) -> None:
        super().__init__(f"Unable to sort nodes {first!r} and {second!r}")
        self.first = first
        self.second = second
