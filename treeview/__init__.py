"""
Tree state-synchronization engine.

Builds a hierarchy of nodes from a nested data description, keeps a flat
render-ordered index over it and enforces the cascading state rules for
expansion, selection, hierarchical checking, disabling and search.
"""
from .events import EventName, TreeEvent
from .exceptions import DataLoadError, DataSourceError, NodeOrderError, TreeViewError
from .models import (
    DisableOptions,
    ExpandOptions,
    MethodOptions,
    NodeData,
    SearchOptions,
    SelectOptions,
    TreeViewOptions,
)
from .node import TreeNode
from .search import SearchField
from .tree import TreeView

__all__ = [
    "DataLoadError",
    "DataSourceError",
    "DisableOptions",
    "EventName",
    "ExpandOptions",
    "MethodOptions",
    "NodeData",
    "NodeOrderError",
    "SearchField",
    "SearchOptions",
    "SelectOptions",
    "TreeEvent",
    "TreeNode",
    "TreeView",
    "TreeViewError",
    "TreeViewOptions",
]
