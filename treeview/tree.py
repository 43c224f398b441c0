"""
The tree: root list, flat indexes and the public query/mutation surface.

Key ideas:
- The root list owns every node. Two indexes are derived from it and rebuilt
  wholesale after every structural change: an unsorted node_id → node map and
  a render-ordered copy sorted by hierarchical id.
- Structural mutations (add / remove / update) never patch the indexes
  incrementally; they edit a children list and re-run the indexer.
- Bulk state operations are thin loops over the per-node mutators, which own
  all cascading rules.
"""
from __future__ import annotations
import re
from typing import Any, Callable, Optional, Union

from loguru import logger

from .events import EventBus, EventName, TreeEvent
from .exceptions import TreeViewError
from .indexer import index_hierarchy, sort_nodes
from .loader import load_data, load_local, parse_nodes
from .models import (
    DisableOptions,
    ExpandOptions,
    MethodOptions,
    NodeData,
    SearchField,
    SearchOptions,
    SelectOptions,
    TreeViewOptions,
)
from .node import TreeNode
from .search import compile_pattern, diff_results, find_nodes

NodeInput = Union[TreeNode, NodeData, dict[str, Any]]


def _as_list(items: Any) -> list:
    if items is None:
        return []
    if isinstance(items, (list, tuple)):
        return list(items)
    return [items]


class TreeView:
    """
    Owns a hierarchy of TreeNodes and keeps its indexes in sync.

    Usage:
        tree = await TreeView(TreeViewOptions(data=[...])).initialize()
        tree = TreeView.from_data([...], levels=2)     # synchronous, in-memory
        tree.expand_all()
        tree.search("Child")
    """

    def __init__(self, options: Union[TreeViewOptions, dict[str, Any], None] = None, **kwargs: Any) -> None:
        if isinstance(options, TreeViewOptions):
            self.options = options.model_copy(update=kwargs) if kwargs else options
        else:
            self.options = TreeViewOptions.model_validate({**(options or {}), **kwargs})

        self.roots: list[TreeNode] = []
        self.initialized = False

        self._nodes: dict[str, TreeNode] = {}
        self._ordered_nodes: dict[str, TreeNode] = {}
        self._checked_baseline: set[str] = set()
        self._events = EventBus.from_options(self.options)

    @classmethod
    def from_data(cls, data: Union[str, list[Any]], **options: Any) -> TreeView:
        """Build a tree synchronously from in-memory data or a JSON string."""
        tree = cls(TreeViewOptions.model_validate({**options, "data": data}))
        tree._build(parse_nodes(load_local(data)))
        return tree

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> TreeView:
        """Load the configured data source once and build the tree."""
        self.destroy()
        self.roots = []

        self._emit(EventName.LOADING, None, MethodOptions())
        try:
            data = await load_data(self.options)
        except TreeViewError as exc:
            logger.error("Loading tree data failed: {}", exc)
            self._emit(EventName.LOADING_FAILED, exc, MethodOptions())
            raise

        self._build(data)
        return self

    def _build(self, data: list[NodeData]) -> None:
        self.roots = [TreeNode.from_data(item, self) for item in data]
        self.rebuild_index()
        self.initialized = True
        logger.debug("Tree initialised with {} node(s)", len(self._nodes))
        self._emit(EventName.INITIALIZED, self.get_nodes(), MethodOptions())
        self.render()

    def destroy(self) -> None:
        if not self.initialized:
            return
        self.initialized = False
        self._emit(EventName.DESTROYED, None, MethodOptions())
        self._events = EventBus.from_options(self.options)
        self.roots = []
        self._nodes = {}
        self._ordered_nodes = {}

    def render(self) -> None:
        """Hand the render-ordered view to the renderer, then notify."""
        nodes = self.get_nodes()
        if self.options.renderer is not None:
            self.options.renderer(nodes)
        for node in nodes:
            self._emit(EventName.NODE_RENDERED, node, MethodOptions())
        self._emit(EventName.RENDERED, nodes, MethodOptions())

    # ── Events ───────────────────────────────────────────────────────

    def on(self, name: EventName, listener: Callable[[TreeEvent], Any]) -> None:
        self._events.subscribe(name, listener)

    def off(self, name: EventName, listener: Callable[[TreeEvent], Any]) -> None:
        self._events.unsubscribe(name, listener)

    def _emit(self, name: EventName, data: Any, options: Optional[MethodOptions] = None) -> None:
        self._events.emit(TreeEvent(name=name, data=data, tree=self, options=options))

    # ── Indexing ─────────────────────────────────────────────────────

    def rebuild_index(self) -> None:
        """Regenerate the flat map, the render order and the checked cache."""
        self._nodes = {}
        index_hierarchy(self.roots, self)
        self._ordered_nodes = sort_nodes(self._nodes)
        self._inherit_checkbox_changes()
        logger.debug("Re-indexed {} node(s)", len(self._nodes))

    def _register(self, node: TreeNode) -> None:
        self._nodes[node.node_id] = node

    @property
    def tracks_check_changes(self) -> bool:
        return self.options.show_checkbox and self.options.highlight_changes

    def _inherit_checkbox_changes(self) -> None:
        if self.tracks_check_changes:
            self._checked_baseline = {
                node_id for node_id, node in self._ordered_nodes.items() if node.state.checked is True
            }

    def is_check_changed(self, node: TreeNode, state: Optional[bool]) -> bool:
        """True if checking state differs from the saved baseline."""
        if state is None:
            return False
        return (node.node_id not in self._checked_baseline) == state

    def unmark_checkbox_changes(self) -> None:
        """Save the current checked set as the unchanged baseline."""
        self._inherit_checkbox_changes()
        for node in self._nodes.values():
            node.check_changed = False

    # ── Queries ──────────────────────────────────────────────────────

    def get_node(self, node_id: Optional[str]) -> Optional[TreeNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def target_node(self, node_id: str) -> Optional[TreeNode]:
        """Look up a node by id; stale ids are logged, never raised."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.warning("Node {!r} does not exist", node_id)
        return node

    def get_parent(self, node: TreeNode) -> Optional[TreeNode]:
        return self.get_node(node.parent_id)

    def get_nodes(self) -> list[TreeNode]:
        """All nodes in render order."""
        return list(self._ordered_nodes.values())

    def find_nodes(
        self,
        pattern: str,
        field: Union[SearchField, str] = SearchField.TEXT,
        ignore_case: bool = False,
    ) -> list[TreeNode]:
        """Nodes whose field matches the regular expression, in render order."""
        regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
        return find_nodes(self._ordered_nodes.values(), regex, field)

    def get_parents(self, nodes: Union[TreeNode, list[TreeNode]]) -> list[TreeNode]:
        parents = []
        for node in _as_list(nodes):
            parent = self.get_parent(node)
            if parent is not None:
                parents.append(parent)
        return parents

    def get_siblings(self, nodes: Union[TreeNode, list[TreeNode]]) -> list[TreeNode]:
        siblings: list[TreeNode] = []
        for node in _as_list(nodes):
            parent = self.get_parent(node)
            candidates = parent.nodes if parent is not None else self.roots
            siblings.extend(n for n in candidates if n.node_id != node.node_id)
        return siblings

    def get_selected(self) -> list[TreeNode]:
        return self.find_nodes("true", SearchField.SELECTED)

    def get_unselected(self) -> list[TreeNode]:
        return self.find_nodes("false", SearchField.SELECTED)

    def get_expanded(self) -> list[TreeNode]:
        return self.find_nodes("true", SearchField.EXPANDED)

    def get_collapsed(self) -> list[TreeNode]:
        return self.find_nodes("false", SearchField.EXPANDED)

    def get_checked(self) -> list[TreeNode]:
        return self.find_nodes("true", SearchField.CHECKED)

    def get_unchecked(self) -> list[TreeNode]:
        return self.find_nodes("false", SearchField.CHECKED)

    def get_disabled(self) -> list[TreeNode]:
        return self.find_nodes("true", SearchField.DISABLED)

    def get_enabled(self) -> list[TreeNode]:
        return self.find_nodes("false", SearchField.DISABLED)

    def get_search_results(self) -> list[TreeNode]:
        return self.find_nodes("true", SearchField.SEARCH_RESULT)

    # ── Structural mutation ──────────────────────────────────────────

    def add_nodes(
        self,
        nodes: Union[NodeInput, list[NodeInput]],
        parent: Optional[TreeNode] = None,
        index: Optional[int] = None,
        options: Optional[MethodOptions] = None,
    ) -> list[TreeNode]:
        """Insert nodes under parent (or as roots) at index, or append."""
        new_nodes = [
            node if isinstance(node, TreeNode) else TreeNode.from_data(node, self)
            for node in _as_list(nodes)
        ]
        target = parent.nodes if parent is not None else self.roots

        for i, node in enumerate(new_nodes):
            if index is None:
                target.append(node)
            else:
                target.insert(index + i, node)

        self.rebuild_index()

        # The parent of the added nodes gets expanded
        if parent is not None and not parent.state.expanded:
            parent.set_expanded(True, options)

        self.render()
        return new_nodes

    def add_node_after(
        self,
        nodes: Union[NodeInput, list[NodeInput]],
        node: TreeNode,
        options: Optional[MethodOptions] = None,
    ) -> list[TreeNode]:
        return self.add_nodes(nodes, self.get_parent(node), node.index + 1, options)

    def add_node_before(
        self,
        nodes: Union[NodeInput, list[NodeInput]],
        node: TreeNode,
        options: Optional[MethodOptions] = None,
    ) -> list[TreeNode]:
        return self.add_nodes(nodes, self.get_parent(node), node.index, options)

    def _siblings_of(self, node: TreeNode) -> Optional[tuple[list[TreeNode], int]]:
        """The children list holding node and its position there, by identity."""
        parent = self.get_parent(node)
        siblings = parent.nodes if parent is not None else self.roots
        for position, sibling in enumerate(siblings):
            if sibling is node:
                return siblings, position
        logger.warning("Node {!r} is not part of this tree", node.node_id)
        return None

    def remove_nodes(
        self,
        nodes: Union[TreeNode, list[TreeNode]],
        options: Optional[MethodOptions] = None,
    ) -> None:
        """Remove nodes together with their subtrees."""
        for node in _as_list(nodes):
            found = self._siblings_of(node)
            if found is None:
                continue
            siblings, position = found
            del siblings[position]

        self.rebuild_index()
        self.render()

    def update_node(
        self,
        node: TreeNode,
        new_node: NodeInput,
        options: Optional[MethodOptions] = None,
    ) -> Optional[TreeNode]:
        """Replace node, at the same position, with new_node."""
        if not isinstance(new_node, TreeNode):
            new_node = TreeNode.from_data(new_node, self)

        found = self._siblings_of(node)
        if found is None:
            return None
        siblings, position = found
        siblings[position] = new_node

        self.rebuild_index()
        self.render()
        return new_node

    # ── Selection ────────────────────────────────────────────────────

    def select_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[SelectOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_selected(True, options)

    def unselect_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[SelectOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_selected(False, options)

    def toggle_node_selected(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[SelectOptions] = None) -> None:
        for node in _as_list(nodes):
            node.toggle_selected(options)

    # ── Expansion ────────────────────────────────────────────────────

    def expand_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[ExpandOptions] = None) -> None:
        """Expand nodes and `levels - 1` levels of their descendants."""
        options = ExpandOptions.of(options)
        for node in _as_list(nodes):
            if node.state.expanded:
                continue

            if self.options.lazy_load is not None and node.lazy_load:
                node._lazy_load()

            node.set_expanded(True, options)
            if node.nodes:
                self._expand_levels(node.nodes, options.levels - 1, options)

    def _expand_levels(self, nodes: list[TreeNode], level: int, options: ExpandOptions) -> None:
        for node in nodes:
            node.set_expanded(level > 0, options)
            if node.nodes:
                self._expand_levels(node.nodes, level - 1, options)

    def expand_all(self, options: Optional[ExpandOptions] = None) -> None:
        options = ExpandOptions.of(options)
        options = options.model_copy(update={"levels": options.levels or 999})
        self.expand_node(list(self.roots), options)

    def collapse_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[ExpandOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_expanded(False, options)

    def collapse_all(self, options: Optional[ExpandOptions] = None) -> None:
        self.collapse_node(list(self.roots), options)

    def reveal_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[ExpandOptions] = None) -> None:
        """Expand every ancestor of the given nodes, up to the root."""
        for node in _as_list(nodes):
            parent = self.get_parent(node)
            while parent is not None:
                parent.set_expanded(True, options)
                parent = self.get_parent(parent)

    def toggle_node_expanded(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[ExpandOptions] = None) -> None:
        for node in _as_list(nodes):
            node.toggle_expanded(options)

    # ── Checking ─────────────────────────────────────────────────────

    def check_all(self, options: Optional[MethodOptions] = None) -> None:
        for node in self.get_nodes():
            if not node.state.checked:
                node.set_checked(True, options)

    def check_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[MethodOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_checked(True, options)

    def uncheck_all(self, options: Optional[MethodOptions] = None) -> None:
        for node in self.get_nodes():
            if node.state.checked or node.state.checked is None:
                node.set_checked(False, options)

    def uncheck_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[MethodOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_checked(False, options)

    def toggle_node_checked(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[MethodOptions] = None) -> None:
        for node in _as_list(nodes):
            node.toggle_checked(options)

    # ── Disabling ────────────────────────────────────────────────────

    def disable_all(self, options: Optional[DisableOptions] = None) -> None:
        for node in self.get_enabled():
            node.set_disabled(True, options)

    def disable_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[DisableOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_disabled(True, options)

    def enable_all(self, options: Optional[DisableOptions] = None) -> None:
        for node in self.get_disabled():
            node.set_disabled(False, options)

    def enable_node(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[DisableOptions] = None) -> None:
        for node in _as_list(nodes):
            node.set_disabled(False, options)

    def toggle_node_disabled(self, nodes: Union[TreeNode, list[TreeNode]], options: Optional[DisableOptions] = None) -> None:
        for node in _as_list(nodes):
            node.toggle_disabled(options)

    # ── Search ───────────────────────────────────────────────────────

    def search(self, pattern: str, options: Optional[SearchOptions] = None) -> list[TreeNode]:
        """
        Flag the nodes matching pattern as search results.
        Only nodes whose flag actually changes are touched.
        """
        options = SearchOptions.of(options)
        previous = self.get_search_results()
        results: list[TreeNode] = []

        if pattern:
            regex = compile_pattern(pattern, options)
            results = find_nodes(self._ordered_nodes.values(), regex, options.field)

        diff = diff_results(previous, results)
        for node in diff.cleared:
            node._set_search_result(False, options)
        for node in diff.added:
            node._set_search_result(True, options)

        if results and options.reveal_results:
            self.reveal_node(results, ExpandOptions.of(options))

        self._emit(EventName.SEARCH_COMPLETED, results, options)
        return results

    def clear_search(self, options: Optional[SearchOptions] = None) -> list[TreeNode]:
        """Clear every search flag; returns the (now empty) result set."""
        options = SearchOptions.of(options)
        cleared = self.get_search_results()
        for node in cleared:
            node._set_search_result(False, options)

        self._emit(EventName.SEARCH_CLEARED, cleared, options)
        return []

    @property
    def search_results(self) -> list[TreeNode]:
        """Flagged nodes in render order; always reflects the current tree."""
        return self.get_search_results()
