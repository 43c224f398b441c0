"""
A single node of a tree and its state transitions.

Every mutator is guarded: calling it with the value the node already holds
does nothing unless ``force`` is set. Transitions cascade:

- collapsing hides and collapses the whole subtree, expanding only shows the
  direct children;
- selecting clears every other selection unless multi-select is on;
- toggling a check in hierarchical mode recomputes every ancestor from its
  children and forces every descendant to the new value;
- disabling clears selected, checked and expanded unless ``keep_state``.

The parent is never held by reference. ``parent_id`` is resolved through the
owning tree's flat index.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Any, Iterator, Optional, Union

from loguru import logger

from .events import EventName
from .models import (
    DisableOptions,
    MethodOptions,
    NodeData,
    NodeState,
    SelectOptions,
)

if TYPE_CHECKING:
    from .tree import TreeView


class TreeNode:
    """One hierarchical item: text, payload, state flags and owned children."""

    def __init__(
        self,
        text: str,
        nodes: Optional[list[TreeNode]] = None,
        state: Optional[NodeState] = None,
        *,
        selectable: bool = True,
        checkable: bool = True,
        lazy_load: bool = False,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        self.text = text
        self.nodes: list[TreeNode] = list(nodes or [])
        self.state = state if state is not None else NodeState()
        self.selectable = selectable
        self.checkable = checkable
        self.lazy_load = lazy_load
        self.payload: dict[str, Any] = dict(payload or {})

        self.search_result = False
        self.check_changed = False

        # Assigned by the indexer
        self.level = 1
        self.index = 0
        self.node_id: Optional[str] = None
        self.parent_id: Optional[str] = None
        self._tree: Optional[TreeView] = None

    @classmethod
    def from_data(cls, data: Union[NodeData, dict[str, Any]], tree: Optional[TreeView] = None) -> TreeNode:
        """Build a node and its children by value from a data description."""
        if not isinstance(data, NodeData):
            data = NodeData.model_validate(data)
        node = cls(
            text=data.text,
            nodes=[cls.from_data(child, tree) for child in data.nodes],
            state=data.state.model_copy(),
            selectable=data.selectable,
            checkable=data.checkable,
            lazy_load=data.lazy_load,
            payload=data.payload,
        )
        node._tree = tree
        return node

    def __repr__(self) -> str:
        return f"TreeNode({self.text!r}, node_id={self.node_id!r})"

    # ── Structure ────────────────────────────────────────────────────

    @property
    def tree(self) -> Optional[TreeView]:
        return self._tree

    @property
    def parent(self) -> Optional[TreeNode]:
        if self.tree is None or self.parent_id is None:
            return None
        return self.tree.get_node(self.parent_id)

    def has_children(self) -> bool:
        return len(self.nodes) > 0

    def depth_first(self) -> Iterator[TreeNode]:
        """Yield self, then every descendant in pre-order."""
        yield self
        for child in self.nodes:
            yield from child.depth_first()

    # ── Expansion ────────────────────────────────────────────────────

    def set_expanded(self, state: Optional[bool], options: Optional[MethodOptions] = None) -> TreeNode:
        """Expand (requires children) or collapse this node."""
        options = MethodOptions.of(options)
        if not options.force and state == self.state.expanded:
            return self

        if state and self.has_children():
            self.state.expanded = True
            for child in self.nodes:
                child._set_visible(True, options)
            self._emit(EventName.NODE_EXPANDED, options)

        elif not state:
            self.state.expanded = False
            # Collapse forgets deeper expansion state
            for child in self.nodes:
                child._set_visible(False, options)
                child.set_expanded(False, options)
            self._emit(EventName.NODE_COLLAPSED, options)

        return self

    def toggle_expanded(self, options: Optional[MethodOptions] = None) -> TreeNode:
        if self.lazy_load and self.tree is not None and self.tree.options.lazy_load is not None:
            self._lazy_load()
        else:
            self.set_expanded(not self.state.expanded, options)
        return self

    def _lazy_load(self) -> None:
        """Run the tree's lazy-load hook; only the first expand loads."""
        if not self.lazy_load or self.tree is None:
            return
        tree = self.tree
        hook = tree.options.lazy_load
        if hook is None:
            logger.warning("Node {} is lazy but the tree has no lazy_load hook", self.node_id)
            return
        logger.debug("Lazy loading children of {}", self.node_id)
        hook(self, lambda nodes: tree.add_nodes(nodes, self))
        self.lazy_load = False

    def _set_visible(self, state: bool, options: Optional[MethodOptions] = None) -> None:
        options = MethodOptions.of(options)
        if not options.force and state == self.state.visible:
            return
        self.state.visible = state

    # ── Selection ────────────────────────────────────────────────────

    def set_selected(self, state: bool, options: Optional[SelectOptions] = None) -> TreeNode:
        options = SelectOptions.of(options)
        if not options.force and state == self.state.selected:
            return self

        tree = self.tree
        if state:
            if tree is not None and not tree.options.multi_select:
                unselect = options.model_copy(update={"unselecting": True})
                for node in tree.get_selected():
                    node.set_selected(False, unselect)

            self.state.selected = True
            self._emit(EventName.NODE_SELECTED, options)
        else:
            if (tree is not None
                    and tree.options.prevent_unselect
                    and not options.unselecting
                    and not options.ignore_prevent_unselect
                    and len(tree.get_selected()) == 1):
                if tree.options.allow_reselect:
                    self._emit(EventName.NODE_SELECTED, options)
                return self

            self.state.selected = False
            self._emit(EventName.NODE_UNSELECTED, options)

        return self

    def toggle_selected(self, options: Optional[SelectOptions] = None) -> TreeNode:
        return self.set_selected(not self.state.selected, options)

    # ── Checking ─────────────────────────────────────────────────────

    def set_checked(self, state: Optional[bool], options: Optional[MethodOptions] = None) -> TreeNode:
        """Check, uncheck, or (hierarchical mode only) partially check."""
        options = MethodOptions.of(options)
        hierarchical = self.tree is not None and self.tree.options.hierarchical_check
        if state is None and not hierarchical:
            state = False
        if not options.force and state == self.state.checked:
            return self

        if self.tree is not None and self.tree.tracks_check_changes:
            self.check_changed = self.tree.is_check_changed(self, state)

        if state:
            self.state.checked = True
            self._emit(EventName.NODE_CHECKED, options)
        elif state is None:
            self.state.checked = None
            # partially checked counts as unchecked
            self._emit(EventName.NODE_UNCHECKED, options)
        else:
            self.state.checked = False
            self._emit(EventName.NODE_UNCHECKED, options)

        return self

    def toggle_checked(self, options: Optional[MethodOptions] = None) -> TreeNode:
        options = MethodOptions.of(options)
        tree = self.tree
        if tree is not None and tree.options.hierarchical_check:
            cascade = options.model_copy(
                update={"silent": options.silent or not tree.options.propagate_check_event}
            )

            # Temporarily flip so ancestors see the new value
            self.state.checked = not self.state.checked

            parent = tree.get_parent(self)
            while parent is not None:
                states = [child.state.checked for child in parent.nodes]
                agreed = states[0] if all(s is states[0] for s in states) else None
                parent.set_checked(agreed, cascade)
                parent = tree.get_parent(parent)

            pending = list(self.nodes)
            while pending:
                child = pending.pop()
                child.set_checked(self.state.checked, cascade)
                pending.extend(child.nodes)

            self.state.checked = not self.state.checked

        return self.set_checked(not self.state.checked, options)

    # ── Disabling ────────────────────────────────────────────────────

    def set_disabled(self, state: bool, options: Optional[DisableOptions] = None) -> TreeNode:
        options = DisableOptions.of(options)
        if not options.force and state == self.state.disabled:
            return self

        if state:
            self.state.disabled = True
            if not options.keep_state:
                clear = SelectOptions.of(options).model_copy(update={"ignore_prevent_unselect": True})
                self.set_selected(False, clear)
                self.set_checked(False, options)
                self.set_expanded(False, options)
            self._emit(EventName.NODE_DISABLED, options)
        else:
            self.state.disabled = False
            self._emit(EventName.NODE_ENABLED, options)

        return self

    def toggle_disabled(self, options: Optional[DisableOptions] = None) -> TreeNode:
        return self.set_disabled(not self.state.disabled, options)

    # ── Search ───────────────────────────────────────────────────────

    def _set_search_result(self, state: bool, options: Optional[MethodOptions] = None) -> None:
        options = MethodOptions.of(options)
        if not options.force and state == self.search_result:
            return
        self.search_result = state

    def _emit(self, name: EventName, options: Optional[MethodOptions]) -> None:
        if self.tree is not None:
            self.tree._emit(name, self, options)
