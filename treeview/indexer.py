"""
Hierarchy indexing and render ordering.

Key ideas:
- The real roots hang off a virtual level-0 root that is never registered.
  Roots therefore get ids "0.0", "0.1", ... and no parent.
- A node id is its parent's id plus its sibling index, so ids double as the
  render-order sort key: comparing the integer components pre-orders the tree.
- Default expansion and visibility are derived while walking, so a parent is
  always processed before its children.
"""
from __future__ import annotations
import re
from functools import cmp_to_key
from itertools import zip_longest
from typing import TYPE_CHECKING, Optional

from .exceptions import NodeOrderError

if TYPE_CHECKING:
    from .node import TreeNode
    from .tree import TreeView

NODE_ID_RE = re.compile(r"^\d+(\.\d+)+$")


def index_hierarchy(roots: list[TreeNode], tree: TreeView) -> None:
    """
    Assign level, index, node id, parent and default state to every node
    below the virtual root, registering each one in the tree's flat map.
    """
    options = tree.options
    # (node, parent, level, index); parent None = virtual root
    stack: list[tuple[TreeNode, Optional[TreeNode], int, int]] = [
        (node, None, 1, i) for i, node in reversed(list(enumerate(roots)))
    ]

    while stack:
        node, parent, level, index = stack.pop()

        node.level = level
        node.index = index
        if parent is not None:
            node.node_id = f"{parent.node_id}.{index}"
            node.parent_id = parent.node_id
        else:
            node.node_id = f"{level - 1}.{index}"
            node.parent_id = None
        node._tree = tree

        if node.state.checked is None and not options.hierarchical_check:
            node.state.checked = False

        # Only derive expansion if the data left it unset
        if node.state.expanded is None:
            node.state.expanded = (
                not node.state.disabled
                and level < options.levels
                and node.has_children()
            )

        node.state.visible = bool(
            (parent is not None and parent.state.expanded is True)
            or level <= options.levels
        )

        tree._register(node)

        for i in reversed(range(len(node.nodes))):
            stack.append((node.nodes[i], node, level + 1, i))


def compare_node_ids(a: str, b: str) -> int:
    """
    Order two node ids by render order: component-wise on integers, an
    ancestor (prefix) before its descendants.
    """
    if a == b:
        return 0
    left = [int(part) for part in a.split(".")]
    right = [int(part) for part in b.split(".")]

    for x, y in zip_longest(left, right):
        if x is None:
            return -1
        if y is None:
            return 1
        if x != y:
            return -1 if x < y else 1

    # Distinct strings with equal integer paths, e.g. "0.01" and "0.1"
    raise NodeOrderError(a, b)


def sort_nodes(nodes: dict[str, TreeNode]) -> dict[str, TreeNode]:
    """Return a copy of a flat map sorted into render order."""
    key = cmp_to_key(lambda p, q: compare_node_ids(p[0], q[0]))
    return dict(sorted(nodes.items(), key=key))


def is_valid_node_id(node_id: str) -> bool:
    return bool(NODE_ID_RE.match(node_id))
