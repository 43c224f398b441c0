"""
Text renderer for the render-ordered node view.

Key ideas:
- Rows are produced in the order the tree hands them over (pre-order), so a
  node is only shown if it is visible and its parent was shown.
- Each row carries connector tokens. A token at ancestor level i is a
  vertical line when the ancestor at that level still has siblings below it,
  so │ lines persist correctly across page boundaries.
- Rendering is idempotent: calling the renderer again rebuilds the rows from
  current node state.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Optional

from .models import RenderedRow

if TYPE_CHECKING:
    from .node import TreeNode

# ── Connector tokens ────────────────────────────────────────────────
VERTICAL   = "│"   # level has more siblings below
TEE        = "├──" # standard child connector
CORNER     = "└──" # final child connector
SPACE      = "   " # level is closed; just padding
NODE_DOT   = "•"   # node indicator appended after connector


class TextRenderer:
    """
    Renderer collaborator producing connector rows.

    Usage:
        renderer = TextRenderer()
        tree = TreeView(TreeViewOptions(data=..., renderer=renderer))
        rows = renderer.rows                  # visible rows, render order
        page, total_pages = get_page(rows, page=2, page_size=10)
    """

    def __init__(self) -> None:
        self.rows: list[RenderedRow] = []
        self.render_count = 0

    def __call__(self, nodes: list[TreeNode]) -> list[RenderedRow]:
        self.rows = linearize(nodes)
        self.render_count += 1
        return self.rows

    def lookup(self, node_id: str) -> Optional[RenderedRow]:
        return next((row for row in self.rows if row.node_id == node_id), None)


def linearize(nodes: list[TreeNode], *, visible_only: bool = True) -> list[RenderedRow]:
    """Turn render-ordered nodes into display rows."""
    root_count = sum(1 for node in nodes if node.parent_id is None)
    shown: set[str] = set()
    rows: list[RenderedRow] = []

    for node in nodes:
        if visible_only:
            if not node.state.visible:
                continue
            if node.parent_id is not None and node.parent_id not in shown:
                continue
        shown.add(node.node_id)

        ancestors = _ancestors(node)
        path = ancestors[1:] + [node]
        branch_open = [not _is_last_child(n, root_count) for n in path]
        is_last = _is_last_child(node, root_count)

        rows.append(
            RenderedRow(
                node_id=node.node_id,
                text=node.text,
                level=node.level,
                connectors=build_connectors(branch_open, node.level - 1, is_last),
                ancestors=[a.node_id for a in ancestors],
                is_last_child=is_last,
                has_children=node.has_children() or node.lazy_load,
                checked=node.state.checked,
                selected=node.state.selected,
                expanded=node.state.expanded,
                disabled=node.state.disabled,
                search_result=node.search_result,
                check_changed=node.check_changed,
            )
        )
    return rows


def get_page(
    rows: list[RenderedRow],
    page: int,
    page_size: int = 10,
) -> tuple[list[RenderedRow], int]:
    """
    Slice the rows for pagination.
    Returns (page_rows, total_pages).
    """
    total = len(rows)
    total_pages = max(1, -(-total // page_size))  # ceiling division
    page = max(1, min(page, total_pages))
    start = (page - 1) * page_size
    return rows[start : start + page_size], total_pages


def format_rows(rows: list[RenderedRow]) -> str:
    """ASCII dump of rendered rows, one line per node."""
    lines = []
    for row in rows:
        prefix = "".join(row.connectors[:-1])   # all except the final •
        lines.append(f"{prefix} {row.text}  [{row.node_id}]")
    return "\n".join(lines)


def build_connectors(
    branch_open: list[bool],
    depth: int,
    is_last_child: bool,
) -> list[str]:
    """
    Build the list of connector tokens for a node.

    Example for depth=2, branch_open=[True, False]:
        ["│", "└──", "•"]
    """
    if depth == 0:
        return [NODE_DOT]

    tokens: list[str] = []

    # All ancestor levels: vertical line if that level's branch is still open
    for open_flag in branch_open[:-1]:
        tokens.append(VERTICAL if open_flag else SPACE)

    # Immediate parent connector
    tokens.append(CORNER if is_last_child else TEE)

    tokens.append(NODE_DOT)
    return tokens


def _ancestors(node: TreeNode) -> list[TreeNode]:
    """Ancestors root first."""
    chain = []
    parent = node.parent
    while parent is not None:
        chain.append(parent)
        parent = parent.parent
    chain.reverse()
    return chain


def _is_last_child(node: TreeNode, root_count: int) -> bool:
    parent = node.parent
    siblings = len(parent.nodes) if parent is not None else root_count
    return node.index == siblings - 1
