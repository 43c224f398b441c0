"""
FastAPI backend exposing a tree to a browser renderer.

Endpoints:
  GET    /nodes                     → paginated rendered rows (visible nodes)
  GET    /nodes/{id}                → single node + its ancestry chain
  POST   /nodes                     → add nodes under a parent (or as roots)
  PUT    /nodes/{id}                → replace a node
  DELETE /nodes/{id}                → remove a node and its subtree
  POST   /nodes/{id}/{action}       → expand / select / check / disable / ...
                                      (409 when the node refuses the action)
  POST   /search                    → flag matching nodes
  DELETE /search                    → clear search flags
  POST   /checked/baseline          → mark current checked set as unchanged
  POST   /seed                      → (dev) replace data
  GET    /debug/tree                → (dev) ASCII tree
"""
from __future__ import annotations
import re
from contextlib import asynccontextmanager
from typing import Callable, Optional
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from .exceptions import TreeViewError
from .logging_config import configure_logging
from .models import ExpandOptions, NodeData, PageResponse, SearchRequest, TreeViewOptions
from .node import TreeNode
from .render import TextRenderer, format_rows, get_page
from .tree import TreeView

PAGE_SIZE = 10

# ── In-memory store (swap for DB later) ─────────────────────────────
_renderer = TextRenderer()
_tree: Optional[TreeView] = None


SAMPLE_DATA = [
    {"text": "Handbook", "nodes": [
        {"text": "Getting Started", "nodes": [
            {"text": "Installation"},
            {"text": "First Tree"},
        ]},
        {"text": "Guides", "nodes": [
            {"text": "Selection", "tooltip": "single and multi select"},
            {"text": "Checking", "nodes": [
                {"text": "Hierarchical Check"},
                {"text": "Change Highlighting"},
            ]},
            {"text": "Searching"},
        ]},
    ]},
    {"text": "Reference", "nodes": [
        {"text": "Options"},
        {"text": "Events"},
        {"text": "Archived API", "state": {"disabled": True}},
    ]},
    {"text": "Changelog"},
]


def _tree_options(data: list) -> TreeViewOptions:
    return TreeViewOptions(
        data=data,
        renderer=_renderer,
        show_checkbox=True,
        highlight_changes=True,
        hierarchical_check=True,
    )


async def _load(data: list) -> TreeView:
    global _tree
    tree = TreeView(_tree_options(data))
    await tree.initialize()
    _tree = tree
    return tree


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await _load(SAMPLE_DATA)
    yield


# ── App setup ───────────────────────────────────────────────────────
app = FastAPI(
    title="Tree View",
    description="Interactive hierarchical list with selection, checking and search.",
    version="1.0.0",
    lifespan=lifespan,
)


def _require_tree() -> TreeView:
    if _tree is None:
        raise HTTPException(500, "Tree not initialised")
    return _tree


def _require_node(node_id: str) -> TreeNode:
    node = _require_tree().target_node(node_id)
    if node is None:
        raise HTTPException(404, f"Node '{node_id}' not found")
    return node


# action name → mutation applied to (tree, node, levels)
ACTIONS: dict[str, Callable[[TreeView, TreeNode, int], None]] = {
    "expand":           lambda t, n, levels: t.expand_node(n, ExpandOptions(levels=levels)),
    "collapse":         lambda t, n, levels: t.collapse_node(n),
    "toggle-expanded":  lambda t, n, levels: t.toggle_node_expanded(n),
    "reveal":           lambda t, n, levels: t.reveal_node(n),
    "select":           lambda t, n, levels: t.select_node(n),
    "unselect":         lambda t, n, levels: t.unselect_node(n),
    "toggle-selected":  lambda t, n, levels: t.toggle_node_selected(n),
    "check":            lambda t, n, levels: t.check_node(n),
    "uncheck":          lambda t, n, levels: t.uncheck_node(n),
    "toggle-checked":   lambda t, n, levels: t.toggle_node_checked(n),
    "disable":          lambda t, n, levels: t.disable_node(n),
    "enable":           lambda t, n, levels: t.enable_node(n),
    "toggle-disabled":  lambda t, n, levels: t.toggle_node_disabled(n),
}

SELECT_ACTIONS  = {"select", "unselect", "toggle-selected"}
CHECK_ACTIONS   = {"check", "uncheck", "toggle-checked"}
DISABLE_ACTIONS = {"disable", "enable", "toggle-disabled"}


def _resolve_action(node: TreeNode, action: str) -> str:
    """
    Apply the node's own interaction flags to a requested action, the way a
    click on the node is handled.

    A disabled node only accepts enable/disable. A node with checkable off
    refuses check actions. Selecting a node with selectable off toggles its
    expansion instead.
    """
    if node.state.disabled and action not in DISABLE_ACTIONS:
        raise HTTPException(409, f"Node '{node.node_id}' is disabled")
    if action in CHECK_ACTIONS and not node.checkable:
        raise HTTPException(409, f"Node '{node.node_id}' is not checkable")
    if action in SELECT_ACTIONS and not node.selectable:
        return "toggle-expanded"
    return action


class AddNodesRequest(BaseModel):
    nodes: list[NodeData]
    parent_id: Optional[str] = None
    index: Optional[int] = None


# ── Routes ───────────────────────────────────────────────────────────

@app.get("/nodes", response_model=PageResponse, summary="Get paginated rendered tree")
async def get_nodes(
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
):
    """
    Returns a paginated slice of the visible rows in render order.
    Each row includes its connector tokens and ancestor ids for
    client-side ancestry highlighting.
    """
    tree = _require_tree()
    rows = _renderer.rows
    page_rows, total_pages = get_page(rows, page, PAGE_SIZE)

    return PageResponse(
        page=page,
        page_size=PAGE_SIZE,
        total_nodes=len(rows),
        total_pages=total_pages,
        nodes=page_rows,
        selected_ids=[n.node_id for n in tree.get_selected()],
        result_ids=[n.node_id for n in tree.get_search_results()],
    )


@app.get("/nodes/{node_id}", summary="Get a single node with ancestry")
async def get_node(node_id: str):
    """
    Returns a single node plus its full ancestry chain.
    Used by the frontend to highlight all ancestors on click.
    """
    node = _require_node(node_id)
    row = _renderer.lookup(node_id)
    ancestry = []
    parent = node.parent
    while parent is not None:
        ancestry.insert(0, parent.node_id)
        parent = parent.parent
    return {
        "node_id": node.node_id,
        "text": node.text,
        "level": node.level,
        "state": node.state.model_dump(),
        "search_result": node.search_result,
        "payload": node.payload,
        "row": row,
        "ancestry": ancestry,
    }


@app.post("/nodes", summary="Add nodes under a parent")
async def add_nodes(request: AddNodesRequest):
    tree = _require_tree()
    parent = _require_node(request.parent_id) if request.parent_id is not None else None
    added = tree.add_nodes(request.nodes, parent, request.index)
    return {"added": [n.node_id for n in added], "total_nodes": len(tree.get_nodes())}


@app.put("/nodes/{node_id}", summary="Replace a node")
async def update_node(node_id: str, new_node: NodeData):
    tree = _require_tree()
    replaced = tree.update_node(_require_node(node_id), new_node)
    return {"node_id": replaced.node_id, "total_nodes": len(tree.get_nodes())}


@app.delete("/nodes/{node_id}", summary="Remove a node and its subtree")
async def remove_node(node_id: str):
    tree = _require_tree()
    tree.remove_nodes(_require_node(node_id))
    return {"removed": node_id, "total_nodes": len(tree.get_nodes())}


@app.post("/nodes/{node_id}/{action}", summary="Apply a state action to a node")
async def node_action(
    node_id: str,
    action: str,
    levels: int = Query(default=999, ge=0, description="Depth for expand"),
):
    tree = _require_tree()
    node = _require_node(node_id)
    if action not in ACTIONS:
        raise HTTPException(400, f"Unknown action '{action}'")
    ACTIONS[_resolve_action(node, action)](tree, node, levels)
    tree.render()
    return {"node_id": node.node_id, "state": node.state.model_dump()}


@app.post("/search", summary="Search node text")
async def search(request: SearchRequest):
    tree = _require_tree()
    try:
        results = tree.search(request.pattern, request.options)
    except re.error as exc:
        raise HTTPException(400, f"Invalid pattern: {exc}")
    tree.render()
    return {"results": [n.node_id for n in results]}


@app.delete("/search", summary="Clear search results")
async def clear_search():
    tree = _require_tree()
    tree.clear_search()
    tree.render()
    return {"results": []}


@app.post("/checked/baseline", summary="Mark current checkboxes as unchanged")
async def unmark_checkbox_changes():
    tree = _require_tree()
    tree.unmark_checkbox_changes()
    tree.render()
    return {"checked": [n.node_id for n in tree.get_checked()]}


@app.post("/seed", summary="(Dev) Replace data with custom nodes")
async def seed_nodes(nodes: list[NodeData]):
    """Load a custom node list, replacing existing data."""
    try:
        tree = await _load(nodes)
    except TreeViewError as exc:
        raise HTTPException(422, str(exc))
    return {"loaded": len(tree.roots), "total_nodes": len(tree.get_nodes())}


@app.get("/debug/tree", summary="(Dev) Print ASCII tree to response")
async def debug_tree():
    """Returns the visible tree as ASCII art for debugging."""
    if not _renderer.rows:
        return {"tree": "(empty)"}
    return {"tree": format_rows(_renderer.rows)}
