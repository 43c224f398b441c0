"""
Pattern search over the render-ordered index.

Searchable attributes are a closed set (SearchField) mapped to accessor
functions; values are coerced to strings ("true"/"false" for flags) before
matching. A missing value never matches.
"""
from __future__ import annotations
import re
from typing import TYPE_CHECKING, Any, Callable, Iterable, NamedTuple, Optional, Union

from .models import SearchField, SearchOptions

if TYPE_CHECKING:
    from .node import TreeNode

__all__ = [
    "SearchField",
    "SearchDiff",
    "compile_pattern",
    "diff_nodes",
    "diff_results",
    "field_value",
    "find_nodes",
]

_ACCESSORS: dict[SearchField, Callable[[TreeNode], Any]] = {
    SearchField.TEXT:          lambda node: node.text,
    SearchField.TOOLTIP:       lambda node: node.payload.get("tooltip"),
    SearchField.HREF:          lambda node: node.payload.get("href"),
    SearchField.ID:            lambda node: node.payload.get("id"),
    SearchField.CHECKED:       lambda node: node.state.checked,
    SearchField.SELECTED:      lambda node: node.state.selected,
    SearchField.EXPANDED:      lambda node: node.state.expanded,
    SearchField.DISABLED:      lambda node: node.state.disabled,
    SearchField.VISIBLE:       lambda node: node.state.visible,
    SearchField.SEARCH_RESULT: lambda node: node.search_result,
}


class SearchDiff(NamedTuple):
    cleared: list      # matched before, not any more
    added: list        # newly matched


def field_value(node: TreeNode, field: Union[SearchField, str]) -> Optional[str]:
    """String form of one searchable attribute, None if absent."""
    value = _ACCESSORS[SearchField(field)](node)
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compile_pattern(pattern: str, options: Optional[SearchOptions] = None) -> re.Pattern:
    options = SearchOptions.of(options)
    if options.exact_match:
        pattern = "^" + pattern + "$"
    return re.compile(pattern, re.IGNORECASE if options.ignore_case else 0)


def find_nodes(
    nodes: Iterable[TreeNode],
    pattern: Union[str, re.Pattern],
    field: Union[SearchField, str] = SearchField.TEXT,
) -> list[TreeNode]:
    """Nodes, in the given order, whose field matches the pattern anywhere."""
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    found = []
    for node in nodes:
        value = field_value(node, field)
        if value is not None and regex.search(value):
            found.append(node)
    return found


def diff_nodes(a: Iterable[TreeNode], b: Iterable[TreeNode]) -> list[TreeNode]:
    """Nodes of b that are not in a, by identity, in b's order."""
    seen = {id(node) for node in a}
    return [node for node in b if id(node) not in seen]


def diff_results(previous: list[TreeNode], current: list[TreeNode]) -> SearchDiff:
    return SearchDiff(
        cleared=diff_nodes(current, previous),
        added=diff_nodes(previous, current),
    )
