"""
Data models for the tree engine.

Input descriptions, per-node state, option objects and rendered response rows.
Every model accepts both snake_case and camelCase keys so that data written
for the browser component loads unchanged.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchField(str, Enum):
    """Node attributes that search and find_nodes can match against."""
    TEXT          = "text"
    TOOLTIP       = "tooltip"
    HREF          = "href"
    ID            = "id"
    CHECKED       = "state.checked"
    SELECTED      = "state.selected"
    EXPANDED      = "state.expanded"
    DISABLED      = "state.disabled"
    VISIBLE       = "state.visible"
    SEARCH_RESULT = "searchResult"


class NodeState(BaseModel):
    """Mutable state flags of a single node."""
    model_config = _CAMEL

    checked: Optional[bool] = False     # None = partially checked
    selected: bool = False
    expanded: Optional[bool] = None     # None until the first indexing pass
    disabled: bool = False
    visible: bool = False               # derived by the indexer


class NodeData(BaseModel):
    """One node of the nested data description a tree is built from."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    text: str
    nodes: list[NodeData] = Field(default_factory=list)
    state: NodeState = Field(default_factory=NodeState)
    selectable: bool = True
    checkable: bool = True
    lazy_load: bool = False

    @field_validator("nodes", mode="before")
    @classmethod
    def empty_children_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def payload(self) -> dict[str, Any]:
        """Presentation attributes the engine passes through untouched."""
        return dict(self.model_extra or {})


# ── Per-call options ────────────────────────────────────────────────

class MethodOptions(BaseModel):
    """Options accepted by every state mutator."""
    model_config = _CAMEL

    silent: bool = False    # suppress notifications
    force: bool = False     # apply even if the value is unchanged

    @classmethod
    def of(cls, options: Union[MethodOptions, dict[str, Any], None] = None):
        """Coerce None, a dict or another options model into this class."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, BaseModel):
            options = options.model_dump()
        return cls.model_validate(options)


class SelectOptions(MethodOptions):
    ignore_prevent_unselect: bool = False
    unselecting: bool = Field(default=False, exclude=True)   # internal reselection pass


class ExpandOptions(MethodOptions):
    levels: int = 999


class DisableOptions(MethodOptions):
    keep_state: bool = False


class SearchOptions(MethodOptions):
    ignore_case: bool = True
    exact_match: bool = False
    reveal_results: bool = True
    field: SearchField = SearchField.TEXT


# ── Tree configuration ──────────────────────────────────────────────

Handler = Callable[..., Any]


class TreeViewOptions(BaseModel):
    """Global configuration of a tree."""
    model_config = _CAMEL

    levels: int = Field(default=1, ge=0)   # auto-expand depth
    data: Union[str, list[Any], None] = None
    ajax_url: Optional[str] = None
    ajax_config: dict[str, Any] = Field(default_factory=lambda: {"method": "GET"})

    show_checkbox: bool = False
    highlight_changes: bool = False
    multi_select: bool = False
    prevent_unselect: bool = False
    allow_reselect: bool = False
    hierarchical_check: bool = False
    propagate_check_event: bool = False

    lazy_load: Optional[Handler] = None
    renderer: Optional[Handler] = None

    on_loading: Optional[Handler] = None
    on_loading_failed: Optional[Handler] = None
    on_initialized: Optional[Handler] = None
    on_rendered: Optional[Handler] = None
    on_destroyed: Optional[Handler] = None
    on_node_rendered: Optional[Handler] = None
    on_node_checked: Optional[Handler] = None
    on_node_unchecked: Optional[Handler] = None
    on_node_selected: Optional[Handler] = None
    on_node_unselected: Optional[Handler] = None
    on_node_expanded: Optional[Handler] = None
    on_node_collapsed: Optional[Handler] = None
    on_node_disabled: Optional[Handler] = None
    on_node_enabled: Optional[Handler] = None
    on_search_complete: Optional[Handler] = None
    on_search_cleared: Optional[Handler] = None


# ── Rendered output ─────────────────────────────────────────────────

class RenderedRow(BaseModel):
    """A visible node enriched with tree-display metadata."""
    node_id: str
    text: str
    level: int
    connectors: list[str]               # visual connector tokens per level
    ancestors: list[str]                # ordered ancestor node ids (root → parent)
    is_last_child: bool
    has_children: bool
    checked: Optional[bool]
    selected: bool
    expanded: Optional[bool]
    disabled: bool
    search_result: bool
    check_changed: bool = False


class PageResponse(BaseModel):
    """Paginated API response."""
    page: int
    page_size: int
    total_nodes: int
    total_pages: int
    nodes: list[RenderedRow]
    selected_ids: list[str] = []
    result_ids: list[str] = []


class SearchRequest(BaseModel):
    """Body of a search call."""
    pattern: str
    options: SearchOptions = Field(default_factory=SearchOptions)
