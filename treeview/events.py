"""
Notifications raised by a tree and its nodes.
"""
from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from loguru import logger

if TYPE_CHECKING:
    from .models import MethodOptions, TreeViewOptions
    from .tree import TreeView


class EventName(str, Enum):
    # tree events
    LOADING          = "loading"
    LOADING_FAILED   = "loading_failed"
    INITIALIZED      = "initialized"
    RENDERED         = "rendered"
    DESTROYED        = "destroyed"
    SEARCH_COMPLETED = "search_completed"
    SEARCH_CLEARED   = "search_cleared"
    # node events
    NODE_RENDERED    = "node_rendered"
    NODE_CHECKED     = "node_checked"
    NODE_UNCHECKED   = "node_unchecked"
    NODE_SELECTED    = "node_selected"
    NODE_UNSELECTED  = "node_unselected"
    NODE_EXPANDED    = "node_expanded"
    NODE_COLLAPSED   = "node_collapsed"
    NODE_DISABLED    = "node_disabled"
    NODE_ENABLED     = "node_enabled"


# TreeViewOptions handler field for each event
_OPTION_HANDLERS = {
    EventName.LOADING:          "on_loading",
    EventName.LOADING_FAILED:   "on_loading_failed",
    EventName.INITIALIZED:      "on_initialized",
    EventName.RENDERED:         "on_rendered",
    EventName.DESTROYED:        "on_destroyed",
    EventName.SEARCH_COMPLETED: "on_search_complete",
    EventName.SEARCH_CLEARED:   "on_search_cleared",
    EventName.NODE_RENDERED:    "on_node_rendered",
    EventName.NODE_CHECKED:     "on_node_checked",
    EventName.NODE_UNCHECKED:   "on_node_unchecked",
    EventName.NODE_SELECTED:    "on_node_selected",
    EventName.NODE_UNSELECTED:  "on_node_unselected",
    EventName.NODE_EXPANDED:    "on_node_expanded",
    EventName.NODE_COLLAPSED:   "on_node_collapsed",
    EventName.NODE_DISABLED:    "on_node_disabled",
    EventName.NODE_ENABLED:     "on_node_enabled",
}


@dataclass
class TreeEvent:
    """A single notification: what happened, to what, in which tree."""
    name: EventName
    data: Any                           # node, node list, or load error
    tree: TreeView
    options: Optional[MethodOptions] = None


Listener = Callable[[TreeEvent], Any]


class EventBus:
    """Per-tree listener registry."""

    def __init__(self) -> None:
        self._listeners: dict[EventName, list[Listener]] = defaultdict(list)

    @classmethod
    def from_options(cls, options: TreeViewOptions) -> EventBus:
        """Subscribe every on_* handler set in the tree options."""
        bus = cls()
        for name, attr in _OPTION_HANDLERS.items():
            handler = getattr(options, attr)
            if callable(handler):
                bus.subscribe(name, handler)
        return bus

    def subscribe(self, name: EventName, listener: Listener) -> None:
        self._listeners[EventName(name)].append(listener)

    def unsubscribe(self, name: EventName, listener: Listener) -> None:
        listeners = self._listeners[EventName(name)]
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: TreeEvent) -> None:
        if event.options is not None and event.options.silent:
            return
        logger.trace("event {} -> {} listener(s)", event.name.value, len(self._listeners[event.name]))
        for listener in list(self._listeners[event.name]):
            listener(event)
