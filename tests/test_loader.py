"""
Tests for the one-shot data load and tree initialisation.
Run with: pytest tests/test_loader.py -v
"""
import asyncio
import json

import pytest
import requests
from treeview.events import EventName
from treeview.exceptions import DataLoadError, DataSourceError
from treeview.loader import fetch_remote, parse_nodes
from treeview.models import TreeViewOptions
from treeview.tree import TreeView


# ── Fixtures ─────────────────────────────────────────────────────────

SAMPLE = [{"text": "A", "nodes": [{"text": "A1"}]}, {"text": "B"}]


def initialise(**options):
    """Build a tree, record its events and run initialize() to completion."""
    tree = TreeView(TreeViewOptions(**options))
    events = []
    for name in EventName:
        tree.on(name, lambda event: events.append(event.name))
    asyncio.run(tree.initialize())
    return tree, events


def failing(**options):
    tree = TreeView(TreeViewOptions(**options))
    events = []
    for name in (EventName.LOADING, EventName.LOADING_FAILED, EventName.INITIALIZED):
        tree.on(name, lambda event: events.append((event.name, event.data)))
    return tree, events


class FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


# ── Test: Local data ─────────────────────────────────────────────────

def test_initialise_from_list():
    tree, events = initialise(data=SAMPLE)
    assert tree.initialized is True
    assert [n.text for n in tree.get_nodes()] == ["A", "A1", "B"]
    assert events[:2] == [EventName.LOADING, EventName.INITIALIZED]
    assert events[-1] == EventName.RENDERED


def test_loading_handler_is_notified():
    seen = []
    tree = TreeView(TreeViewOptions(
        data=SAMPLE,
        on_loading=lambda event: seen.append((event.name, tree.initialized)),
        on_initialized=lambda event: seen.append((event.name, tree.initialized)),
    ))
    asyncio.run(tree.initialize())
    assert seen == [(EventName.LOADING, False), (EventName.INITIALIZED, True)]


def test_initialise_from_json_string():
    tree, _ = initialise(data=json.dumps(SAMPLE))
    assert [n.node_id for n in tree.get_nodes()] == ["0.0", "0.0.0", "0.1"]


def test_camel_case_keys_are_accepted():
    tree, _ = initialise(
        data=[{"text": "A", "lazyLoad": True, "state": {"checked": True}, "tagsClass": ["x"]}],
        showCheckbox=True,
    )
    node = tree.get_nodes()[0]
    assert node.lazy_load is True
    assert node.state.checked is True
    assert node.payload == {"tagsClass": ["x"]}
    assert tree.options.show_checkbox is True


def test_malformed_json_fails_load():
    tree, events = failing(data="[{not json")
    with pytest.raises(DataLoadError):
        asyncio.run(tree.initialize())

    assert [name for name, _ in events] == [EventName.LOADING, EventName.LOADING_FAILED]
    assert isinstance(events[1][1], DataLoadError)
    assert tree.roots == []
    assert tree.initialized is False


def test_no_data_source():
    tree, events = failing()
    with pytest.raises(DataSourceError):
        asyncio.run(tree.initialize())
    assert [name for name, _ in events] == [EventName.LOADING, EventName.LOADING_FAILED]


def test_both_data_sources():
    tree, _ = failing(data=SAMPLE, ajax_url="http://example.invalid/tree.json")
    with pytest.raises(DataSourceError):
        asyncio.run(tree.initialize())


def test_parse_nodes_rejects_bad_shapes():
    with pytest.raises(DataLoadError):
        parse_nodes(None)
    with pytest.raises(DataLoadError):
        parse_nodes({"text": "not a list"})
    with pytest.raises(DataLoadError):
        parse_nodes([{"nodes": []}])       # text is required


def test_initialise_twice_rebuilds():
    tree, _ = initialise(data=SAMPLE)
    first = tree.get_nodes()[0]
    asyncio.run(tree.initialize())
    assert tree.get_nodes()[0] is not first
    assert len(tree.get_nodes()) == 3


def test_from_data_uses_the_same_parser():
    with pytest.raises(DataLoadError):
        TreeView.from_data("not json")


# ── Test: Remote data ────────────────────────────────────────────────

def test_remote_load(monkeypatch):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return FakeResponse(SAMPLE)

    monkeypatch.setattr("treeview.loader.requests.request", fake_request)
    tree, _ = initialise(
        ajax_url="http://example.invalid/tree.json",
        ajax_config={"method": "post", "headers": {"X-Token": "t"}},
    )

    assert calls == [("POST", "http://example.invalid/tree.json", {"headers": {"X-Token": "t"}})]
    assert [n.text for n in tree.roots] == ["A", "B"]


def test_remote_connection_error(monkeypatch):
    def fake_request(method, url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("treeview.loader.requests.request", fake_request)
    with pytest.raises(DataLoadError):
        fetch_remote("http://example.invalid/tree.json", {"method": "GET"})


def test_remote_http_error(monkeypatch):
    monkeypatch.setattr(
        "treeview.loader.requests.request",
        lambda method, url, **kwargs: FakeResponse(None, status=503),
    )
    tree, events = failing(ajax_url="http://example.invalid/tree.json")
    with pytest.raises(DataLoadError):
        asyncio.run(tree.initialize())
    assert events[-1][0] == EventName.LOADING_FAILED


def test_fetch_remote_does_not_mutate_config(monkeypatch):
    monkeypatch.setattr(
        "treeview.loader.requests.request",
        lambda method, url, **kwargs: FakeResponse([]),
    )
    config = {"method": "GET", "timeout": 5}
    assert fetch_remote("http://example.invalid", config) == []
    assert config == {"method": "GET", "timeout": 5}
