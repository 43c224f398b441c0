"""
Tests for the HTTP surface.
Run with: pytest tests/test_api.py -v
"""
import pytest
from fastapi.testclient import TestClient
from treeview.main import app


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def client():
    # Entering the client runs the lifespan, which reloads the sample data
    with TestClient(app) as client:
        yield client


def visible_texts(client):
    return [row["text"] for row in client.get("/nodes").json()["nodes"]]


# ── Test: Reading ────────────────────────────────────────────────────

def test_initial_page_shows_roots(client):
    body = client.get("/nodes").json()
    assert [row["node_id"] for row in body["nodes"]] == ["0.0", "0.1", "0.2"]
    assert body["total_nodes"] == 3
    assert body["total_pages"] == 1
    assert body["selected_ids"] == []


def test_get_node_with_ancestry(client):
    body = client.get("/nodes/0.0.1.0").json()
    assert body["text"] == "Selection"
    assert body["ancestry"] == ["0.0", "0.0.1"]
    assert body["payload"] == {"tooltip": "single and multi select"}
    assert body["row"] is None              # collapsed under its parent


def test_get_missing_node(client):
    assert client.get("/nodes/9.9").status_code == 404


def test_debug_tree(client):
    tree = client.get("/debug/tree").json()["tree"]
    assert tree.splitlines()[0] == " Handbook  [0.0]"


# ── Test: Node actions ───────────────────────────────────────────────

def test_expand_one_level(client):
    response = client.post("/nodes/0.0/expand", params={"levels": 1})
    assert response.status_code == 200
    assert response.json()["state"]["expanded"] is True
    assert visible_texts(client) == ["Handbook", "Getting Started", "Guides", "Reference", "Changelog"]


def test_collapse(client):
    client.post("/nodes/0.0/expand")
    client.post("/nodes/0.0/collapse")
    assert visible_texts(client) == ["Handbook", "Reference", "Changelog"]


def test_action_on_missing_node(client):
    assert client.post("/nodes/9.9/expand").status_code == 404


def test_unknown_action(client):
    assert client.post("/nodes/0.0/explode").status_code == 400


def test_select_moves_selection(client):
    client.post("/nodes/0.0/select")
    client.post("/nodes/0.2/select")
    assert client.get("/nodes").json()["selected_ids"] == ["0.2"]


def test_hierarchical_toggle_check(client):
    response = client.post("/nodes/0.0.1.1/toggle-checked")
    assert response.json()["state"]["checked"] is True
    assert client.get("/nodes/0.0.1.1.0").json()["state"]["checked"] is True
    assert client.get("/nodes/0.0.1").json()["state"]["checked"] is None
    assert client.get("/nodes/0.0").json()["state"]["checked"] is None


def test_check_changes_and_baseline(client):
    client.post("/nodes/0.2/check")
    rows = {row["node_id"]: row for row in client.get("/nodes").json()["nodes"]}
    assert rows["0.2"]["check_changed"] is True

    assert client.post("/checked/baseline").json() == {"checked": ["0.2"]}
    rows = {row["node_id"]: row for row in client.get("/nodes").json()["nodes"]}
    assert rows["0.2"]["check_changed"] is False


# ── Test: Structure ──────────────────────────────────────────────────

def test_add_nodes_under_parent(client):
    response = client.post("/nodes", json={"nodes": [{"text": "New"}], "parent_id": "0.2"})
    assert response.json() == {"added": ["0.2.0"], "total_nodes": 16}
    assert "New" in visible_texts(client)


def test_add_nodes_to_missing_parent(client):
    response = client.post("/nodes", json={"nodes": [{"text": "New"}], "parent_id": "7.7"})
    assert response.status_code == 404


def test_update_node(client):
    response = client.put("/nodes/0.2", json={"text": "History"})
    assert response.json()["node_id"] == "0.2"
    assert visible_texts(client)[-1] == "History"


def test_remove_node(client):
    response = client.delete("/nodes/0.1")
    assert response.json() == {"removed": "0.1", "total_nodes": 11}
    assert visible_texts(client) == ["Handbook", "Changelog"]


# ── Test: Search ─────────────────────────────────────────────────────

def test_search_reveals_matches(client):
    response = client.post("/search", json={"pattern": "Check"})
    assert response.json() == {"results": ["0.0.1.1", "0.0.1.1.0"]}

    body = client.get("/nodes").json()
    assert body["result_ids"] == ["0.0.1.1", "0.0.1.1.0"]
    assert "Hierarchical Check" in [row["text"] for row in body["nodes"]]


def test_search_with_options(client):
    response = client.post(
        "/search",
        json={"pattern": "check", "options": {"ignoreCase": False}},
    )
    assert response.json() == {"results": []}


def test_invalid_search_pattern(client):
    assert client.post("/search", json={"pattern": "("}).status_code == 400


def test_clear_search(client):
    client.post("/search", json={"pattern": "Options"})
    assert client.delete("/search").json() == {"results": []}
    assert client.get("/nodes").json()["result_ids"] == []


# ── Test: Seeding ────────────────────────────────────────────────────

def test_seed_replaces_data(client):
    response = client.post("/seed", json=[{"text": "Only", "nodes": [{"text": "Child"}]}])
    assert response.json() == {"loaded": 1, "total_nodes": 2}
    assert visible_texts(client) == ["Only"]


def test_seed_rejects_invalid_body(client):
    assert client.post("/seed", json=[{"nodes": []}]).status_code == 422


# ── Test: Node interaction flags ─────────────────────────────────────

FLAGGED = [
    {"text": "Locked", "state": {"disabled": True}},
    {"text": "Folder", "selectable": False, "nodes": [{"text": "Inside"}]},
    {"text": "Label", "checkable": False},
]


def test_disabled_node_refuses_actions(client):
    client.post("/seed", json=FLAGGED)
    assert client.post("/nodes/0.0/toggle-selected").status_code == 409
    assert client.post("/nodes/0.0/check").status_code == 409
    assert client.post("/nodes/0.0/expand").status_code == 409
    state = client.get("/nodes/0.0").json()["state"]
    assert state["selected"] is False
    assert state["checked"] is False


def test_disabled_node_can_be_enabled(client):
    client.post("/seed", json=FLAGGED)
    response = client.post("/nodes/0.0/enable")
    assert response.status_code == 200
    assert response.json()["state"]["disabled"] is False
    assert client.post("/nodes/0.0/select").json()["state"]["selected"] is True


def test_unselectable_node_toggles_expansion(client):
    client.post("/seed", json=FLAGGED)
    state = client.post("/nodes/0.1/toggle-selected").json()["state"]
    assert state["selected"] is False
    assert state["expanded"] is True
    assert client.get("/nodes").json()["selected_ids"] == []
    assert "Inside" in visible_texts(client)


def test_uncheckable_node_refuses_check(client):
    client.post("/seed", json=FLAGGED)
    assert client.post("/nodes/0.2/toggle-checked").status_code == 409
    assert client.post("/nodes/0.2/check").status_code == 409
    assert client.get("/nodes/0.2").json()["state"]["checked"] is False
    # still selectable
    assert client.post("/nodes/0.2/select").json()["state"]["selected"] is True
