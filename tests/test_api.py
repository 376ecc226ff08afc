"""
Tests for the HTTP backend.
"""
import pytest
from fastapi.testclient import TestClient

import main
from store import StoreError


@pytest.fixture
def client(store):
    main.app.dependency_overrides[main.get_store] = lambda: store
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client):
    r = client.post("/login", data={"username": main.ADMIN_USER, "password": main.ADMIN_PASS})
    assert r.status_code == 200
    return client


def test_api_requires_login(client, seeded):
    assert client.get(f"/api/boards/{seeded['board']}").status_code == 401
    assert client.post("/api/card", data={"title": "x", "list_id": seeded["B"]}).status_code == 401


def test_bad_login(client):
    r = client.post("/login", data={"username": "admin", "password": "wrong"})
    assert r.status_code == 401


def test_logout_drops_session(logged_in, seeded):
    logged_in.get("/logout")
    assert logged_in.get(f"/api/boards/{seeded['board']}").status_code == 401


def test_root_creates_default_board(logged_in):
    r = logged_in.get("/", follow_redirects=False)
    assert r.status_code == 302
    board = logged_in.get(r.headers["location"]).json()
    assert [l["name"] for l in board["lists"]] == ["To do", "In progress", "Done"]


def test_board_view(logged_in, seeded):
    board = logged_in.get(f"/api/boards/{seeded['board']}").json()
    assert [l["name"] for l in board["lists"]] == ["A", "B"]
    assert [c["title"] for c in board["lists"][0]["cards"]] == ["a", "b", "c"]
    assert board["lists"][1]["cards"] == []


def test_create_card_uses_gap(logged_in, seeded):
    r = logged_in.post("/api/card", data={"title": "d", "list_id": seeded["A"], "created_by": "u1"})
    assert r.status_code == 200
    assert r.json()["position"] == 400
    r = logged_in.post("/api/card", data={"title": "e", "list_id": seeded["B"]})
    assert r.json()["position"] == 100


def test_create_card_unknown_list(logged_in, seeded):
    r = logged_in.post("/api/card", data={"title": "d", "list_id": "ghost"})
    assert r.status_code == 404


def test_move_card_updates_one_row(logged_in, store, seeded):
    r = logged_in.post(
        "/api/card/move", data={"card_id": "card-a", "to_list": seeded["B"], "position": 100}
    )
    assert r.status_code == 200
    assert r.json()["card"]["board_list_id"] == seeded["B"]
    # siblings are not compacted
    assert [c["position"] for c in store.cards_for_list(seeded["A"])] == [200, 300]


def test_move_unknown_card(logged_in, seeded):
    r = logged_in.post(
        "/api/card/move", data={"card_id": "ghost", "to_list": seeded["B"], "position": 100}
    )
    assert r.status_code == 404


def test_delete_card(logged_in, store, seeded):
    assert logged_in.delete("/api/card/card-b").status_code == 200
    assert logged_in.delete("/api/card/card-b").status_code == 404
    assert [c["title"] for c in store.cards_for_list(seeded["A"])] == ["a", "c"]


class UnavailableStore:
    """Every store call fails as if the database were down."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise StoreError(f"{name} unavailable")
        return fail


@pytest.fixture
def unavailable(logged_in):
    main.app.dependency_overrides[main.get_store] = lambda: UnavailableStore()
    return logged_in


def test_board_view_with_store_down_is_empty(unavailable):
    r = unavailable.get("/api/boards/x")
    assert r.status_code == 200
    assert r.json() == {"id": "x", "lists": []}


def test_writes_with_store_down_do_not_500(unavailable):
    assert unavailable.delete("/api/card/x").status_code == 404
    r = unavailable.post("/api/card/move", data={"card_id": "x", "to_list": "y", "position": 1})
    assert r.status_code == 404
    assert unavailable.post("/api/card", data={"title": "t", "list_id": "y"}).status_code == 404
    assert unavailable.get("/", follow_redirects=False).status_code == 503


def test_create_card_rejects_blank_title(logged_in, store, seeded):
    r = logged_in.post("/api/card", data={"title": "   ", "list_id": seeded["B"]})
    assert r.status_code == 422
    assert store.cards_for_list(seeded["B"]) == []


@pytest.mark.parametrize("bad", ["nan", "inf", "-inf"])
def test_move_rejects_non_finite_position(logged_in, store, seeded, bad):
    r = logged_in.post(
        "/api/card/move", data={"card_id": "card-a", "to_list": seeded["B"], "position": bad}
    )
    assert r.status_code == 422
    assert store.get_card("card-a")["board_list_id"] == seeded["A"]
    assert store.get_card("card-a")["position"] == 100
