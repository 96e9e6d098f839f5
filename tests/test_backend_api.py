"""Tests for the FastAPI backend."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from erd_backend import main
from erd_backend.session import DiagramSession

from .conftest import SHOP_RELATIONSHIPS, SHOP_TABLES, make_source


@pytest.fixture(name="session")
def shop_session(monkeypatch: pytest.MonkeyPatch) -> DiagramSession:
    """Fresh session over the shop schema, installed as the backend's session."""
    session = DiagramSession(make_source(SHOP_TABLES, SHOP_RELATIONSHIPS))
    monkeypatch.setattr(main, "diagram_session", session)
    return session


@pytest.fixture(name="client")
def api_client(session: DiagramSession) -> Generator[TestClient]:
    with TestClient(main.app) as client:
        yield client


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["data_source"] is True


def test_empty_diagram_state(client: TestClient) -> None:
    data = client.get("/api/diagram").json()
    assert data["scope"] is None
    assert data["scene"]["nodes"] == []
    assert data["zoom_percent"] == 100


def test_load_table(client: TestClient) -> None:
    response = client.post("/api/diagram/load", json={"table": "public.orders"})
    assert response.status_code == 200
    data = response.json()

    assert data["success"]
    assert data["scope"] == {"kind": "table", "table_id": "public.orders"}
    assert [n["id"] for n in data["scene"]["nodes"]][0] == "public.orders"
    assert data["scene"]["summary"]["title"] == "orders - ER Diagram"
    assert data["progress"] == {"loaded": 1, "total": 1, "percent": 100}


def test_load_requires_exactly_one_scope(client: TestClient) -> None:
    assert client.post("/api/diagram/load", json={}).status_code == 422
    both = {"table": "public.orders", "schema_name": "public"}
    assert client.post("/api/diagram/load", json=both).status_code == 422


def test_load_failure_is_bad_gateway(client: TestClient, session: DiagramSession) -> None:
    session.source.fail_on.add(("list_tables", ""))
    response = client.post("/api/diagram/load", json={"schema_name": "public"})

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["retryable"] is True
    assert detail["message"].startswith("Failed to load diagram for schema public")

    session.source.fail_on.clear()
    retry = client.post("/api/diagram/reload")
    assert retry.status_code == 200
    assert len(retry.json()["scene"]["nodes"]) == 5


def test_reload_without_diagram(client: TestClient) -> None:
    assert client.post("/api/diagram/reload").status_code == 400


def test_summary(client: TestClient) -> None:
    client.post("/api/diagram/load", json={"schema_name": "public"})
    data = client.get("/api/diagram/summary").json()
    assert data["summary"]["table_count"] == 5
    assert data["summary"]["relationship_count"] == 4
    assert data["detail"] == "detailed"


def test_ddl(client: TestClient) -> None:
    assert client.get("/api/diagram/ddl").status_code == 400
    client.post("/api/diagram/load", json={"table": "public.orders"})
    data = client.get("/api/diagram/ddl").json()
    assert data["ddl"].startswith("CREATE TABLE public.orders")


def test_detail_toggle_and_set(client: TestClient) -> None:
    client.post("/api/diagram/load", json={"schema_name": "public"})
    assert client.post("/api/diagram/detail", json={}).json()["detail"] == "compact"
    assert client.post("/api/diagram/detail", json={"level": "detailed"}).json()["detail"] == "detailed"
    assert client.post("/api/diagram/detail", json={"level": "tiny"}).status_code == 422


def test_viewport_operations(client: TestClient) -> None:
    client.post("/api/diagram/load", json={"schema_name": "public"})

    fitted = client.post("/api/viewport/fit").json()["viewport"]
    zoomed = client.post("/api/viewport/zoom-in").json()["viewport"]
    assert zoomed["zoom"] == pytest.approx(min(fitted["zoom"] + 0.1, 3.0))

    panned = client.post("/api/viewport/pan", json={"dx": 15, "dy": -5}).json()["viewport"]
    assert panned["pan_x"] == pytest.approx(zoomed["pan_x"] + 15)
    assert panned["pan_y"] == pytest.approx(zoomed["pan_y"] - 5)

    capped = client.post("/api/viewport/zoom", json={"delta": 50}).json()["viewport"]
    assert capped["zoom"] == 3.0

    wheeled = client.post("/api/viewport/wheel", json={"delta_y": 100, "zoom_modifier": True}).json()
    assert wheeled["viewport"]["zoom"] == pytest.approx(2.9)



def test_drag_pans_viewport(client: TestClient) -> None:
    started = client.post("/api/viewport/drag/start", json={"x": 10, "y": 10}).json()
    assert started["panning"]

    moved = client.post("/api/viewport/drag/move", json={"x": 40, "y": 25}).json()
    assert (moved["viewport"]["pan_x"], moved["viewport"]["pan_y"]) == (30, 15)

    client.post("/api/viewport/drag/end")
    after = client.post("/api/viewport/drag/move", json={"x": 90, "y": 90}).json()
    assert after["viewport"]["pan_x"] == 30


def test_pan_mode_off_ignores_primary_button(client: TestClient) -> None:
    response = client.post("/api/viewport/pan-mode", json={"enabled": False})
    assert response.json() == {"success": True, "pan_mode": False}

    assert not client.post("/api/viewport/drag/start", json={"x": 0, "y": 0}).json()["panning"]
    middle = {"x": 0, "y": 0, "button": 1}
    assert client.post("/api/viewport/drag/start", json=middle).json()["panning"]
    assert client.get("/api/diagram").json()["pan_mode"] is False

def test_viewport_size_validation(client: TestClient) -> None:
    ok = client.post("/api/viewport/size", json={"width": 640, "height": 480})
    assert ok.json()["viewport_size"] == {"width": 640, "height": 480}
    assert client.post("/api/viewport/size", json={"width": 0, "height": 480}).status_code == 400


def test_hit_test(client: TestClient, session: DiagramSession) -> None:
    client.post("/api/diagram/load", json={"table": "public.orders"})
    anchor = session.nodes[0]
    x = session.viewport.pan_x + session.viewport.zoom * anchor.center()[0]
    y = session.viewport.pan_y + session.viewport.zoom * anchor.center()[1]

    hit = client.get("/api/viewport/hit", params={"x": x, "y": y})
    assert hit.json()["node"]["id"] == "public.orders"
    assert client.get("/api/viewport/hit", params={"x": -9999, "y": -9999}).status_code == 404


def test_search_navigation(client: TestClient) -> None:
    client.post("/api/diagram/load", json={"schema_name": "public"})

    data = client.post("/api/search", json={"query": "er"}).json()
    assert data["matches"] == ["public.orders", "public.customers", "public.suppliers"]
    assert data["search"]["current_index"] == 0

    assert client.post("/api/search/previous").json()["search"]["current_index"] == 2
    assert client.post("/api/search/next").json()["search"]["current_index"] == 0

    cleared = client.delete("/api/search").json()
    assert cleared["matches"] == []
    assert cleared["search"]["match_count"] == 0


def test_websocket_ping(client: TestClient) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}


def test_websocket_receives_scene_updates(client: TestClient) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}

        client.post("/api/diagram/load", json={"table": "public.orders"})
        received = []
        while not any(m["type"] == "scene_updated" for m in received):
            received.append(websocket.receive_json())

        progress = [m for m in received if m["type"] == "load_progress"]
        assert all(m["loaded"] <= m["total"] or m["total"] == 0 for m in progress)
