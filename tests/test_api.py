"""HTTP surface tests using FastAPI's TestClient."""

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from rummyq.app import create_app
from rummyq.core.config import EngineConfig, SyncMode
from rummyq.sync import SyncSession

from conftest import engine_options


class StubSage:
    async def ask(self, question):
        return f"echo: {question}"


def started_session(mode, remote, snapshots):
    session = SyncSession(EngineConfig(mode=mode), remote, snapshots, **engine_options())
    asyncio.run(session.start())
    return session


@pytest.fixture
def session(snapshots):
    return started_session(SyncMode.LOCAL_ONLY, None, snapshots)


@pytest.fixture
def client(session):
    return TestClient(create_app(session=session, sage=StubSage()))


def join(client, name):
    response = client.post("/api/queue", json={"name": name})
    assert response.status_code == 201
    return response.json()


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["mode"] == "local"


def test_state_starts_empty(client):
    body = client.get("/api/state").json()
    assert body["queue"] == []
    assert body["games"] == []
    assert body["table_size"] == 4
    assert body["needs_setup"] is False


def test_join_and_positions(client):
    join(client, "Ada")
    body = join(client, "Bo")
    assert [p["name"] for p in body["queue"]] == ["Ada", "Bo"]
    assert [p["position"] for p in body["queue"]] == [1, 2]
    assert body["total_queued"] == 2


@pytest.mark.parametrize("name", ["", "   ", "x" * 41])
def test_join_rejects_bad_names(client, name):
    assert client.post("/api/queue", json={"name": name}).status_code == 422


def test_leave_rename_move(client):
    join(client, "Ada")
    body = join(client, "Bo")
    ada, bo = (p["id"] for p in body["queue"])

    body = client.post(f"/api/queue/{bo}/move", json={"direction": "up"}).json()
    assert [p["name"] for p in body["queue"]] == ["Bo", "Ada"]

    body = client.patch(f"/api/queue/{ada}", json={"name": "Ace"}).json()
    assert [p["name"] for p in body["queue"]] == ["Bo", "Ace"]

    body = client.delete(f"/api/queue/{bo}").json()
    assert [p["name"] for p in body["queue"]] == ["Ace"]


def test_unknown_player_404(client):
    assert client.delete("/api/queue/ghost").status_code == 404
    assert client.patch("/api/queue/ghost", json={"name": "X"}).status_code == 404
    assert client.post("/api/queue/ghost/move", json={"direction": "up"}).status_code == 404


def test_move_past_end_is_noop(client):
    body = join(client, "Ada")
    ada = body["queue"][0]["id"]
    response = client.post(f"/api/queue/{ada}/move", json={"direction": "down"})
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["queue"]] == ["Ada"]


def test_table_lifecycle(client):
    for name in ["A", "B", "C", "D", "E", "F"]:
        join(client, name)

    body = client.post("/api/tables").json()
    (game,) = body["games"]
    assert [p["name"] for p in game["players"]] == ["A", "B", "C", "D"]
    assert game["open_seats"] == 0
    assert [p["name"] for p in body["queue"]] == ["E", "F"]

    leaving = [game["players"][0]["id"], game["players"][2]["id"]]
    body = client.post(f"/api/tables/{game['id']}/swap", json={"leaving_ids": leaving}).json()
    assert [p["name"] for p in body["games"][0]["players"]] == ["B", "D", "E", "F"]
    assert body["queue"] == []

    body = client.delete(f"/api/tables/{game['id']}").json()
    assert body["games"] == []
    assert body["queue"] == []


def test_create_table_on_empty_queue(client):
    assert client.post("/api/tables").status_code == 409


def test_unknown_table_404(client):
    assert client.delete("/api/tables/ghost").status_code == 404
    assert client.post("/api/tables/ghost/swap", json={"leaving_ids": []}).status_code == 404


def test_sweep(client):
    body = client.post("/api/tables/sweep").json()
    assert body["swept"] == 0


def test_mode_switch_without_remote_conflicts(client):
    response = client.post("/api/session/mode", json={"mode": "connected"})
    assert response.status_code == 409


def test_mode_switch_with_remote(remote, snapshots):
    session = started_session(SyncMode.LOCAL_ONLY, remote, snapshots)
    client = TestClient(create_app(session=session, sage=StubSage()))
    body = client.post("/api/session/mode", json={"mode": "connected"}).json()
    assert body["mode"] == "connected"
    assert session.is_subscribed
    assert client.post("/api/session/resync").status_code == 200


def test_resync_requires_connected_mode(client):
    assert client.post("/api/session/resync").status_code == 409


def test_needs_setup_reported(remote, snapshots):
    remote.missing_tables = True
    session = started_session(SyncMode.CONNECTED, remote, snapshots)
    client = TestClient(create_app(session=session, sage=StubSage()))
    assert client.get("/api/state").json()["needs_setup"] is True
    assert "CREATE TABLE" in client.get("/api/session/setup").text


def test_sage(client):
    response = client.post("/api/sage", json={"question": "What is a meld?"})
    assert response.json() == {"answer": "echo: What is a meld?"}


def test_missing_session_is_503():
    app = create_app(session=None, sage=SimpleNamespace())
    # No lifespan: the session is never created
    assert TestClient(app).get("/api/state").status_code == 503
