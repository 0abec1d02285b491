import pytest
from fastapi import WebSocketDisconnect, status
from fastapi.testclient import TestClient

from rfpflow.api.deps import get_user_for_token
from rfpflow.api.endpoints import realtime as realtime_endpoint
from rfpflow.main import app
from rfpflow.models.user import User, UserRole
from rfpflow.services.realtime import ConnectionManager, manager, parse_tables, REALTIME_TABLES


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


def test_parse_tables():
    assert parse_tables(None) == set(REALTIME_TABLES)
    assert parse_tables("projects, comments,bogus") == {"projects", "comments"}


async def test_events_are_scoped_to_organization_and_table():
    hub = ConnectionManager()
    projects_ws, comments_ws, other_org_ws = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
    await hub.connect(projects_ws, "u1", "org-a", {"projects"})
    await hub.connect(comments_ws, "u2", "org-a", {"comments"})
    await hub.connect(other_org_ws, "u3", "org-b")

    await hub.broadcast("projects", "UPDATE", "org-a", {"id": "p1"})

    assert projects_ws.accepted
    assert [e["record"] for e in projects_ws.sent] == [{"id": "p1"}]
    assert comments_ws.sent == []
    assert other_org_ws.sent == []


async def test_sequence_is_monotonic_and_event_ids_unique():
    hub = ConnectionManager()
    ws = FakeWebSocket()
    await hub.connect(ws, "u1", "org-a")

    for _ in range(3):
        await hub.broadcast("subtasks", "INSERT", "org-a", {"id": "s"})

    sequences = [e["sequence"] for e in ws.sent]
    assert sequences == sorted(sequences) and len(set(sequences)) == 3
    assert len({e["event_id"] for e in ws.sent}) == 3
    assert hub.last_sequence == sequences[-1]


async def test_user_scoped_events_reach_only_that_user():
    hub = ConnectionManager()
    mine, theirs = FakeWebSocket(), FakeWebSocket()
    await hub.connect(mine, "u1", "org-a")
    await hub.connect(theirs, "u2", "org-a")

    await hub.broadcast("notifications", "INSERT", "org-a", {"id": "n1"}, user_id="u1")

    assert len(mine.sent) == 1
    assert theirs.sent == []


async def test_dead_connections_are_dropped():
    hub = ConnectionManager()
    await hub.connect(FakeWebSocket(fail=True), "u1", "org-a")
    healthy = FakeWebSocket()
    await hub.connect(healthy, "u2", "org-a")

    await hub.broadcast("projects", "DELETE", "org-a", None, old_record={"id": "p1"})

    assert hub.connection_count("org-a") == 1
    assert healthy.sent[0]["old_record"] == {"id": "p1"}


async def test_project_mutations_are_published(client, org, member, manager_user, auth):
    owner_ws, manager_ws = FakeWebSocket(), FakeWebSocket()
    await manager.connect(owner_ws, member.id, org.id)
    await manager.connect(manager_ws, manager_user.id, org.id, {"projects"})

    project = (await client.post("/api/projects", json={"title": "Library RFP"}, headers=auth(member))).json()
    await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "won"},
        headers=auth(manager_user),
    )

    project_events = [(e["table"], e["type"]) for e in manager_ws.sent]
    assert project_events == [("projects", "INSERT"), ("projects", "UPDATE")]
    assert manager_ws.sent[1]["record"]["stage"] == "won"
    assert manager_ws.sent[1]["old_record"]["stage"] == "assigned"

    # The owner also receives the stage-change notification addressed to them
    owner_tables = [e["table"] for e in owner_ws.sent]
    assert "notifications" in owner_tables


@pytest.fixture
def socket_user(monkeypatch):
    user = User(id="user_ws", organization_id="org-ws", email="ws@example.com", role=UserRole.MEMBER, is_active=True)

    async def resolve(token, db):
        return user if token == "token-ws" else None

    monkeypatch.setattr(realtime_endpoint, "get_user_for_token", resolve)
    return user


async def test_socket_token_resolution(db, member, auth):
    token = auth(member)["Authorization"].split()[1]
    assert (await get_user_for_token(token, db)).id == member.id
    assert await get_user_for_token("not-a-jwt", db) is None
    assert await get_user_for_token(auth("user_ghost")["Authorization"].split()[1], db) is None

    member.is_active = False
    await db.commit()
    assert await get_user_for_token(token, db) is None


def test_socket_without_valid_token_is_closed(socket_user):
    with TestClient(app) as client:
        for url in ("/api/realtime?token=bogus", "/api/realtime"):
            with pytest.raises(WebSocketDisconnect) as exc:
                with client.websocket_connect(url):
                    pass
            assert exc.value.code == status.WS_1008_POLICY_VIOLATION
    assert manager.connection_count() == 0


def test_socket_greets_filters_tables_and_answers_ping(socket_user):
    with TestClient(app) as client:
        with client.websocket_connect("/api/realtime?token=token-ws&tables=comments") as ws:
            greeting = ws.receive_json()
            assert greeting["type"] == "connected"
            assert greeting["user_id"] == "user_ws"
            assert greeting["organization_id"] == "org-ws"
            assert greeting["tables"] == ["comments"]
            assert greeting["sequence"] == manager.last_sequence
            assert manager.connection_count("org-ws") == 1

            client.portal.call(manager.broadcast, "projects", "UPDATE", "org-ws", {"id": "p1"})
            client.portal.call(manager.broadcast, "comments", "INSERT", "org-ws", {"id": "c1"})
            event = ws.receive_json()
            assert event["table"] == "comments"
            assert event["record"] == {"id": "c1"}
            assert event["sequence"] == greeting["sequence"] + 2

            ws.send_text("not json")
            ws.send_json([1])
            ws.send_json({"type": "ping"})
            pong = ws.receive_json()
            assert pong["type"] == "pong"
            assert pong["sequence"] == event["sequence"]
