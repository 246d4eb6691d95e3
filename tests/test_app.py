import logging
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

import database
from config import SERVICE_PORTS, Settings
from database import connect, serialize_document
from logging_config import setup_logging
from main import create_app
from mutations import ResourceCollection


def test_root_and_health(make_client):
    client = make_client("videos")
    assert client.get("/").json()["service"] == "videos"

    client.post("/videos", json={"videoId": "v1"})
    health = client.get("/health").json()
    assert health["database_connected"] is True
    assert "videos" in health["collections"]


def test_store_failure_is_500_with_error_text(make_client, monkeypatch):
    client = make_client("users")

    def broken_list_all(self):
        raise OperationFailure("disk on fire")

    monkeypatch.setattr(type(client.app.state.context.resource), "list_all", broken_list_all)
    resp = client.get("/users")
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Error GET /users: disk on fire"


def test_malformed_json_body_is_500(make_client):
    client = make_client("users")
    resp = client.post("/users", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 500
    assert resp.json()["detail"].startswith("Error POST /users")


def test_non_object_body_is_400(make_client):
    client = make_client("users")
    assert client.post("/users", json=["a", "b"]).status_code == 400


def test_port_resolution():
    settings = Settings(_env_file=None)
    assert settings.port_for("users") == 3001
    assert settings.port_for("subscriptions") == 3005
    assert Settings(_env_file=None, PORT=9000).port_for("videos") == 9000
    assert set(SERVICE_PORTS) == {"users", "videos", "comments", "playlists", "subscriptions"}
    with pytest.raises(KeyError):
        settings.port_for("likes")


def test_settings_are_immutable():
    settings = Settings(_env_file=None)
    with pytest.raises(Exception):
        settings.DATABASE_NAME = "other"


def test_connect_failure_exits(monkeypatch):
    class UnreachableAdmin:
        def command(self, name):
            raise ServerSelectionTimeoutError("no servers")

    class UnreachableClient:
        closed = False

        def __init__(self, *args, **kwargs):
            self.admin = UnreachableAdmin()

        def close(self):
            UnreachableClient.closed = True

    monkeypatch.setattr(database, "MongoClient", UnreachableClient)
    with pytest.raises(SystemExit) as exc:
        connect(Settings(_env_file=None))
    assert exc.value.code == 1
    assert UnreachableClient.closed


def test_serialize_document_converts_nested_values():
    oid = ObjectId()
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    doc = {"_id": oid, "at": when, "refs": [oid, {"deep": when}], "n": 3}

    assert serialize_document(doc) == {
        "_id": str(oid),
        "at": "2024-01-02T03:04:05+00:00",
        "refs": [str(oid), {"deep": "2024-01-02T03:04:05+00:00"}],
        "n": 3,
    }


def test_setup_logging_only_configures_once(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    setup_logging("debug")
    assert len(root.handlers) == 1
    setup_logging("info")
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG


def test_main_serves_requested_service_on_its_port(monkeypatch, store):
    import uvicorn

    import main

    served = {}

    def fake_run(app, host, port, log_level):
        served.update(app=app, host=host, port=port)

    monkeypatch.setattr(main, "connect", lambda settings: store)
    monkeypatch.setattr(uvicorn, "run", fake_run)
    monkeypatch.delenv("PORT", raising=False)

    main.main(["playlists"])
    assert served["port"] == 3004
    assert served["app"].state.context.service == "playlists"
    resp = TestClient(served["app"]).patch("/playlists/x/add-video", json={"videoId": "v"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Playlist not found"


def test_main_rejects_unknown_service():
    import main

    with pytest.raises(SystemExit):
        main.main(["likes"])


def test_unexpected_error_is_500_with_error_text(settings, store, monkeypatch):
    def broken_list_all(self):
        raise ZeroDivisionError("division by zero")

    monkeypatch.setattr(ResourceCollection, "list_all", broken_list_all)
    client = TestClient(create_app("comments", settings, store), raise_server_exceptions=False)

    resp = client.get("/comments")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Error GET /comments: division by zero"}
