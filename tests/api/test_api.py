"""
Tests for the FastAPI application: startup wiring, the configuration channel
endpoints and the status endpoint.
"""

import json
import logging
import time

import pytest
from fastapi.testclient import TestClient

from telemetry_agent import dependencies
from telemetry_agent.main import app


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def agent_env(isolated_cwd, monkeypatch, restore_root_logger):
    exchange = isolated_cwd / "exchange"
    exchange.mkdir()
    monkeypatch.setenv("WATCH_DIRECTORY", str(exchange))
    monkeypatch.setenv("LOG_FILE_PATH", str(isolated_cwd / "logs" / "agent.log"))
    monkeypatch.setenv("DESIRED_PROPERTIES_PATH", str(isolated_cwd / "desired.json"))
    monkeypatch.setenv("TELEMETRY_ENDPOINT_URL", "")
    monkeypatch.setenv("FILE_ENCODING", "utf-8")
    return isolated_cwd


def wait_for_cycle(client: TestClient, timeout: float = 3.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = client.get("/api/status").json()
        if status["cycles_completed"] >= 1:
            return status
        time.sleep(0.02)
    raise AssertionError("poll loop did not complete a cycle")


def test_startup_applies_persisted_desired_document(agent_env):
    (agent_env / "desired.json").write_text(
        json.dumps({"interval": 60000, "searchPattern": "*.dat"}), encoding="utf-8"
    )

    with TestClient(app) as client:
        effective = client.get("/api/config/effective").json()
        reported = client.get("/api/config/reported").json()

    assert effective == {
        "interval_millis": 60000,
        "file_pattern": "*.dat",
        "processed_suffix": ".old",
    }
    assert reported["interval"] == 60000
    assert reported["searchPattern"] == "*.dat"
    assert reported["renameExtension"] == ".old"


def test_patch_desired_reports_only_changed_fields(agent_env):
    with TestClient(app) as client:
        response = client.patch("/api/config/desired", json={"interval": 5000})
        body = response.json()

        assert response.status_code == 200
        assert body["reported"] == {"interval": 5000}
        assert body["effective"]["interval"] == 5000
        assert body["effective"]["searchPattern"] == "*.csv"
        assert body["effective"]["renameExtension"] == ".old"
        assert client.get("/api/config/desired").json()["interval"] == 5000

    persisted = json.loads((agent_env / "desired.json").read_text(encoding="utf-8"))
    assert persisted["interval"] == 5000


def test_patch_null_resets_to_default(agent_env):
    with TestClient(app) as client:
        client.patch("/api/config/desired", json={"renameExtension": ".sent"})
        body = client.patch("/api/config/desired", json={"renameExtension": None}).json()

        assert body["reported"] == {"renameExtension": ".old"}
        assert client.get("/api/config/effective").json()["processed_suffix"] == ".old"


def test_patch_with_bad_value_applies_the_rest(agent_env):
    with TestClient(app) as client:
        body = client.patch(
            "/api/config/desired", json={"interval": -1, "searchPattern": "*.tsv"}
        ).json()

    assert body["reported"] == {"searchPattern": "*.tsv"}
    assert body["effective"]["interval"] == 10000


def test_poll_loop_processes_files_at_startup(agent_env):
    (agent_env / "exchange" / "a.csv").write_text("id,name\n1,Alice\n2,Bob\n", encoding="utf-8")

    with TestClient(app) as client:
        status = wait_for_cycle(client)
        health = client.get("/health").json()

    assert status["running"] is True
    assert status["total_rows_published"] == 2
    assert status["last_cycle"]["files"][0]["state"] == "Finalized"
    assert health["poll_loop_running"] is True
    assert (agent_env / "exchange" / "a.csv.old").exists()
    assert dependencies.get_telemetry_sink().messages_logged == 2


def test_unreachable_sink_prevents_startup(agent_env, monkeypatch):
    monkeypatch.setenv("TELEMETRY_ENDPOINT_URL", "http://127.0.0.1:9/ingest")
    monkeypatch.setenv("TELEMETRY_TIMEOUT_SECONDS", "1")

    with pytest.raises(Exception):
        with TestClient(app):
            pass

    assert "poll_loop" not in dependencies._singletons


def test_root_endpoint(agent_env):
    with TestClient(app) as client:
        assert client.get("/").json()["status"] == "ok"


def test_rejected_values_are_not_persisted(agent_env):
    with TestClient(app) as client:
        body = client.patch(
            "/api/config/desired", json={"interval": "²", "searchPattern": "*.tsv"}
        ).json()

        assert body["reported"] == {"searchPattern": "*.tsv"}
        assert list(body["rejected"]) == ["interval"]
        assert "interval" not in client.get("/api/config/desired").json()

    persisted = json.loads((agent_env / "desired.json").read_text(encoding="utf-8"))
    assert "interval" not in persisted
    assert persisted["searchPattern"] == "*.tsv"


def test_startup_survives_bad_persisted_values(agent_env):
    (agent_env / "desired.json").write_text(
        json.dumps({"interval": "²", "searchPattern": "*.dat", "$version": "abc"}),
        encoding="utf-8",
    )

    with TestClient(app) as client:
        effective = client.get("/api/config/effective").json()
        health = client.get("/health").json()

    assert effective["interval_millis"] == 10000
    assert effective["file_pattern"] == "*.dat"
    assert health["poll_loop_running"] is True
