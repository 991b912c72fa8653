import pytest

import server
from conftest import FakeKeypointSource, standing_pose
from tryon_engine import TryOnEngine


@pytest.fixture
def engine(garments, monkeypatch):
    source = FakeKeypointSource([standing_pose()])
    engine = TryOnEngine(garments, source_factory=lambda: source)
    engine.load()
    monkeypatch.setattr(server, "tryon_engine", engine)
    return engine


@pytest.fixture
def client():
    server.app.config["TESTING"] = True
    return server.app.test_client()


def test_status(engine, client, frame):
    engine.run_cycle(frame)
    data = client.get("/api/tryon/status").get_json()
    assert data["state"] == "running"
    assert data["view"] == "front"
    assert data["confidence"] > 0
    assert data["scale"] == 1.0


def test_manual_controls(engine, client):
    data = client.post("/api/tryon/size/up").get_json()
    assert data["scale"] == pytest.approx(1.1)
    data = client.post("/api/tryon/offset/down").get_json()
    assert data["vertical_offset"] == pytest.approx(0.05)
    client.get("/api/tryon/offset/up")
    client.get("/api/tryon/size/down")
    assert engine.status()["scale"] == pytest.approx(1.0)
    assert engine.status()["vertical_offset"] == pytest.approx(0.0)


def test_unknown_control(engine, client):
    resp = client.post("/api/tryon/size/sideways")
    assert resp.status_code == 400


def test_snapshot_download(engine, client, frame):
    assert client.get("/api/tryon/snapshot").status_code == 409

    engine.run_cycle(frame)
    resp = client.get("/api/tryon/snapshot")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert "vto-" in resp.headers["Content-Disposition"]
    assert resp.data.startswith(b"\x89PNG")


def test_retry_reports_state(garments, client, monkeypatch):
    def broken():
        raise RuntimeError("no backend")

    engine = TryOnEngine(garments, source_factory=broken)
    engine.load()
    monkeypatch.setattr(server, "tryon_engine", engine)

    status = client.get("/api/tryon/status").get_json()
    assert status["state"] == "error"
    assert status["error"]

    data = client.post("/api/tryon/retry").get_json()
    assert data["status"] == "error"
    assert data["state"] == "error"


def test_engine_not_loaded(client, monkeypatch):
    monkeypatch.setattr(server, "tryon_engine", None)
    assert client.get("/api/tryon/status").status_code == 503
    assert client.post("/api/tryon/size/up").status_code == 503


def test_parse_args():
    assert server.parse_args(["server.py"]) == (server.CAM_INDEX, server.ASSET_DIR)
    assert server.parse_args(["server.py", "2", "shirts"]) == (2, "shirts")
