import subprocess

import pytest

from retrade import main

def test_health_endpoints(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "pass"
    assert resp.json()["service"] == "retrade"

    assert client.get("/health/live").json() == {"status": "alive"}

def test_readiness_checks_database(client):
    resp = client.get("/health/ready")
    body = resp.json()
    assert "database:connectivity" in body["checks"]
    assert body["checks"]["database:connectivity"]["status"] == "pass"
    assert resp.status_code in (200, 503)

def test_metrics_and_info(client):
    body = client.get("/metrics").json()
    assert body["service"] == "retrade"
    assert body["system"]["num_threads"] >= 1
    assert client.get("/info").json()["endpoints"]["ready"] == "/health/ready"

def test_request_id_is_echoed(client):
    resp = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert client.get("/health/live").headers["X-Request-ID"]

def test_migrations_need_an_alembic_config(monkeypatch, tmp_path):
    monkeypatch.setattr(main.settings, "ALEMBIC_CONFIG", str(tmp_path / "missing.ini"))
    monkeypatch.setattr(main.wait_for_db, "wait", lambda: pytest.fail("database polled without a config"))
    with pytest.raises(RuntimeError, match="Alembic config not found"):
        main.run_migrations()

def test_failed_upgrade_aborts(monkeypatch, tmp_path):
    config = tmp_path / "alembic.ini"
    config.write_text("[alembic]\nscript_location = alembic\n")
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs["cwd"]))
        return subprocess.CompletedProcess(args, 1, stdout="", stderr="relation already exists")

    monkeypatch.setattr(main.settings, "ALEMBIC_CONFIG", str(config))
    monkeypatch.setattr(main.wait_for_db, "wait", lambda: True)
    monkeypatch.setattr(main.subprocess, "run", fake_run)
    with pytest.raises(RuntimeError, match="Database migrations failed"):
        main.run_migrations()
    assert calls == [(["alembic", "-c", str(config.resolve()), "upgrade", "head"], str(config.resolve().parent))]

def test_default_alembic_config_is_the_source_tree_one(monkeypatch):
    monkeypatch.setattr(main.settings, "ALEMBIC_CONFIG", None)
    assert main.alembic_config_path() == main.PROJECT_ROOT / "alembic.ini"
    assert main.alembic_config_path().is_file()
