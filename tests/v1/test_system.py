"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_system_config(client: TestClient) -> None:
    """Test system configuration endpoint."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert {"app", "units", "anti_cheat", "gravity", "rollup", "retention", "workers"} <= set(data)
    assert data["units"]["max_mm_per_batch"] == 2646
    assert data["anti_cheat"]["max_velocity_mm_per_second"] == 2000.0
    assert data["gravity"]["decay_mm_per_tick"] == 26
    assert data["gravity"]["idle_threshold_ms"] == 5000


def test_system_config_lists_workers(client: TestClient) -> None:
    """Worker status is reported without exposing connection strings."""
    r = client.get("/api/v1/system/config")
    workers = r.json()["workers"]
    assert set(workers) == {"decay", "rollup", "raw-flush", "compaction", "broadcast"}
    assert all(worker["running"] is False for worker in workers.values())
    assert "redis" not in r.text.lower()
    assert "sqlite" not in r.text.lower()
