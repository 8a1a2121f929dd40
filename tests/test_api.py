"""Tests for API endpoints."""

import pytest
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock
from fastapi.testclient import TestClient

from conftest import T0
from hostwatch.monitor.errors import ConfigurationError, CycleIncomplete
from hostwatch.monitor.models import Host


@pytest.fixture
def client():
    """Create test client with the scheduler stubbed out."""
    with patch("hostwatch.web.app.start_scheduler"), \
         patch("hostwatch.web.app.shutdown_scheduler"), \
         patch("hostwatch.web.routes.health.get_scheduler") as mock_scheduler, \
         patch("hostwatch.web.routes.health.get_last_result") as mock_health_last, \
         patch("hostwatch.web.routes.api.get_last_result") as mock_last:

        mock_scheduler.return_value = None
        mock_health_last.return_value = None
        mock_last.return_value = None

        from hostwatch.web.app import app
        with TestClient(app) as test_client:
            yield test_client


class TestApiEndpoints:
    """Tests for REST API endpoints."""

    def test_status_before_first_cycle(self, client):
        """GET /api/status returns 404 until a cycle completes."""
        response = client.get("/api/status")

        assert response.status_code == 404
        assert "no cycle" in response.json()["detail"].lower()

    def test_status_after_cycle(self, client, sample_result):
        """GET /api/status lists verdicts in cycle order."""
        with patch("hostwatch.web.routes.api.get_last_result", return_value=sample_result):
            response = client.get("/api/status")

        assert response.status_code == 200
        data = response.json()
        assert data["host_count"] == 3
        assert data["down_count"] == 1
        assert data["max_attempts"] == 3
        assert [h["label"] for h in data["hosts"]] == ["Router", "NAS", "Printer"]
        nas = data["hosts"][1]
        assert nas["status"] == "down"
        assert nas["attempts_made"] == 3
        assert nas["reason"] == "timeout"

    def test_list_hosts(self, client):
        """GET /api/hosts returns configured hosts."""
        fake = SimpleNamespace(host_list=[Host(address="10.0.0.1", label="Router")])
        with patch("hostwatch.web.routes.api.settings", fake):
            response = client.get("/api/hosts")

        assert response.status_code == 200
        assert response.json() == [{"address": "10.0.0.1", "label": "Router"}]

    def test_list_hosts_invalid_config(self, client):
        """GET /api/hosts reports configuration errors."""
        class BrokenSettings:
            @property
            def host_list(self):
                raise ConfigurationError("bad host")

        with patch("hostwatch.web.routes.api.settings", BrokenSettings()):
            response = client.get("/api/hosts")

        assert response.status_code == 500
        assert "bad host" in response.json()["detail"]

    def test_list_jobs(self, client):
        """GET /api/jobs returns scheduled jobs."""
        jobs = [{
            "id": "host_check",
            "name": "Host Reachability Check",
            "next_run": T0.isoformat(),
            "trigger": "interval[0:15:00]",
        }]
        with patch("hostwatch.web.routes.api.get_jobs_info", return_value=jobs):
            response = client.get("/api/jobs")

        assert response.status_code == 200
        assert response.json()[0]["id"] == "host_check"

    def test_trigger_check_queued(self, client):
        """POST /api/check queues a cycle when the scheduler runs."""
        with patch(
            "hostwatch.web.routes.api.trigger_manual_check",
            new_callable=AsyncMock,
            return_value="Manual check triggered",
        ):
            response = client.post("/api/check")

        assert response.status_code == 200
        assert response.json()["status"] == "queued"

    def test_trigger_check_completed(self, client):
        """POST /api/check runs inline without a scheduler."""
        with patch(
            "hostwatch.web.routes.api.trigger_manual_check",
            new_callable=AsyncMock,
            return_value="Manual check completed",
        ):
            response = client.post("/api/check")

        assert response.json()["status"] == "completed"

    def test_trigger_check_invalid_config(self, client):
        """POST /api/check reports configuration errors of an inline run."""
        with patch("hostwatch.scheduler.job_scheduler.scheduler", None), \
             patch(
                 "hostwatch.scheduler.job_scheduler.run_monitor_cycle",
                 new_callable=AsyncMock,
                 side_effect=ConfigurationError("bad host"),
             ):
            response = client.post("/api/check")

        assert response.status_code == 500
        assert "bad host" in response.json()["detail"]

    def test_trigger_check_incomplete(self, client, sample_result):
        """POST /api/check reports an inline cycle that did not finish."""
        error = CycleIncomplete(sample_result, [Host(address="10.0.0.9")], "cycle cancelled")
        with patch("hostwatch.scheduler.job_scheduler.scheduler", None), \
             patch(
                 "hostwatch.scheduler.job_scheduler.run_monitor_cycle",
                 new_callable=AsyncMock,
                 side_effect=error,
             ):
            response = client.post("/api/check")

        assert response.status_code == 503
        assert "cycle cancelled" in response.json()["detail"]


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_degraded_without_scheduler(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["scheduler_running"] is False
        assert data["last_cycle_at"] is None

    def test_health_healthy(self, client, sample_result):
        with patch("hostwatch.web.routes.health.get_scheduler", return_value=SimpleNamespace(running=True)), \
             patch("hostwatch.web.routes.health.get_last_result", return_value=sample_result):
            response = client.get("/health")

        data = response.json()
        assert data["status"] == "healthy"
        assert data["last_cycle_at"] == sample_result.finished_at.isoformat()

    def test_ready(self, client):
        assert client.get("/ready").json()["ready"] is False

    def test_live(self, client):
        assert client.get("/live").json() == {"alive": True}

    def test_version(self, client):
        from hostwatch.version import __version__

        assert client.get("/version").json()["version"] == __version__

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "hostwatch_cycles_total" in response.text
