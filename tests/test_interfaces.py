"""
Tests for the CLI and HTTP surfaces.
"""

import json

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from kinelab.api.app import app as api_app
from kinelab.cli.main import app as cli_app, parse_graph


runner = CliRunner()


@pytest.fixture
def client():
    return TestClient(api_app)


GRAPH_BODY = {
    "id": "A",
    "uses_velocity_graph": True,
    "velocity_graph": [{"t": 0, "v": 0}, {"t": 10, "v": 10}, {"t": 20, "v": 0}],
}


class TestCli:
    """Tests for the command-line interface."""

    def test_simulate_default(self):
        """Test the preset scenario reports a meeting."""
        result = runner.invoke(cli_app, ["simulate"])
        assert result.exit_code == 0
        assert "Objects meet at t = 7.20 s" in result.output

    def test_simulate_no_crossing(self):
        """Test a diverging scenario."""
        result = runner.invoke(cli_app, ["simulate", "--xb", "100", "--vb", "10"])
        assert result.exit_code == 0
        assert "never meet" in result.output

    def test_simulate_output_file(self, tmp_path):
        """Test samples are written as JSON."""
        out = tmp_path / "run.json"
        result = runner.invoke(cli_app, ["simulate", "--output", str(out)])

        assert result.exit_code == 0
        data = json.loads(out.read_text())
        assert data["crossing"]["t"] == 7.2
        assert len(data["timeline"]) == 201

    def test_simulate_invalid_step(self):
        """Test a non-positive step is refused."""
        result = runner.invoke(cli_app, ["simulate", "--step", "0"])
        assert result.exit_code == 1

    def test_simulate_oversize_grid(self):
        """Test a step too fine for the horizon exits with an error."""
        result = runner.invoke(cli_app, ["simulate", "--step", "0.00001"])
        assert result.exit_code == 1
        assert "sample limit" in result.output

    def test_state_with_graph(self):
        """Test single-body evaluation with a velocity graph."""
        result = runner.invoke(cli_app, ["state", "10", "--graph", "0:0,10:10,20:0"])
        assert result.exit_code == 0
        assert "x = 50.000 m" in result.output

    def test_state_bad_graph(self):
        """Test a malformed graph is a usage error."""
        result = runner.invoke(cli_app, ["state", "1", "--graph", "0:0,oops"])
        assert result.exit_code != 0

    def test_explain_without_key(self, monkeypatch):
        """Test explain exits cleanly when no API key is configured."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr("kinelab.cli.main.load_dotenv", lambda: None)
        result = runner.invoke(cli_app, ["explain"])
        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.output

    def test_version(self):
        """Test version output."""
        result = runner.invoke(cli_app, ["version"])
        assert result.exit_code == 0
        assert "Kinelab v" in result.output

    def test_parse_graph(self):
        """Test graph option parsing."""
        points = parse_graph("0:1, 5:2.5")
        assert [(p.t, p.v) for p in points] == [(0.0, 1.0), (5.0, 2.5)]
        assert parse_graph(None) == ()


class TestApi:
    """Tests for the HTTP API."""

    def test_root(self, client):
        """Test health check."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_simulate_defaults(self, client):
        """Test the preset scenario over HTTP."""
        response = client.post("/simulate", json={})
        assert response.status_code == 200

        data = response.json()
        assert len(data["timeline"]) == 201
        assert data["crossing"]["t"] == 7.2
        assert data["crossing"]["x"] == pytest.approx(36.0)

    def test_simulate_custom_bodies(self, client):
        """Test bodies and grid supplied by the caller."""
        response = client.post("/simulate", json={
            "body_a": {"id": "A", "v0": 5},
            "body_b": {"id": "B", "x0": 100, "v0": 10},
            "step": 0.5,
            "horizon": 10,
        })
        assert response.status_code == 200

        data = response.json()
        assert data["crossing"] is None
        assert len(data["timeline"]) == 21

    def test_simulate_rejects_bad_step(self, client):
        """Test a non-positive step fails validation."""
        response = client.post("/simulate", json={"step": 0})
        assert response.status_code == 422

    def test_simulate_rejects_oversize_grid(self, client):
        """Test a step too fine for the horizon is refused before sampling."""
        response = client.post("/simulate", json={"step": 1e-9, "horizon": 20})
        assert response.status_code == 422
        assert "sample limit" in response.json()["detail"]

    def test_health(self, client):
        """Test the dedicated health route."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_evaluate_graph_body(self, client):
        """Test evaluating a velocity-graph body."""
        response = client.post("/evaluate", json={"body": GRAPH_BODY, "t": 20})
        assert response.status_code == 200

        data = response.json()
        assert data["x"] == pytest.approx(100.0)
        assert data["v"] == pytest.approx(0.0)

    def test_explain_without_key(self, client, monkeypatch):
        """Test explain reports an unavailable provider."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        response = client.post("/explain", json={})
        assert response.status_code == 503
