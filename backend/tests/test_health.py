from fastapi.testclient import TestClient

from scenario_lab.main import app

client = TestClient(app)


def test_health_returns_200():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["pipeline"].endswith("run_full_model")
    assert data["limits"]["max_sensitivity_steps"] == 10


def test_solve_no_body_returns_422():
    response = client.post("/api/analysis/solve")
    assert response.status_code == 422
