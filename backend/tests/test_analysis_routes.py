"""Tests for the /api/analysis and /api/tasks endpoints."""
from fastapi.testclient import TestClient

from scenario_lab.main import app
from scenario_lab.models.scenario import NamedScenario
from scenario_lab.services.task_runner import task_runner

from helpers import make_config, make_hotel

client = TestClient(app)

_SCENARIO = make_config().model_dump(mode="json")


def test_solve_returns_break_even_adr():
    response = client.post("/api/analysis/solve", json={
        "scenario": _SCENARIO,
        "config": {"target_kpi": "npv", "target_value": 0.0, "input_variable": "adr"},
    })
    assert response.status_code == 200
    data = response.json()
    assert data["input_variable"] == "adr"
    assert 0 < data["value"] < 200.0


def test_solve_configuration_error_is_422():
    response = client.post("/api/analysis/solve", json={
        "scenario": make_config(debt=False).model_dump(mode="json"),
        "config": {"target_kpi": "npv", "target_value": 0.0, "input_variable": "interest_rate"},
    })
    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "ConfigurationError"


def test_solve_invalid_bounds_is_422():
    response = client.post("/api/analysis/solve", json={
        "scenario": _SCENARIO,
        "config": {"target_kpi": "npv", "target_value": 0.0, "input_variable": "adr", "min": 10, "max": 5},
    })
    assert response.status_code == 422


def test_solve_non_convergence_is_409():
    response = client.post("/api/analysis/solve", json={
        "scenario": _SCENARIO,
        "config": {"target_kpi": "npv", "target_value": 0.0, "input_variable": "adr", "max_iterations": 1},
    })
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "ConvergenceError"
    assert detail["context"]["iterations"] == 1


def test_evaluation_failure_is_500():
    broken = make_config(discount_rate=0.01).model_dump(mode="json")
    response = client.post("/api/analysis/solve", json={
        "scenario": broken,
        "config": {"target_kpi": "npv", "target_value": 0.0, "input_variable": "adr"},
    })
    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "ModelEvaluationError"


def test_sensitivity_two_way():
    response = client.post("/api/analysis/sensitivity", json={
        "scenario": _SCENARIO,
        "config": {
            "variable_x": "occupancy", "range_x": {"min": 0.8, "max": 1.2, "steps": 5},
            "variable_y": "adr", "range_y": {"min": 0.9, "max": 1.2, "steps": 4},
        },
    })
    assert response.status_code == 200
    data = response.json()
    assert len(data["runs"]) == 20
    assert len(data["matrix"]) == 4
    assert len(data["matrix"][0]) == 5
    assert data["base_case_output"]["scenario_id"] == "base"


def test_sensitivity_too_many_steps_is_422():
    response = client.post("/api/analysis/sensitivity", json={
        "scenario": _SCENARIO,
        "config": {"variable_x": "adr", "range_x": {"min": 0.5, "max": 1.5, "steps": 11}},
    })
    assert response.status_code == 422


def test_simulation_returns_samples_and_statistics():
    response = client.post("/api/analysis/simulation", json={
        "scenario": _SCENARIO,
        "config": {"iterations": 30, "seed": 11},
    })
    assert response.status_code == 200
    data = response.json()
    assert len(data["result"]["iterations"]) == 30
    assert data["statistics"]["npv"]["count"] == 30
    assert set(data["statistics"]) == {"npv", "unlevered_irr", "levered_irr", "equity_multiple", "moic"}
    assert 0.0 <= data["risk_metrics"]["probability_of_loss"] <= 1.0
    assert sum(b["count"] for b in data["npv_histogram"]) == 30


def test_simulation_rejects_non_positive_bins():
    response = client.post("/api/analysis/simulation?bins=-3", json={
        "scenario": _SCENARIO,
        "config": {"iterations": 10, "seed": 1},
    })
    assert response.status_code == 422


def test_triad():
    response = client.post("/api/analysis/triad", json={"scenario": _SCENARIO, "stress_pct": 0.2})
    assert response.status_code == 200
    data = response.json()
    assert data["stress"]["npv"] < data["base"]["npv"] < data["upside"]["npv"]


def test_triad_bad_stress_is_422():
    response = client.post("/api/analysis/triad", json={"scenario": _SCENARIO, "stress_pct": 1.5})
    assert response.status_code == 422


def test_compare():
    response = client.post("/api/analysis/compare", json={"scenarios": [
        {"id": "low", "name": "Low", "config": make_config(operations=[make_hotel(avg_daily_rate=150.0)]).model_dump(mode="json")},
        {"id": "base", "name": "Base", "config": _SCENARIO},
    ]})
    assert response.status_code == 200
    data = response.json()
    assert [r["id"] for r in data] == ["low", "base"]
    assert data[0]["kpis"]["npv"] < data[1]["kpis"]["npv"]


def test_variance():
    base = NamedScenario(id="base", name="Base", configuration=make_config())
    target = NamedScenario(id="t", name="Target", configuration=make_config(operations=[make_hotel(avg_daily_rate=230.0)]))
    response = client.post("/api/analysis/variance", json={
        "base": base.model_dump(mode="json"),
        "target": target.model_dump(mode="json"),
    })
    assert response.status_code == 200
    steps = response.json()
    assert steps[0]["label"] == "Operational Impact"
    assert steps[0]["value"] > 0


def test_task_lifecycle():
    response = client.post("/api/tasks", json={"kind": "triad", "payload": {"scenario": _SCENARIO, "stress_pct": 0.1}})
    assert response.status_code == 202
    task_id = response.json()["id"]

    task_runner.wait(task_id, timeout=30)
    response = client.get(f"/api/tasks/{task_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["task"]["status"] == "succeeded"
    assert data["messages"][-1]["type"] == "success"


def test_task_invalid_payload_is_422():
    response = client.post("/api/tasks", json={"kind": "solve", "payload": {"scenario": _SCENARIO}})
    assert response.status_code == 422


def test_task_unknown_kind_is_422():
    response = client.post("/api/tasks", json={"kind": "optimize", "payload": {}})
    assert response.status_code == 422


def test_unknown_task_is_404():
    assert client.get("/api/tasks/nope").status_code == 404
    assert client.delete("/api/tasks/nope").status_code == 404
