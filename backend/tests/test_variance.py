"""Tests for the NPV variance bridge."""
import pytest

from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.variance import calculate_variance_bridge
from scenario_lab.models.scenario import NamedScenario
from scenario_lab.pipeline import run_full_model

from helpers import make_config, make_hotel, make_output


def _named(id_, config) -> NamedScenario:
    return NamedScenario(id=id_, name=id_.title(), configuration=config)


def test_operational_change_only():
    base = _named("base", make_config())
    target = _named("target", make_config(operations=[make_hotel(avg_daily_rate=220.0)]))
    steps = calculate_variance_bridge(base, target)

    assert [s.label for s in steps] == ["Operational Impact", "Capital Impact", "Development Impact"]
    assert steps[0].value > 0
    assert steps[1].value == pytest.approx(0.0)
    assert steps[2].value == pytest.approx(0.0)
    assert steps[-1].cumulative_value == pytest.approx(run_full_model(target.configuration).project_kpis.npv)


def test_development_change():
    base = _named("base", make_config())
    target = _named("target", make_config(initial_investment=22_000_000.0))
    steps = calculate_variance_bridge(base, target)
    assert steps[2].label == "Development Impact"
    assert steps[2].value == pytest.approx(-2_000_000.0)


def test_cumulative_starts_from_base_npv():
    base = _named("base", make_config())
    target = _named("target", make_config(operations=[make_hotel(occupancy_by_month=[0.6] * 12)], discount_rate=0.09))
    base_npv = run_full_model(base.configuration).project_kpis.npv
    steps = calculate_variance_bridge(base, target)
    assert steps[0].cumulative_value == pytest.approx(base_npv + steps[0].value)
    assert steps[-1].cumulative_value == pytest.approx(run_full_model(target.configuration).project_kpis.npv)


def test_residual_step_for_unexplained_difference():
    # a pipeline keyed on the scenario name, which no bridge step carries over
    def pipeline(config):
        return make_output(100.0 if config.scenario.name == "Target" else 0.0)

    base = _named("base", make_config())
    target_config = make_config()
    target_config.scenario.name = "Target"
    steps = calculate_variance_bridge(base, _named("target", target_config), ModelInvoker(pipeline))
    assert steps[-1].label == "Residual"
    assert steps[-1].value == pytest.approx(100.0)
    assert steps[-1].cumulative_value == pytest.approx(100.0)


def test_bridge_does_not_mutate_inputs():
    base = _named("base", make_config())
    target = _named("target", make_config(operations=[make_hotel(avg_daily_rate=180.0)]))
    snapshots = base.model_dump(), target.model_dump()
    calculate_variance_bridge(base, target)
    assert (base.model_dump(), target.model_dump()) == snapshots
