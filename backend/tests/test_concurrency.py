"""Sweeps and simulations sharing one base scenario must not interfere."""
from concurrent.futures import ThreadPoolExecutor

from scenario_lab.analysis.sensitivity import run_sensitivity
from scenario_lab.analysis.simulation import run_monte_carlo
from scenario_lab.models.analysis import SensitivityConfig
from scenario_lab.models.simulation import CorrelationMatrix, SimulationConfig, VariableDistribution

from helpers import make_config


def _sweep_config() -> SensitivityConfig:
    return SensitivityConfig(
        variable_x="adr",
        range_x={"min": 0.8, "max": 1.2, "steps": 5},
        variable_y="occupancy",
        range_y={"min": 0.9, "max": 1.1, "steps": 3},
    )


def _simulation_config() -> SimulationConfig:
    return SimulationConfig(
        iterations=60,
        seed=5,
        n_jobs=2,
        distributions=[
            VariableDistribution(variable="occupancy", variation=0.05),
            VariableDistribution(variable="adr", variation=0.10),
        ],
        correlation_matrix=CorrelationMatrix.identity(["occupancy", "adr"]).with_correlation("occupancy", "adr", 0.5),
    )


def test_concurrent_sweep_and_simulation_match_serial_runs():
    scenario = make_config()
    snapshot = scenario.model_dump()

    serial_sweep = run_sensitivity(scenario, _sweep_config())
    serial_sim = run_monte_carlo(scenario, _simulation_config())

    with ThreadPoolExecutor(max_workers=4) as pool:
        sweeps = [pool.submit(run_sensitivity, scenario, _sweep_config()) for _ in range(2)]
        sims = [pool.submit(run_monte_carlo, scenario, _simulation_config()) for _ in range(2)]
        for future in sweeps:
            assert future.result(timeout=60) == serial_sweep
        for future in sims:
            assert future.result(timeout=60) == serial_sim

    assert scenario.model_dump() == snapshot
