"""Analysis engines — goal seek, sensitivity, Monte Carlo, triad and variance bridge."""
from scenario_lab.analysis.cloning import clone_scenario, clone_named_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.solver import solve_for_target
from scenario_lab.analysis.sensitivity import run_sensitivity
from scenario_lab.analysis.simulation import run_monte_carlo
from scenario_lab.analysis.comparison import run_scenario_triad, compare_scenarios
from scenario_lab.analysis.variance import calculate_variance_bridge
from scenario_lab.analysis.risk import calculate_risk_metrics

__all__ = [
    "clone_scenario",
    "clone_named_scenario",
    "ModelInvoker",
    "solve_for_target",
    "run_sensitivity",
    "run_monte_carlo",
    "run_scenario_triad",
    "compare_scenarios",
    "calculate_variance_bridge",
    "calculate_risk_metrics",
]
