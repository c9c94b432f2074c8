"""Scenario triad (stress / base / upside) and side-by-side comparison."""
from __future__ import annotations

import logging
from typing import Optional

from scenario_lab.analysis.cloning import clone_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.variables import scale_demand_drivers
from scenario_lab.errors import ConfigurationError
from scenario_lab.models.analysis import (
    ScenarioComparisonInput,
    ScenarioComparisonResult,
    ScenarioTriadResult,
)
from scenario_lab.models.scenario import ScenarioConfiguration

logger = logging.getLogger(__name__)


def run_scenario_triad(
    base_input: ScenarioConfiguration,
    stress_pct: float,
    invoker: Optional[ModelInvoker] = None,
) -> ScenarioTriadResult:
    """Evaluate base, stress (demand x (1 - stress_pct)) and upside (x (1 + stress_pct)).

    Raises:
        ConfigurationError: ``stress_pct`` outside (0, 1).
    """
    if not 0 < stress_pct < 1:
        raise ConfigurationError(
            f"stress_pct must be between 0 and 1 (exclusive), got {stress_pct}",
            stress_pct=stress_pct,
        )
    invoker = invoker or ModelInvoker()

    base = clone_scenario(base_input)
    stress = scale_demand_drivers(clone_scenario(base_input), 1.0 - stress_pct)
    upside = scale_demand_drivers(clone_scenario(base_input), 1.0 + stress_pct)

    result = ScenarioTriadResult(
        base=invoker.evaluate(base, case="base").project_kpis,
        stress=invoker.evaluate(stress, case="stress", stress_pct=stress_pct).project_kpis,
        upside=invoker.evaluate(upside, case="upside", stress_pct=stress_pct).project_kpis,
    )
    logger.info(
        "Scenario triad (+/-%.0f%%): NPV stress=%.0f base=%.0f upside=%.0f",
        stress_pct * 100, result.stress.npv, result.base.npv, result.upside.npv,
    )
    return result


def compare_scenarios(
    scenarios: list[ScenarioComparisonInput],
    invoker: Optional[ModelInvoker] = None,
) -> list[ScenarioComparisonResult]:
    """Evaluate each named configuration independently, preserving input order."""
    invoker = invoker or ModelInvoker()
    results = []
    for item in scenarios:
        output = invoker.evaluate(clone_scenario(item.config), scenario_id=item.id)
        results.append(ScenarioComparisonResult(id=item.id, name=item.name, kpis=output.project_kpis))
    return results
