"""Variance bridge — attribute the NPV gap between two scenarios to what changed.

Changes are layered onto the base one group at a time (operations, then
capital structure, then development budget and timing); each step's value is
the NPV delta it adds. Whatever the three groups do not explain is reported
as a residual.
"""
from __future__ import annotations

import logging
from typing import Optional

from scenario_lab.analysis.cloning import clone_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.models.analysis import BridgeStep
from scenario_lab.models.scenario import NamedScenario, ScenarioConfiguration

logger = logging.getLogger(__name__)

RESIDUAL_THRESHOLD = 0.01


def _with_operations(config: ScenarioConfiguration, target: ScenarioConfiguration) -> ScenarioConfiguration:
    out = clone_scenario(config)
    out.scenario.operations = [op.model_copy(deep=True) for op in target.scenario.operations]
    return out


def _with_capital(config: ScenarioConfiguration, target: ScenarioConfiguration) -> ScenarioConfiguration:
    out = clone_scenario(config)
    out.capital_config = target.capital_config.model_copy(deep=True)
    return out


def _with_development(config: ScenarioConfiguration, target: ScenarioConfiguration) -> ScenarioConfiguration:
    out = clone_scenario(config)
    out.project_config = target.project_config.model_copy(deep=True)
    out.scenario.start_year = target.scenario.start_year
    out.scenario.horizon_years = target.scenario.horizon_years
    return out


def calculate_variance_bridge(
    base: NamedScenario,
    target: NamedScenario,
    invoker: Optional[ModelInvoker] = None,
) -> list[BridgeStep]:
    invoker = invoker or ModelInvoker()

    def npv(config: ScenarioConfiguration, step: str) -> float:
        return invoker.evaluate(config, step=step).project_kpis.npv

    base_npv = npv(clone_scenario(base.configuration), "base")
    target_config = target.configuration

    operational = _with_operations(base.configuration, target_config)
    capital = _with_capital(operational, target_config)
    development = _with_development(capital, target_config)

    steps: list[BridgeStep] = []
    cumulative = base_npv
    previous = base_npv
    for label, config in (
        ("Operational Impact", operational),
        ("Capital Impact", capital),
        ("Development Impact", development),
    ):
        value = npv(config, label)
        cumulative += value - previous
        steps.append(BridgeStep(label=label, value=value - previous, cumulative_value=cumulative))
        previous = value

    residual = npv(clone_scenario(target_config), "target") - previous
    if abs(residual) > RESIDUAL_THRESHOLD:
        cumulative += residual
        steps.append(BridgeStep(label="Residual", value=residual, cumulative_value=cumulative))

    logger.info("Variance bridge %s -> %s: %d steps", base.id, target.id, len(steps))
    return steps
