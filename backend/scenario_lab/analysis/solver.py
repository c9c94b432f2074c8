"""Goal-seek solver — bisection over one input variable to hit a target KPI.

The search direction is detected from two probe evaluations at the bracket
ends. When a probe is unavailable (KPI not computable, or the pipeline rejects
the bound) or both probes agree, the documented ``KPI_DIRECTION`` table is used.
"""
from __future__ import annotations

import logging
from typing import Optional

from scenario_lab.analysis.cloning import clone_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.variables import KPI_DIRECTION, get_default_bounds, set_input_value
from scenario_lab.errors import ConfigurationError, ConvergenceError, KpiExtractionError, ModelEvaluationError
from scenario_lab.models.analysis import SolverConfig
from scenario_lab.models.scenario import ScenarioConfiguration

logger = logging.getLogger(__name__)

BRACKET_COLLAPSE = 1e-10


def resolve_bounds(config: SolverConfig) -> tuple[float, float]:
    default_lo, default_hi = get_default_bounds(config.input_variable)
    lo = config.min if config.min is not None else default_lo
    hi = config.max if config.max is not None else default_hi
    if lo >= hi:
        raise ConfigurationError(
            f"Invalid search range for {config.input_variable.value}: min ({lo}) must be less than max ({hi})",
            variable=config.input_variable.value,
            min=lo,
            max=hi,
        )
    return lo, hi


def _relative_error(actual: float, target: float) -> float:
    if target != 0:
        return abs(actual - target) / abs(target)
    return abs(actual)


def solve_for_target(
    scenario: ScenarioConfiguration,
    config: SolverConfig,
    invoker: Optional[ModelInvoker] = None,
) -> float:
    """Find the input value at which ``config.target_kpi`` equals ``config.target_value``.

    Raises:
        ConfigurationError: empty bracket, or the variable cannot be addressed
            in this scenario. Raised before any model evaluation.
        ModelEvaluationError: the pipeline failed on a trial value.
        KpiExtractionError: the target KPI is unavailable for a trial.
        ConvergenceError: ``max_iterations`` exhausted.
    """
    invoker = invoker or ModelInvoker()
    variable = config.input_variable
    lo, hi = resolve_bounds(config)

    # Addressability check on a throwaway clone, before evaluating anything
    set_input_value(clone_scenario(scenario), variable, lo, config.operation_id)

    def kpi_at(value: float, **context) -> Optional[float]:
        trial = clone_scenario(scenario)
        set_input_value(trial, variable, value, config.operation_id)
        output = invoker.evaluate(
            trial, variable=variable.value, input_value=value, **context,
        )
        return invoker.extract_kpi(output, config.target_kpi)

    direction = _detect_direction(config, lo, hi, kpi_at)
    logger.info(
        "Goal seek %s -> %s=%s over [%s, %s] (direction %+d)",
        variable.value, config.target_kpi.value, config.target_value, lo, hi, direction,
    )

    for iteration in range(config.max_iterations):
        mid = (lo + hi) / 2.0
        actual = kpi_at(mid, iteration=iteration)
        if actual is None:
            raise KpiExtractionError(
                f"Could not extract KPI '{config.target_kpi.value}'",
                kpi=config.target_kpi.value,
                variable=variable.value,
                input_value=mid,
                iteration=iteration,
            )

        error = _relative_error(actual, config.target_value)
        logger.debug("Iteration %d: %s=%.6f %s=%.6f error=%.3g", iteration, variable.value, mid,
                     config.target_kpi.value, actual, error)
        if error < config.tolerance:
            logger.info("Goal seek converged in %d iterations: %s=%.6f", iteration + 1, variable.value, mid)
            return mid

        if (actual < config.target_value) == (direction > 0):
            lo = mid
        else:
            hi = mid

        if hi - lo < BRACKET_COLLAPSE:
            logger.info("Goal seek bracket collapsed at iteration %d", iteration)
            return (lo + hi) / 2.0

    raise ConvergenceError(
        f"Goal seek for {config.target_kpi.value}={config.target_value} did not converge "
        f"after {config.max_iterations} iterations; final range [{lo}, {hi}]",
        lower_bound=lo,
        upper_bound=hi,
        iterations=config.max_iterations,
    )


def _detect_direction(config: SolverConfig, lo: float, hi: float, kpi_at) -> int:
    """+1 if the KPI rises with the input, -1 if it falls."""
    try:
        f_lo = kpi_at(lo, probe="lower")
        f_hi = kpi_at(hi, probe="upper")
    except ModelEvaluationError as exc:
        f_lo = f_hi = None
        logger.warning("Goal seek probe failed (%s)", exc.message)

    if f_lo is not None and f_hi is not None and f_lo != f_hi:
        return 1 if f_hi > f_lo else -1

    direction = KPI_DIRECTION[config.input_variable]
    logger.warning(
        "Could not infer direction of %s vs %s from bounds; assuming %+d",
        config.target_kpi.value, config.input_variable.value, direction,
    )
    return direction
