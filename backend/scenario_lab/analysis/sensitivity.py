"""Sensitivity sweep engine — 1D or 2D grid of independent model evaluations."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from scenario_lab.analysis.cloning import clone_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.variables import apply_adjustment
from scenario_lab.config import settings
from scenario_lab.errors import AnalysisCancelled, ConfigurationError
from scenario_lab.models.analysis import (
    Range,
    SensitivityCell,
    SensitivityConfig,
    SensitivityResult,
    SensitivityRun,
)
from scenario_lab.models.scenario import ScenarioConfiguration

logger = logging.getLogger(__name__)


def generate_steps(grid: Range) -> list[float]:
    """``grid.steps`` evenly spaced values over [min, max], endpoints included."""
    if grid.steps <= 1:
        return [grid.min]
    increment = (grid.max - grid.min) / (grid.steps - 1)
    return [grid.min + i * increment for i in range(grid.steps)]


def _check_steps(name: str, grid: Range) -> None:
    if grid.steps > settings.MAX_SENSITIVITY_STEPS:
        raise ConfigurationError(
            f"{name} has {grid.steps} steps; at most {settings.MAX_SENSITIVITY_STEPS} allowed",
            axis=name,
            steps=grid.steps,
        )


def run_sensitivity(
    scenario: ScenarioConfiguration,
    config: SensitivityConfig,
    invoker: Optional[ModelInvoker] = None,
    on_progress: Optional[Callable[[int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    include_outputs: bool = False,
) -> SensitivityResult:
    """Evaluate the model at every grid point.

    ``runs`` are ordered row-major (Y outer, X inner). For a 2D sweep
    ``matrix[r][c]`` holds the cell at Y value ``r`` and X value ``c``.

    Raises:
        ConfigurationError: an axis exceeds ``MAX_SENSITIVITY_STEPS``.
        AnalysisCancelled: ``cancel_event`` was set; no partial result.
    """
    invoker = invoker or ModelInvoker()
    _check_steps("range_x", config.range_x)
    x_values = generate_steps(config.range_x)
    y_values: list[Optional[float]] = [None]
    if config.is_2d:
        _check_steps("range_y", config.range_y)
        y_values = generate_steps(config.range_y)

    total = len(x_values) * len(y_values)
    logger.info(
        "Sensitivity sweep: %s%s, %d evaluations",
        config.variable_x.value,
        f" x {config.variable_y.value}" if config.is_2d else "",
        total,
    )
    base_case_output = invoker.evaluate(clone_scenario(scenario), case="base")

    runs: list[SensitivityRun] = []
    batch_size = max(1, settings.PROGRESS_BATCH_SIZE)
    for y in y_values:
        for x in x_values:
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled("Sensitivity sweep cancelled", completed=len(runs), total=total)

            trial = clone_scenario(scenario)
            apply_adjustment(trial, config.variable_x, x)
            if y is not None:
                apply_adjustment(trial, config.variable_y, y)
            output = invoker.evaluate(
                trial, variable_x=config.variable_x.value, x=x,
                variable_y=config.variable_y.value if config.is_2d else None, y=y,
            )
            runs.append(SensitivityRun(
                variable_x_value=x,
                variable_y_value=y,
                kpis=invoker.extract_kpis(output),
                output=output if include_outputs else None,
            ))
            if on_progress is not None and (len(runs) % batch_size == 0 or len(runs) == total):
                on_progress(int(100 * len(runs) / total))

    matrix = None
    if config.is_2d:
        width = len(x_values)
        matrix = [
            [
                SensitivityCell(variable_x_value=run.variable_x_value, variable_y_value=run.variable_y_value, kpis=run.kpis)
                for run in runs[row * width:(row + 1) * width]
            ]
            for row in range(len(y_values))
        ]

    logger.info("Sensitivity sweep complete: %d runs", len(runs))
    return SensitivityResult(config=config, base_case_output=base_case_output, runs=runs, matrix=matrix)
