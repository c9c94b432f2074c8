"""Monte Carlo engine — correlated multiplier draws applied to cloned scenarios.

All standard-normal draws are generated up front in iteration order, so the
sample sequence depends only on the seed and never on how trials are scheduled.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import numpy as np
from joblib import Parallel, delayed

from scenario_lab.analysis.cloning import clone_scenario
from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.analysis.statistics import cholesky_factor, correlate, standard_normal_draws, to_multiplier
from scenario_lab.analysis.variables import scale_input
from scenario_lab.config import settings
from scenario_lab.errors import AnalysisCancelled
from scenario_lab.models.analysis import KpiSnapshot
from scenario_lab.models.scenario import ScenarioConfiguration
from scenario_lab.models.simulation import SimulationConfig, SimulationResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def sample_multipliers(config: SimulationConfig, rng: np.random.Generator) -> np.ndarray:
    """Multiplier matrix of shape (iterations, len(config.distributions)).

    Column order follows ``config.distributions``. Variables missing from the
    correlation matrix stay independent.
    """
    variables = config.variables
    z = standard_normal_draws(rng, config.iterations, len(variables))

    if config.correlation_matrix is not None:
        present, sub = config.correlation_matrix.submatrix(variables)
        if len(present) > 1:
            cols = [variables.index(v) for v in present]
            z[:, cols] = correlate(z[:, cols], cholesky_factor(sub))

    return np.column_stack([
        to_multiplier(dist, z[:, j]) for j, dist in enumerate(config.distributions)
    ])


def run_monte_carlo(
    scenario: ScenarioConfiguration,
    config: SimulationConfig,
    invoker: Optional[ModelInvoker] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    rng: Optional[np.random.Generator] = None,
) -> SimulationResult:
    """Run ``config.iterations`` trials and return the ordered KPI samples.

    A failing trial aborts the run with ``ModelEvaluationError`` carrying the
    iteration index and sampled multipliers. Setting ``cancel_event`` stops
    further evaluations and raises ``AnalysisCancelled``.
    """
    invoker = invoker or ModelInvoker()
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    variables = config.variables
    n = config.iterations

    logger.info(
        "Monte Carlo: %d iterations over %s (seed=%s, n_jobs=%d)",
        n, [v.value for v in variables], config.seed, config.n_jobs,
    )
    base_case_kpis = invoker.extract_kpis(invoker.evaluate(clone_scenario(scenario), iteration="base"))
    samples = sample_multipliers(config, rng)

    def run_trial(i: int) -> KpiSnapshot:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("Simulation cancelled", iteration=i)
        sampled = {v.value: float(samples[i, j]) for j, v in enumerate(variables)}
        trial = clone_scenario(scenario)
        for variable, multiplier in zip(variables, samples[i]):
            scale_input(trial, variable, float(multiplier))
        output = invoker.evaluate(trial, iteration=i, sampled_multipliers=sampled)
        return invoker.extract_kpis(output)

    batch_size = max(1, settings.PROGRESS_BATCH_SIZE)
    results: list[KpiSnapshot] = []
    with Parallel(n_jobs=config.n_jobs, backend="threading") as parallel:
        for start in range(0, n, batch_size):
            batch = range(start, min(start + batch_size, n))
            if config.n_jobs > 1:
                # joblib returns results in submission order
                results.extend(parallel(delayed(run_trial)(i) for i in batch))
            else:
                results.extend(run_trial(i) for i in batch)
            if on_progress is not None:
                on_progress(int(100 * len(results) / n))
            logger.debug("Monte Carlo progress: %d/%d", len(results), n)

    logger.info("Monte Carlo complete: %d samples", len(results))
    return SimulationResult(config=config, base_case_kpis=base_case_kpis, iterations=results)
