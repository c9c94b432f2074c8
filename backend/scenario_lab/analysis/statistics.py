"""Sampling and aggregation primitives for Monte Carlo runs.

Percentiles and histogram buckets are read off the sorted sample
(``sorted[min(floor(p * N), N - 1)]``) so a fixed seed gives fixed figures.
"""
from __future__ import annotations

import math

import numpy as np
from scipy.stats import beta, norm

from scenario_lab.models.simulation import (
    DistributionType,
    HistogramBucket,
    KpiStatistics,
    VariableDistribution,
)


def standard_normal_draws(rng: np.random.Generator, iterations: int, n_variables: int) -> np.ndarray:
    """Independent N(0, 1) draws, shape (iterations, n_variables), generated in iteration order."""
    return rng.standard_normal((iterations, n_variables))


def cholesky_factor(matrix: np.ndarray) -> np.ndarray:
    """Lower-triangular L with L @ L.T == matrix."""
    return np.linalg.cholesky(np.asarray(matrix, dtype=float))


def correlate(z: np.ndarray, factor: np.ndarray) -> np.ndarray:
    """Apply a Cholesky factor to rows of independent normals."""
    return z @ factor.T


def pert_params(low: float, mode: float, high: float) -> tuple[float, float]:
    span = high - low
    return 1.0 + 4.0 * (mode - low) / span, 1.0 + 4.0 * (high - mode) / span


def pert_quantile(z: np.ndarray, low: float, mode: float, high: float) -> np.ndarray:
    """Map standard normals through Phi and the Beta-PERT inverse CDF onto [low, high]."""
    a, b = pert_params(low, mode, high)
    return low + (high - low) * beta.ppf(norm.cdf(z), a, b)


def to_multiplier(dist: VariableDistribution, z: np.ndarray) -> np.ndarray:
    """Marginal transform of (possibly correlated) standard normals into value multipliers."""
    if dist.distribution == DistributionType.normal:
        return 1.0 + dist.variation * z
    if dist.distribution == DistributionType.lognormal:
        return np.exp(dist.variation * z)
    return pert_quantile(z, dist.low, dist.mode, dist.high)


def percentile(sorted_values: list[float], p: float) -> float:
    idx = min(int(math.floor(p * len(sorted_values))), len(sorted_values) - 1)
    return sorted_values[idx]


def summarize(values: list[float], kpi: str = "npv") -> KpiStatistics:
    """Mean, sample std, P10/P50/P90, VaR95 and probability of loss. None-free input."""
    n = len(values)
    if n == 0:
        return KpiStatistics(kpi=kpi, count=0)
    ordered = sorted(values)
    arr = np.asarray(values, dtype=float)
    return KpiStatistics(
        kpi=kpi,
        count=n,
        mean=float(arr.mean()),
        std=float(arr.std(ddof=1)) if n > 1 else 0.0,
        p10=percentile(ordered, 0.10),
        p50=percentile(ordered, 0.50),
        p90=percentile(ordered, 0.90),
        var95=percentile(ordered, 0.05),
        probability_of_loss=sum(1 for v in values if v < 0) / n,
    )


def histogram(values: list[float], bins: int = 20) -> list[HistogramBucket]:
    """Equal-width buckets over [min, max]; the maximum lands in the last bucket."""
    if not values:
        return []
    if bins < 1:
        raise ValueError("bins must be >= 1")
    ordered = sorted(values)
    lo, hi = ordered[0], ordered[-1]
    if hi == lo:
        return [HistogramBucket(lower=lo, upper=hi, count=len(ordered))]

    width = (hi - lo) / bins
    counts = [0] * bins
    for v in ordered:
        counts[min(int((v - lo) / width), bins - 1)] += 1
    return [
        HistogramBucket(lower=lo + i * width, upper=lo + (i + 1) * width, count=c)
        for i, c in enumerate(counts)
    ]
