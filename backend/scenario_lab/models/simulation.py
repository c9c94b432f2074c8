"""Monte Carlo configuration, correlation matrix and result models."""
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator

from scenario_lab.config import settings
from scenario_lab.models.analysis import InputVariable, KpiSnapshot

_SYMMETRY_ATOL = 1e-9


class DistributionType(str, Enum):
    """Marginal distribution for a simulated input multiplier."""
    normal = "normal"        # 1 + variation * z
    lognormal = "lognormal"  # exp(variation * z)
    pert = "pert"            # Beta-PERT over [low, high] with mode


class VariableDistribution(BaseModel):
    """How one input variable is perturbed, expressed as a multiplier of its base value."""
    variable: InputVariable
    distribution: DistributionType = DistributionType.normal
    variation: float = Field(default=0.05, ge=0)
    low: Optional[float] = None
    mode: Optional[float] = None
    high: Optional[float] = None

    @model_validator(mode="after")
    def _pert_points(self) -> "VariableDistribution":
        if self.distribution == DistributionType.pert:
            if self.low is None or self.mode is None or self.high is None:
                raise ValueError("pert distribution requires low, mode and high")
            if self.low >= self.high:
                raise ValueError(f"pert low ({self.low}) must be less than high ({self.high})")
            if not self.low <= self.mode <= self.high:
                raise ValueError(f"pert mode ({self.mode}) must lie within [{self.low}, {self.high}]")
        return self


class CorrelationMatrix(BaseModel):
    """Pairwise correlations between simulated variables.

    Always square, symmetric, unit-diagonal, bounded in [-1, 1] and positive
    definite; anything else is rejected at construction.
    """
    variables: list[InputVariable]
    matrix: list[list[float]]

    @field_validator("variables")
    @classmethod
    def _unique_variables(cls, v: list[InputVariable]) -> list[InputVariable]:
        if not v:
            raise ValueError("correlation matrix needs at least one variable")
        if len(set(v)) != len(v):
            raise ValueError("correlation matrix variables must be unique")
        return v

    @model_validator(mode="after")
    def _check_invariants(self) -> "CorrelationMatrix":
        n = len(self.variables)
        if len(self.matrix) != n or any(len(row) != n for row in self.matrix):
            raise ValueError(f"correlation matrix must be {n}x{n} to match its variables")
        for i in range(n):
            if abs(self.matrix[i][i] - 1.0) > _SYMMETRY_ATOL:
                raise ValueError(f"diagonal entry [{i}][{i}] must be 1, got {self.matrix[i][i]}")
            for j in range(n):
                value = self.matrix[i][j]
                if not -1.0 <= value <= 1.0:
                    raise ValueError(f"entry [{i}][{j}] = {value} outside [-1, 1]")
                if abs(value - self.matrix[j][i]) > _SYMMETRY_ATOL:
                    raise ValueError(f"matrix not symmetric at [{i}][{j}]")
        try:
            np.linalg.cholesky(np.asarray(self.matrix, dtype=float))
        except np.linalg.LinAlgError:
            raise ValueError("correlation matrix is not positive definite")
        return self

    @classmethod
    def identity(cls, variables: list[InputVariable]) -> "CorrelationMatrix":
        n = len(variables)
        return cls(
            variables=list(variables),
            matrix=[[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)],
        )

    def correlation(self, a: InputVariable, b: InputVariable) -> float:
        return self.matrix[self.variables.index(a)][self.variables.index(b)]

    def with_correlation(self, a: InputVariable, b: InputVariable, rho: float) -> "CorrelationMatrix":
        """Return a copy with the (a, b) and (b, a) entries set to ``rho``."""
        i, j = self.variables.index(a), self.variables.index(b)
        matrix = [list(row) for row in self.matrix]
        matrix[i][j] = rho
        matrix[j][i] = rho
        return CorrelationMatrix(variables=list(self.variables), matrix=matrix)

    def submatrix(self, order: list[InputVariable]) -> tuple[list[InputVariable], np.ndarray]:
        """Rows/columns for the variables of ``order`` present here, in ``order``'s order."""
        present = [v for v in order if v in self.variables]
        idx = [self.variables.index(v) for v in present]
        full = np.asarray(self.matrix, dtype=float)
        return present, full[np.ix_(idx, idx)]


def _default_distributions() -> list[VariableDistribution]:
    return [
        VariableDistribution(variable=InputVariable.occupancy, variation=0.05),
        VariableDistribution(variable=InputVariable.adr, variation=0.10),
        VariableDistribution(variable=InputVariable.interest_rate, variation=0.01),
    ]


class SimulationConfig(BaseModel):
    """Configuration for Monte Carlo simulation runs."""
    iterations: int = Field(
        default=settings.DEFAULT_SIMULATION_ITERATIONS,
        ge=1,
        le=settings.MAX_SIMULATION_ITERATIONS,
    )
    distributions: list[VariableDistribution] = Field(default_factory=_default_distributions)
    correlation_matrix: Optional[CorrelationMatrix] = None
    seed: Optional[int] = None
    n_jobs: int = Field(default=1, ge=1)

    @field_validator("distributions")
    @classmethod
    def _one_distribution_per_variable(cls, v: list[VariableDistribution]) -> list[VariableDistribution]:
        if not v:
            raise ValueError("at least one simulated variable is required")
        names = [d.variable for d in v]
        if len(set(names)) != len(names):
            raise ValueError("each variable may only have one distribution")
        return v

    @property
    def variables(self) -> list[InputVariable]:
        return [d.variable for d in self.distributions]


class SimulationResult(BaseModel):
    """Raw ordered sample set. Statistics are derived on demand (see analysis.risk)."""
    config: SimulationConfig
    base_case_kpis: KpiSnapshot
    iterations: list[KpiSnapshot]

    def values(self, kpi: str = "npv") -> list[float]:
        """Sample values for one KPI in iteration order, skipping unavailable ones."""
        out = []
        for snapshot in self.iterations:
            value = getattr(snapshot, kpi)
            if value is not None:
                out.append(value)
        return out

    def statistics(self, kpi: str = "npv") -> "KpiStatistics":
        from scenario_lab.analysis.statistics import summarize
        return summarize(self.values(kpi), kpi)

    def histogram(self, kpi: str = "npv", bins: int = 20) -> list["HistogramBucket"]:
        from scenario_lab.analysis.statistics import histogram
        return histogram(self.values(kpi), bins)

    def risk_metrics(self) -> "RiskMetrics":
        from scenario_lab.analysis.risk import calculate_risk_metrics
        return calculate_risk_metrics(self)

    def to_frame(self) -> pd.DataFrame:
        """One row per iteration, one column per KPI."""
        return pd.DataFrame([s.model_dump() for s in self.iterations], columns=list(KpiSnapshot.model_fields))


class KpiStatistics(BaseModel):
    kpi: str
    count: int
    mean: Optional[float] = None
    std: Optional[float] = None
    p10: Optional[float] = None
    p50: Optional[float] = None
    p90: Optional[float] = None
    var95: Optional[float] = None
    probability_of_loss: Optional[float] = None


class RiskMetrics(BaseModel):
    probability_of_loss: float
    var95: float
    upside_potential_npv: float
    upside_potential_irr: Optional[float] = None


class HistogramBucket(BaseModel):
    lower: float
    upper: float
    count: int
