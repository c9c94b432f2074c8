"""Analysis error taxonomy.

Every error carries a ``context`` dict (offending variable, iteration index,
bracket bounds, ...) so it can be surfaced to an end user as-is.
"""
from __future__ import annotations

from typing import Any


class AnalysisError(Exception):
    """Base class for all analysis-layer failures."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, "context": self.context}


class ConfigurationError(AnalysisError, ValueError):
    """Invalid analysis configuration. Raised before any model evaluation."""


class ModelEvaluationError(AnalysisError):
    """The valuation pipeline failed on a trial configuration."""


class ConvergenceError(AnalysisError):
    """Goal seek exhausted its iterations without hitting the target."""

    def __init__(self, message: str, lower_bound: float, upper_bound: float, iterations: int) -> None:
        super().__init__(message, lower_bound=lower_bound, upper_bound=upper_bound, iterations=iterations)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.iterations = iterations


class KpiExtractionError(AnalysisError):
    """The requested KPI is not computable for this scenario (e.g. no equity partners)."""


class AnalysisCancelled(AnalysisError):
    """The caller abandoned an in-flight analysis."""
