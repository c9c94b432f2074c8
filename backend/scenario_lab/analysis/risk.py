"""Risk metrics derived from a Monte Carlo sample set."""
from __future__ import annotations

from scenario_lab.analysis.statistics import percentile
from scenario_lab.errors import ConfigurationError
from scenario_lab.models.simulation import RiskMetrics, SimulationResult


def calculate_risk_metrics(result: SimulationResult) -> RiskMetrics:
    """Probability of loss, VaR95 and P90 upside for NPV and unlevered IRR.

    IRR upside is None when no iteration produced an IRR.
    """
    if not result.iterations:
        raise ConfigurationError("Cannot calculate risk metrics from an empty simulation result")

    npvs = sorted(result.values("npv"))
    irrs = sorted(result.values("unlevered_irr"))
    return RiskMetrics(
        probability_of_loss=sum(1 for v in npvs if v < 0) / len(npvs),
        var95=percentile(npvs, 0.05),
        upside_potential_npv=percentile(npvs, 0.90),
        upside_potential_irr=percentile(irrs, 0.90) if irrs else None,
    )
