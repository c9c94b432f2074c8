"""Deterministic model invoker — the only path from an engine to the valuation pipeline."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from scenario_lab.errors import KpiExtractionError, ModelEvaluationError
from scenario_lab.models.analysis import KpiSnapshot, TargetKpi
from scenario_lab.models.scenario import ScenarioConfiguration
from scenario_lab.models.valuation import ModelOutput
from scenario_lab.pipeline import run_full_model

logger = logging.getLogger(__name__)

ValuationPipeline = Callable[[ScenarioConfiguration], ModelOutput]


class ModelInvoker:
    """Wraps a valuation pipeline and reads KPIs out of its output.

    The pipeline is treated as a pure, possibly slow black box: each
    ``evaluate`` call invokes it exactly once.
    """

    def __init__(self, pipeline: Optional[ValuationPipeline] = None) -> None:
        self.pipeline = pipeline or run_full_model

    def evaluate(self, config: ScenarioConfiguration, **context) -> ModelOutput:
        """Run the pipeline once.

        Any failure is re-raised as ``ModelEvaluationError`` carrying ``context``
        (trial input values, iteration index).
        """
        try:
            return self.pipeline(config)
        except ModelEvaluationError:
            raise
        except Exception as exc:
            logger.debug("Pipeline failed for %s: %s", context, exc)
            raise ModelEvaluationError(f"Model evaluation failed: {exc}", **context) from exc

    @staticmethod
    def extract_kpi(output: ModelOutput, target_kpi: TargetKpi) -> Optional[float]:
        """Read ``target_kpi`` from ``output``. None when not computable."""
        target_kpi = TargetKpi(target_kpi)
        if target_kpi == TargetKpi.npv:
            return output.project_kpis.npv
        if target_kpi == TargetKpi.irr:
            return output.project_kpis.unlevered_irr
        if target_kpi == TargetKpi.equity_multiple:
            return output.project_kpis.equity_multiple
        if not output.partners:
            return None
        if target_kpi == TargetKpi.levered_irr:
            return output.partners[0].irr
        return output.partners[0].moic

    @classmethod
    def extract_kpis(cls, output: ModelOutput) -> KpiSnapshot:
        return KpiSnapshot(
            npv=output.project_kpis.npv,
            unlevered_irr=output.project_kpis.unlevered_irr,
            levered_irr=cls.extract_kpi(output, TargetKpi.levered_irr),
            equity_multiple=output.project_kpis.equity_multiple,
            moic=cls.extract_kpi(output, TargetKpi.moic),
            wacc=output.project_kpis.wacc,
            min_dscr=output.debt.min_dscr,
        )

    def evaluate_kpi(self, config: ScenarioConfiguration, target_kpi: TargetKpi, **context) -> float:
        """Evaluate and extract one KPI.

        Raises:
            KpiExtractionError: the KPI is not available for this scenario.
        """
        value = self.extract_kpi(self.evaluate(config, **context), target_kpi)
        if value is None:
            raise KpiExtractionError(
                f"Could not extract KPI '{TargetKpi(target_kpi).value}'",
                kpi=TargetKpi(target_kpi).value,
                **context,
            )
        return value
