"""Tests for the deterministic model invoker."""
import pytest

from scenario_lab.analysis.invoker import ModelInvoker
from scenario_lab.errors import KpiExtractionError, ModelEvaluationError
from scenario_lab.models.analysis import TargetKpi
from scenario_lab.pipeline import run_full_model

from helpers import CountingPipeline, make_config, make_output


def test_default_pipeline_is_stub():
    assert ModelInvoker().pipeline is run_full_model


def test_evaluate_calls_pipeline_once():
    pipeline = CountingPipeline(lambda config: make_output(1.0))
    ModelInvoker(pipeline).evaluate(make_config())
    assert pipeline.calls == 1


def test_pipeline_failures_are_wrapped_with_context():
    def broken(config):
        raise ZeroDivisionError("division by zero")

    with pytest.raises(ModelEvaluationError, match="division by zero") as exc_info:
        ModelInvoker(broken).evaluate(make_config(), iteration=7, input_value=1.5)
    assert exc_info.value.context == {"iteration": 7, "input_value": 1.5}
    assert isinstance(exc_info.value.__cause__, ZeroDivisionError)


def test_model_evaluation_errors_pass_through():
    original = ModelEvaluationError("bad tranche", tranche="senior")

    def broken(config):
        raise original

    with pytest.raises(ModelEvaluationError) as exc_info:
        ModelInvoker(broken).evaluate(make_config())
    assert exc_info.value is original


def test_extract_project_kpis():
    output = make_output(123.0, irr=0.15, equity_multiple=2.0)
    assert ModelInvoker.extract_kpi(output, TargetKpi.npv) == 123.0
    assert ModelInvoker.extract_kpi(output, TargetKpi.irr) == 0.15
    assert ModelInvoker.extract_kpi(output, TargetKpi.equity_multiple) == 2.0


def test_levered_kpis_absent_without_partners():
    output = make_output(1.0)
    assert ModelInvoker.extract_kpi(output, TargetKpi.levered_irr) is None
    assert ModelInvoker.extract_kpi(output, TargetKpi.moic) is None


def test_levered_kpis_come_from_first_partner():
    output = make_output(1.0, equity_multiple=1.8, partner_irr=0.2)
    assert ModelInvoker.extract_kpi(output, TargetKpi.levered_irr) == 0.2
    assert ModelInvoker.extract_kpi(output, TargetKpi.moic) == 1.8


def test_extract_kpis_snapshot():
    snapshot = ModelInvoker.extract_kpis(run_full_model(make_config()))
    assert snapshot.npv > 0
    assert snapshot.levered_irr is not None
    assert snapshot.moic is not None
    assert snapshot.min_dscr is not None


def test_evaluate_kpi_raises_when_unavailable():
    invoker = ModelInvoker(lambda config: make_output(1.0))
    with pytest.raises(KpiExtractionError, match="levered_irr") as exc_info:
        invoker.evaluate_kpi(make_config(), TargetKpi.levered_irr, input_value=3.0)
    assert exc_info.value.context["kpi"] == "levered_irr"
    assert exc_info.value.context["input_value"] == 3.0
