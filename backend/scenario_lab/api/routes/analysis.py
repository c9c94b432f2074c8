from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from scenario_lab.analysis import (
    calculate_risk_metrics,
    calculate_variance_bridge,
    compare_scenarios,
    run_monte_carlo,
    run_scenario_triad,
    run_sensitivity,
    solve_for_target,
)
from scenario_lab.errors import (
    AnalysisError,
    ConfigurationError,
    ConvergenceError,
    KpiExtractionError,
)
from scenario_lab.models.analysis import (
    BridgeStep,
    ScenarioComparisonResult,
    ScenarioTriadResult,
    SensitivityResult,
    SolverResult,
)
from scenario_lab.models.simulation import (
    HistogramBucket,
    KpiStatistics,
    RiskMetrics,
    SimulationConfig,
    SimulationResult,
)
from scenario_lab.models.task import (
    CompareRequest,
    SensitivityRequest,
    SimulationRequest,
    SolveRequest,
    TriadRequest,
    VarianceRequest,
)

router = APIRouter(prefix="/analysis", tags=["analysis"])

_SUMMARY_KPIS = ("npv", "unlevered_irr", "levered_irr", "equity_multiple", "moic")


class SimulationResponse(BaseModel):
    """Raw samples plus the statistics computed from them."""
    result: SimulationResult
    statistics: dict[str, KpiStatistics]
    risk_metrics: RiskMetrics
    npv_histogram: list[HistogramBucket]


def _http_error(exc: AnalysisError) -> HTTPException:
    if isinstance(exc, (ConfigurationError, KpiExtractionError)):
        status = 422
    elif isinstance(exc, ConvergenceError):
        status = 409
    else:
        status = 500
    return HTTPException(status_code=status, detail=exc.to_dict())


@router.post("/solve", response_model=SolverResult)
def solve_endpoint(request: SolveRequest):
    """Goal seek: the input value at which the target KPI hits the target value."""
    try:
        value = solve_for_target(request.scenario, request.config)
    except AnalysisError as e:
        raise _http_error(e)
    return SolverResult(
        input_variable=request.config.input_variable,
        value=value,
        target_kpi=request.config.target_kpi,
        target_value=request.config.target_value,
    )


@router.post("/sensitivity", response_model=SensitivityResult)
def sensitivity_endpoint(request: SensitivityRequest):
    try:
        return run_sensitivity(request.scenario, request.config, include_outputs=request.include_outputs)
    except AnalysisError as e:
        raise _http_error(e)


@router.post("/simulation", response_model=SimulationResponse)
def simulation_endpoint(request: SimulationRequest, bins: int = Query(20, ge=1)):
    """Run a Monte Carlo simulation synchronously.

    Use POST /tasks for large runs that need progress and cancellation.
    """
    config = request.config or SimulationConfig()
    try:
        result = run_monte_carlo(request.scenario, config)
        risk = calculate_risk_metrics(result)
    except AnalysisError as e:
        raise _http_error(e)
    return SimulationResponse(
        result=result,
        statistics={kpi: result.statistics(kpi) for kpi in _SUMMARY_KPIS},
        risk_metrics=risk,
        npv_histogram=result.histogram("npv", bins),
    )


@router.post("/triad", response_model=ScenarioTriadResult)
def triad_endpoint(request: TriadRequest):
    try:
        return run_scenario_triad(request.scenario, request.stress_pct)
    except AnalysisError as e:
        raise _http_error(e)


@router.post("/compare", response_model=list[ScenarioComparisonResult])
def compare_endpoint(request: CompareRequest):
    try:
        return compare_scenarios(request.scenarios)
    except AnalysisError as e:
        raise _http_error(e)


@router.post("/variance", response_model=list[BridgeStep])
def variance_endpoint(request: VarianceRequest):
    """NPV bridge from ``base`` to ``target`` by operational, capital and development changes."""
    try:
        return calculate_variance_bridge(request.base, request.target)
    except AnalysisError as e:
        raise _http_error(e)
