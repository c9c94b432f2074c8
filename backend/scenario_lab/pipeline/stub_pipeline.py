"""Stub valuation pipeline — formula-based, no external engine.

Stands in for the full operations/capital/DCF/waterfall pipeline: flat annual
operating years, Gordon terminal value, per-tranche debt schedules and a
pro-rata equity split. Pure and deterministic.
"""
from __future__ import annotations

import logging
import math

import numpy_financial as npf

from scenario_lab.models.scenario import (
    BeachClubConfig,
    DebtTrancheConfig,
    HotelConfig,
    RestaurantConfig,
    RetailConfig,
    ScenarioConfiguration,
    VillasConfig,
)
from scenario_lab.models.valuation import (
    AnnualCashFlow,
    DebtSummary,
    ModelOutput,
    PartnerResult,
    ProjectKpis,
)

logger = logging.getLogger(__name__)

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def _primary_revenue(op) -> float:
    """Annual revenue of the operation's main driver (rooms, rental, covers, passes, rent)."""
    if isinstance(op, HotelConfig):
        return sum(op.keys * op.avg_daily_rate * occ * d for occ, d in zip(op.occupancy_by_month, _DAYS_IN_MONTH))
    if isinstance(op, VillasConfig):
        return sum(op.units * op.avg_nightly_rate * occ * d for occ, d in zip(op.occupancy_by_month, _DAYS_IN_MONTH))
    if isinstance(op, RestaurantConfig):
        return sum(op.covers * op.avg_check * turns * d for turns, d in zip(op.turnover_by_month, _DAYS_IN_MONTH))
    if isinstance(op, BeachClubConfig):
        return sum(op.daily_passes * op.avg_pass_price * u * d for u, d in zip(op.utilization_by_month, _DAYS_IN_MONTH))
    if isinstance(op, RetailConfig):
        return sum(op.leasable_area * op.rent_per_sqm * occ for occ in op.occupancy_by_month)
    raise TypeError(f"Unsupported operation type: {type(op).__name__}")


def _operation_pnl(op) -> dict[str, float]:
    primary = _primary_revenue(op)
    food = primary * op.food_revenue_pct
    beverage = primary * op.beverage_revenue_pct
    other = primary * op.other_revenue_pct
    revenue = primary + food + beverage + other

    cogs = food * op.food_cogs_pct + beverage * op.beverage_cogs_pct
    commissions = primary * op.commissions_pct
    opex_pct = op.payroll_pct + op.utilities_pct + op.marketing_pct + op.maintenance_opex_pct + op.other_opex_pct
    fixed = 12.0 * (op.fixed_payroll + op.fixed_other_expenses)
    operating_expenses = cogs + commissions + revenue * opex_pct + fixed

    return {
        "revenue": revenue,
        "operating_expenses": operating_expenses,
        "noi": revenue - operating_expenses,
        "maintenance_capex": revenue * op.maintenance_capex_pct,
    }


def _tranche_schedule(tranche: DebtTrancheConfig, horizon: int) -> tuple[list[float], list[float], float]:
    """Annual (interest, principal) for years 1..horizon and the balance left at exit.

    Balances outstanding at maturity are repaid in the maturity year.
    """
    rate = tranche.interest_rate
    balance = tranche.initial_principal
    interest: list[float] = []
    principal: list[float] = []

    amort_years = tranche.amortization_years or tranche.term_years
    if rate > 0:
        payment = balance * rate / (1.0 - (1.0 + rate) ** -amort_years)
    else:
        payment = balance / amort_years

    for year in range(1, horizon + 1):
        if balance <= 0:
            interest.append(0.0)
            principal.append(0.0)
            continue
        if tranche.amortization_type == "bullet":
            # interest capitalizes until maturity
            balance *= 1.0 + rate
            year_interest, year_principal = 0.0, 0.0
        else:
            year_interest = balance * rate
            year_principal = 0.0
            if tranche.amortization_type == "mortgage":
                year_principal = min(max(payment - year_interest, 0.0), balance)
        balance -= year_principal
        if year == tranche.term_years:
            year_principal += balance
            balance = 0.0
        interest.append(year_interest)
        principal.append(year_principal)

    return interest, principal, balance


def _irr(cash_flows: list[float]) -> float | None:
    if not any(cf > 0 for cf in cash_flows) or not any(cf < 0 for cf in cash_flows):
        return None
    value = npf.irr(cash_flows)
    return float(value) if math.isfinite(value) else None


def _payback_period(cash_flows: list[float]) -> float | None:
    cumulative = cash_flows[0]
    for year in range(1, len(cash_flows)):
        previous = cumulative
        cumulative += cash_flows[year]
        if cumulative >= 0 > previous:
            return year - 1 + (-previous / cash_flows[year])
    return None


def run_full_model(config: ScenarioConfiguration) -> ModelOutput:
    """Run the stub valuation for a full scenario configuration.

    Raises:
        ValueError: if the discount rate does not exceed the terminal growth rate.
    """
    project = config.project_config
    horizon = config.scenario.horizon_years
    r, g = project.discount_rate, project.terminal_growth_rate
    if r <= g:
        raise ValueError(f"discount rate ({r}) must exceed terminal growth rate ({g})")

    pnl = {"revenue": 0.0, "operating_expenses": 0.0, "noi": 0.0, "maintenance_capex": 0.0}
    for op in config.scenario.operations:
        if not op.is_active:
            continue
        for key, value in _operation_pnl(op).items():
            pnl[key] += value

    tranches = config.capital_config.debt_tranches
    schedules = [_tranche_schedule(t, horizon) for t in tranches]
    total_principal = sum(t.initial_principal for t in tranches)
    origination_fees = sum(t.initial_principal * t.origination_fee_pct for t in tranches)
    exit_balance = sum(s[2] for s in schedules)

    working_capital = pnl["revenue"] * project.working_capital_pct
    unlevered = [-project.initial_investment]
    levered = [-(project.initial_investment - total_principal) - origination_fees]
    annual: list[AnnualCashFlow] = []

    for year in range(1, horizon + 1):
        delta_wc = working_capital if year == 1 else 0.0
        if year == horizon:
            delta_wc -= working_capital
        taxes = project.tax_rate * max(pnl["noi"] - pnl["maintenance_capex"], 0.0)
        ufcf = pnl["noi"] - pnl["maintenance_capex"] - delta_wc - taxes

        interest = sum(s[0][year - 1] for s in schedules)
        principal = sum(s[1][year - 1] for s in schedules)
        debt_service = interest + principal
        lcf = ufcf - debt_service

        annual.append(AnnualCashFlow(
            year_index=year,
            revenue=pnl["revenue"],
            operating_expenses=pnl["operating_expenses"],
            noi=pnl["noi"],
            maintenance_capex=pnl["maintenance_capex"],
            change_in_working_capital=delta_wc,
            unlevered_cash_flow=ufcf,
            interest=interest,
            principal=principal,
            debt_service=debt_service,
            levered_cash_flow=lcf,
            dscr=pnl["noi"] / debt_service if debt_service > 0 else None,
        ))
        unlevered.append(ufcf)
        levered.append(lcf)

    terminal_value = annual[-1].unlevered_cash_flow * (1.0 + g) / (r - g)
    unlevered[-1] += terminal_value
    levered[-1] += terminal_value - exit_balance

    npv = float(npf.npv(r, unlevered))
    equity = -levered[0]
    distributions = sum(cf for cf in levered[1:] if cf > 0)
    equity_multiple = distributions / equity if equity > 0 else 0.0

    weighted_rate = (
        sum(t.initial_principal * t.interest_rate for t in tranches) / total_principal
        if total_principal > 0 else None
    )
    wacc = None
    if project.initial_investment > 0:
        debt_share = min(total_principal / project.initial_investment, 1.0)
        debt_cost = (weighted_rate or 0.0) * (1.0 - project.tax_rate)
        wacc = (1.0 - debt_share) * r + debt_share * debt_cost

    partners = []
    for ec in config.waterfall_config.equity_classes:
        split = ec.distribution_pct if ec.distribution_pct is not None else ec.contribution_pct
        flows = [cf * (ec.contribution_pct if cf < 0 else split) for cf in levered]
        paid_in = -sum(cf for cf in flows if cf < 0)
        partners.append(PartnerResult(
            partner_id=ec.id,
            cash_flows=flows,
            irr=_irr(flows),
            moic=sum(cf for cf in flows if cf > 0) / paid_in if paid_in > 0 else None,
        ))

    dscrs = [row.dscr for row in annual if row.dscr is not None]
    logger.debug("Stub pipeline %s: NPV=%.2f", config.scenario.id, npv)

    return ModelOutput(
        scenario_id=config.scenario.id,
        annual_cash_flows=annual,
        unlevered_cash_flows=unlevered,
        levered_cash_flows=levered,
        project_kpis=ProjectKpis(
            npv=npv,
            unlevered_irr=_irr(unlevered),
            equity_multiple=equity_multiple,
            payback_period=_payback_period(unlevered),
            wacc=wacc,
        ),
        debt=DebtSummary(
            total_principal=total_principal,
            weighted_interest_rate=weighted_rate,
            min_dscr=min(dscrs) if dscrs else None,
            ending_balance=exit_balance,
        ),
        partners=partners,
    )
