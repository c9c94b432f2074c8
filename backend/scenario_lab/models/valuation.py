from typing import Optional

from pydantic import BaseModel


class AnnualCashFlow(BaseModel):
    """Consolidated project cash flow for a single operating year."""
    year_index: int
    revenue: float
    operating_expenses: float
    noi: float
    maintenance_capex: float
    change_in_working_capital: float
    unlevered_cash_flow: float
    interest: float
    principal: float
    debt_service: float
    levered_cash_flow: float
    dscr: Optional[float] = None


class ProjectKpis(BaseModel):
    npv: float
    unlevered_irr: Optional[float] = None
    equity_multiple: float
    payback_period: Optional[float] = None
    wacc: Optional[float] = None


class DebtSummary(BaseModel):
    total_principal: float
    weighted_interest_rate: Optional[float] = None
    min_dscr: Optional[float] = None
    ending_balance: float = 0.0


class PartnerResult(BaseModel):
    """Distributions and returns for one equity class."""
    partner_id: str
    cash_flows: list[float]
    irr: Optional[float] = None
    moic: Optional[float] = None


class ModelOutput(BaseModel):
    """Output of a full valuation pipeline run."""
    scenario_id: str
    annual_cash_flows: list[AnnualCashFlow]
    unlevered_cash_flows: list[float]  # year 0..N including terminal value
    levered_cash_flows: list[float]
    project_kpis: ProjectKpis
    debt: DebtSummary
    partners: list[PartnerResult] = []
