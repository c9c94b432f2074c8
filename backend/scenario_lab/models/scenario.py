"""Scenario configuration tree — operations, project, capital and waterfall inputs.

Operations form a closed tagged variant keyed on ``operation_type`` so that a
single generic deep copy covers every operation kind.
"""
from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

MONTHS_PER_YEAR = 12


def _check_monthly_curve(values: list[float], upper: Optional[float] = 1.0) -> list[float]:
    if len(values) != MONTHS_PER_YEAR:
        raise ValueError(f"expected {MONTHS_PER_YEAR} monthly values, got {len(values)}")
    for v in values:
        if v < 0 or (upper is not None and v > upper):
            bound = f"[0, {upper}]" if upper is not None else ">= 0"
            raise ValueError(f"monthly value {v} outside {bound}")
    return values


class OperationBase(BaseModel):
    """Fields shared by every operation kind.

    Revenue mix percentages are fractions of the operation's primary revenue
    (rooms, rental, covers, passes or rent). Cost ratios are fractions of the
    matching revenue line or of total revenue.
    """
    id: str
    name: str
    food_revenue_pct: float = 0.0
    beverage_revenue_pct: float = 0.0
    other_revenue_pct: float = 0.0
    food_cogs_pct: float = 0.0
    beverage_cogs_pct: float = 0.0
    commissions_pct: float = 0.0
    payroll_pct: float = 0.0
    utilities_pct: float = 0.0
    marketing_pct: float = 0.0
    maintenance_opex_pct: float = 0.0
    other_opex_pct: float = 0.0
    maintenance_capex_pct: float = 0.0
    fixed_payroll: float = 0.0          # per month
    fixed_other_expenses: float = 0.0   # per month
    is_active: bool = True


class HotelConfig(OperationBase):
    operation_type: Literal["HOTEL"] = "HOTEL"
    keys: int
    avg_daily_rate: float
    occupancy_by_month: list[float]

    @field_validator("occupancy_by_month")
    @classmethod
    def _occupancy_curve(cls, v: list[float]) -> list[float]:
        return _check_monthly_curve(v)


class VillasConfig(OperationBase):
    operation_type: Literal["VILLAS"] = "VILLAS"
    units: int
    avg_nightly_rate: float
    occupancy_by_month: list[float]

    @field_validator("occupancy_by_month")
    @classmethod
    def _occupancy_curve(cls, v: list[float]) -> list[float]:
        return _check_monthly_curve(v)


class RestaurantConfig(OperationBase):
    operation_type: Literal["RESTAURANT"] = "RESTAURANT"
    covers: int
    avg_check: float
    turnover_by_month: list[float]  # daily table turns

    @field_validator("turnover_by_month")
    @classmethod
    def _turnover_curve(cls, v: list[float]) -> list[float]:
        return _check_monthly_curve(v, upper=None)


class BeachClubConfig(OperationBase):
    operation_type: Literal["BEACH_CLUB"] = "BEACH_CLUB"
    daily_passes: int
    avg_pass_price: float
    utilization_by_month: list[float]

    @field_validator("utilization_by_month")
    @classmethod
    def _utilization_curve(cls, v: list[float]) -> list[float]:
        return _check_monthly_curve(v)


class RetailConfig(OperationBase):
    operation_type: Literal["RETAIL"] = "RETAIL"
    leasable_area: float
    rent_per_sqm: float  # per month
    occupancy_by_month: list[float]

    @field_validator("occupancy_by_month")
    @classmethod
    def _occupancy_curve(cls, v: list[float]) -> list[float]:
        return _check_monthly_curve(v)


OperationConfig = Annotated[
    Union[HotelConfig, VillasConfig, RestaurantConfig, BeachClubConfig, RetailConfig],
    Field(discriminator="operation_type"),
]


class ProjectScenario(BaseModel):
    id: str
    name: str
    start_year: int
    horizon_years: int = Field(ge=1)
    operations: list[OperationConfig] = []


class ProjectConfig(BaseModel):
    discount_rate: float
    terminal_growth_rate: float
    initial_investment: float
    working_capital_pct: float = 0.0
    tax_rate: float = 0.0


class DebtTrancheConfig(BaseModel):
    id: str
    label: Optional[str] = None
    initial_principal: float
    interest_rate: float
    term_years: int = Field(ge=1)
    amortization_type: Literal["mortgage", "interest_only", "bullet"] = "mortgage"
    amortization_years: Optional[int] = None
    origination_fee_pct: float = 0.0


class CapitalStructureConfig(BaseModel):
    initial_investment: float
    debt_tranches: list[DebtTrancheConfig] = []


class EquityClass(BaseModel):
    id: str
    name: str
    contribution_pct: float
    distribution_pct: Optional[float] = None


class WaterfallTier(BaseModel):
    id: str
    type: Literal["return_of_capital", "preferred_return", "promote"]
    hurdle_irr: Optional[float] = None
    distribution_splits: dict[str, float] = {}
    enable_catch_up: bool = False
    catch_up_target_split: Optional[dict[str, float]] = None


class WaterfallConfig(BaseModel):
    equity_classes: list[EquityClass] = []
    tiers: list[WaterfallTier] = []


class ScenarioConfiguration(BaseModel):
    """Full input to the valuation pipeline."""
    scenario: ProjectScenario
    project_config: ProjectConfig
    capital_config: CapitalStructureConfig
    waterfall_config: WaterfallConfig = Field(default_factory=WaterfallConfig)


class NamedScenario(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    configuration: ScenarioConfiguration
