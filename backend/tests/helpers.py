"""Shared builders for scenario configurations and synthetic pipelines."""
from scenario_lab.models.scenario import (
    CapitalStructureConfig,
    DebtTrancheConfig,
    EquityClass,
    HotelConfig,
    ProjectConfig,
    ProjectScenario,
    RestaurantConfig,
    ScenarioConfiguration,
    VillasConfig,
    WaterfallConfig,
    WaterfallTier,
)
from scenario_lab.models.valuation import DebtSummary, ModelOutput, PartnerResult, ProjectKpis


def make_hotel(**overrides) -> HotelConfig:
    defaults = dict(
        id="hotel-1",
        name="Main Hotel",
        keys=100,
        avg_daily_rate=200.0,
        occupancy_by_month=[0.70] * 12,
        food_revenue_pct=0.30,
        beverage_revenue_pct=0.15,
        other_revenue_pct=0.05,
        food_cogs_pct=0.35,
        beverage_cogs_pct=0.25,
        commissions_pct=0.05,
        payroll_pct=0.25,
        utilities_pct=0.05,
        marketing_pct=0.03,
        maintenance_opex_pct=0.04,
        other_opex_pct=0.03,
        maintenance_capex_pct=0.02,
    )
    defaults.update(overrides)
    return HotelConfig(**defaults)


def make_villas(**overrides) -> VillasConfig:
    defaults = dict(
        id="villas-1",
        name="Beach Villas",
        units=20,
        avg_nightly_rate=450.0,
        occupancy_by_month=[0.60] * 12,
        payroll_pct=0.20,
        other_opex_pct=0.10,
    )
    defaults.update(overrides)
    return VillasConfig(**defaults)


def make_restaurant(**overrides) -> RestaurantConfig:
    defaults = dict(
        id="restaurant-1",
        name="Grill",
        covers=80,
        avg_check=45.0,
        turnover_by_month=[1.5] * 12,
        food_cogs_pct=0.0,
        payroll_pct=0.30,
        other_opex_pct=0.15,
    )
    defaults.update(overrides)
    return RestaurantConfig(**defaults)


def make_config(operations=None, debt=True, equity=True, **project_overrides) -> ScenarioConfiguration:
    """The reference hotel: 100 keys, $200 ADR, 70% occupancy, $20M cost, $10M senior debt at 6%."""
    project = dict(
        discount_rate=0.10,
        terminal_growth_rate=0.02,
        initial_investment=20_000_000.0,
    )
    project.update(project_overrides)
    tranches = [
        DebtTrancheConfig(
            id="senior",
            label="Senior Loan",
            initial_principal=10_000_000.0,
            interest_rate=0.06,
            term_years=10,
            amortization_type="mortgage",
            amortization_years=25,
        )
    ] if debt else []
    waterfall = WaterfallConfig(
        equity_classes=[
            EquityClass(id="lp", name="Limited Partner", contribution_pct=0.9),
            EquityClass(id="gp", name="General Partner", contribution_pct=0.1),
        ],
        tiers=[
            WaterfallTier(id="roc", type="return_of_capital", distribution_splits={"lp": 0.9, "gp": 0.1}),
            WaterfallTier(
                id="promote",
                type="promote",
                hurdle_irr=0.12,
                distribution_splits={"lp": 0.7, "gp": 0.3},
                enable_catch_up=True,
                catch_up_target_split={"lp": 0.8, "gp": 0.2},
            ),
        ],
    ) if equity else WaterfallConfig()
    return ScenarioConfiguration(
        scenario=ProjectScenario(
            id="base",
            name="Base Case",
            start_year=2026,
            horizon_years=5,
            operations=operations if operations is not None else [make_hotel()],
        ),
        project_config=ProjectConfig(**project),
        capital_config=CapitalStructureConfig(
            initial_investment=project["initial_investment"],
            debt_tranches=tranches,
        ),
        waterfall_config=waterfall,
    )


def make_output(npv: float, irr=None, equity_multiple: float = 1.0, partner_irr=None, scenario_id="synthetic") -> ModelOutput:
    partners = []
    if partner_irr is not None:
        partners = [PartnerResult(partner_id="lp", cash_flows=[], irr=partner_irr, moic=equity_multiple)]
    return ModelOutput(
        scenario_id=scenario_id,
        annual_cash_flows=[],
        unlevered_cash_flows=[],
        levered_cash_flows=[],
        project_kpis=ProjectKpis(npv=npv, unlevered_irr=irr, equity_multiple=equity_multiple),
        debt=DebtSummary(total_principal=0.0),
        partners=partners,
    )


class CountingPipeline:
    """Wraps a ``config -> ModelOutput`` function and counts calls."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = 0

    def __call__(self, config):
        self.calls += 1
        return self.fn(config)


def linear_adr_pipeline(slope: float = 1000.0, intercept: float = -150_000.0):
    """NPV = slope * ADR + intercept on the first operation."""
    return CountingPipeline(
        lambda config: make_output(slope * config.scenario.operations[0].avg_daily_rate + intercept)
    )
