"""Input variable accessor — maps logical analysis inputs onto configuration fields.

Two mutation flavours:
- ``set_input_value``: absolute value, used by goal seek.
- ``apply_adjustment``: sweep semantics. Demand drivers, debt amount and
  interest rate are multipliers of the current value; discount rate,
  terminal growth and initial investment are absolute.

All mutators change ``config`` in place and return it. Callers are expected
to pass a private clone (see ``analysis.cloning``).
"""
from __future__ import annotations

import logging
from typing import Optional

from scenario_lab.errors import ConfigurationError
from scenario_lab.models.analysis import InputVariable
from scenario_lab.models.scenario import (
    BeachClubConfig,
    HotelConfig,
    RestaurantConfig,
    RetailConfig,
    ScenarioConfiguration,
    VillasConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_BOUNDS: dict[InputVariable, tuple[float, float]] = {
    InputVariable.adr: (0.0, 5000.0),
    InputVariable.occupancy: (0.0, 1.0),
    InputVariable.discount_rate: (0.0, 0.5),
    InputVariable.initial_investment: (0.0, 1e8),
    InputVariable.debt_amount: (0.0, 1e8),
    InputVariable.interest_rate: (0.0, 0.2),
    InputVariable.terminal_growth_rate: (0.0, 0.1),
}

# Expected sign of d(value KPI)/d(input) for a conventional, profitable scenario.
# Used by goal seek only when probing the bracket ends is inconclusive.
KPI_DIRECTION: dict[InputVariable, int] = {
    InputVariable.adr: 1,
    InputVariable.occupancy: 1,
    InputVariable.terminal_growth_rate: 1,
    InputVariable.debt_amount: 1,  # more leverage lifts levered returns while debt is cheaper than the asset yield
    InputVariable.discount_rate: -1,
    InputVariable.initial_investment: -1,
    InputVariable.interest_rate: -1,
}

MULTIPLICATIVE_VARIABLES = frozenset({
    InputVariable.occupancy,
    InputVariable.adr,
    InputVariable.debt_amount,
    InputVariable.interest_rate,
})

# operation class -> (monthly demand curve field, upper bound or None)
_DEMAND_CURVES = {
    HotelConfig: ("occupancy_by_month", 1.0),
    VillasConfig: ("occupancy_by_month", 1.0),
    RetailConfig: ("occupancy_by_month", 1.0),
    BeachClubConfig: ("utilization_by_month", 1.0),
    RestaurantConfig: ("turnover_by_month", None),
}

_RATE_FIELDS = {
    HotelConfig: "avg_daily_rate",
    VillasConfig: "avg_nightly_rate",
    RestaurantConfig: "avg_check",
    BeachClubConfig: "avg_pass_price",
    RetailConfig: "rent_per_sqm",
}

_ROOM_RATE_TYPES = (HotelConfig, VillasConfig)


def get_default_bounds(variable: InputVariable) -> tuple[float, float]:
    return DEFAULT_BOUNDS[InputVariable(variable)]


def _clip(value: float, upper: Optional[float]) -> float:
    value = max(0.0, value)
    return min(upper, value) if upper is not None else value


def _find_operation(config: ScenarioConfiguration, operation_id: str):
    for op in config.scenario.operations:
        if op.id == operation_id:
            return op
    raise ConfigurationError(
        f"Operation '{operation_id}' not found in scenario", operation_id=operation_id,
    )


def _room_rate_operation(config: ScenarioConfiguration, operation_id: Optional[str]):
    if operation_id is not None:
        return _find_operation(config, operation_id)
    for op in config.scenario.operations:
        if isinstance(op, _ROOM_RATE_TYPES):
            return op
    raise ConfigurationError(
        "Scenario has no hotel or villa operation to apply a room rate to",
        variable=InputVariable.adr.value,
    )


def _occupancy_operations(config: ScenarioConfiguration, operation_id: Optional[str]) -> list:
    if operation_id is not None:
        op = _find_operation(config, operation_id)
        if _DEMAND_CURVES[type(op)][1] is None:
            raise ConfigurationError(
                f"Operation '{operation_id}' has no occupancy curve",
                operation_id=operation_id,
                variable=InputVariable.occupancy.value,
            )
        return [op]
    ops = [op for op in config.scenario.operations if _DEMAND_CURVES[type(op)][1] is not None]
    if not ops:
        raise ConfigurationError(
            "Scenario has no occupancy-bearing operation",
            variable=InputVariable.occupancy.value,
        )
    return ops


def _first_tranche(config: ScenarioConfiguration, variable: InputVariable):
    tranches = config.capital_config.debt_tranches
    if not tranches:
        raise ConfigurationError(
            f"Cannot set {variable.value}: scenario has no debt tranches",
            variable=variable.value,
        )
    return tranches[0]


def set_input_value(
    config: ScenarioConfiguration,
    variable: InputVariable,
    value: float,
    operation_id: Optional[str] = None,
) -> ScenarioConfiguration:
    """Set ``variable`` to the absolute ``value``.

    adr targets the addressed operation's rate, or the first hotel/villa.
    occupancy sets every month of every occupancy-bearing operation (or only
    the addressed one), clipped to [0, 1]. Debt variables target the first tranche.

    Raises:
        ConfigurationError: addressed operation or required tranche is missing.
    """
    variable = InputVariable(variable)
    if variable == InputVariable.adr:
        op = _room_rate_operation(config, operation_id)
        setattr(op, _RATE_FIELDS[type(op)], value)
    elif variable == InputVariable.occupancy:
        level = _clip(value, 1.0)
        for op in _occupancy_operations(config, operation_id):
            field = _DEMAND_CURVES[type(op)][0]
            setattr(op, field, [level] * len(getattr(op, field)))
    elif variable == InputVariable.discount_rate:
        config.project_config.discount_rate = value
    elif variable == InputVariable.terminal_growth_rate:
        config.project_config.terminal_growth_rate = value
    elif variable == InputVariable.initial_investment:
        config.project_config.initial_investment = value
        config.capital_config.initial_investment = value
    elif variable == InputVariable.debt_amount:
        _first_tranche(config, variable).initial_principal = value
    elif variable == InputVariable.interest_rate:
        _first_tranche(config, variable).interest_rate = value
    return config


def _scale_demand(config: ScenarioConfiguration, multiplier: float) -> None:
    for op in config.scenario.operations:
        field, upper = _DEMAND_CURVES[type(op)]
        setattr(op, field, [_clip(v * multiplier, upper) for v in getattr(op, field)])


def apply_adjustment(
    config: ScenarioConfiguration,
    variable: InputVariable,
    step_value: float,
) -> ScenarioConfiguration:
    """Apply a sweep grid value to ``config``.

    occupancy scales every demand curve (occupancy and utilization clipped to
    [0, 1], turnover floored at 0); adr scales every hotel/villa rate; debt
    amount and interest rate scale every tranche. The remaining variables
    take ``step_value`` as an absolute replacement.
    """
    variable = InputVariable(variable)
    if variable == InputVariable.occupancy:
        _scale_demand(config, step_value)
    elif variable == InputVariable.adr:
        for op in config.scenario.operations:
            if isinstance(op, _ROOM_RATE_TYPES):
                field = _RATE_FIELDS[type(op)]
                setattr(op, field, max(0.0, getattr(op, field) * step_value))
    elif variable == InputVariable.debt_amount:
        for tranche in config.capital_config.debt_tranches:
            tranche.initial_principal = max(0.0, tranche.initial_principal * step_value)
    elif variable == InputVariable.interest_rate:
        for tranche in config.capital_config.debt_tranches:
            tranche.interest_rate = max(0.0, tranche.interest_rate * step_value)
    else:
        set_input_value(config, variable, step_value)
    return config


def scale_input(
    config: ScenarioConfiguration,
    variable: InputVariable,
    multiplier: float,
) -> ScenarioConfiguration:
    """Scale ``variable`` by ``multiplier`` of its current value (Monte Carlo draws)."""
    variable = InputVariable(variable)
    if variable in MULTIPLICATIVE_VARIABLES:
        return apply_adjustment(config, variable, multiplier)
    return set_input_value(config, variable, get_base_value(config, variable) * multiplier)


def scale_demand_drivers(config: ScenarioConfiguration, multiplier: float) -> ScenarioConfiguration:
    """Scale occupancy and rate of every operation by ``multiplier``."""
    _scale_demand(config, multiplier)
    for op in config.scenario.operations:
        field = _RATE_FIELDS[type(op)]
        setattr(op, field, max(0.0, getattr(op, field) * multiplier))
    return config


def get_base_value(
    config: ScenarioConfiguration,
    variable: InputVariable,
    operation_id: Optional[str] = None,
) -> float:
    """Current value of ``variable``. Occupancy is the mean of the first matching curve."""
    variable = InputVariable(variable)
    if variable == InputVariable.adr:
        op = _room_rate_operation(config, operation_id)
        return getattr(op, _RATE_FIELDS[type(op)])
    if variable == InputVariable.occupancy:
        op = _occupancy_operations(config, operation_id)[0]
        curve = getattr(op, _DEMAND_CURVES[type(op)][0])
        return sum(curve) / len(curve)
    if variable == InputVariable.discount_rate:
        return config.project_config.discount_rate
    if variable == InputVariable.terminal_growth_rate:
        return config.project_config.terminal_growth_rate
    if variable == InputVariable.initial_investment:
        return config.project_config.initial_investment
    if variable == InputVariable.debt_amount:
        return _first_tranche(config, variable).initial_principal
    return _first_tranche(config, variable).interest_rate
