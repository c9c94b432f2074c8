"""Scenario cloning — private deep copies for every analysis trial."""
from __future__ import annotations

from scenario_lab.models.scenario import NamedScenario, ScenarioConfiguration


def clone_scenario(config: ScenarioConfiguration) -> ScenarioConfiguration:
    """Return a structurally deep copy of ``config``.

    Operations are a closed discriminated union, so one generic deep copy
    covers every kind. No list or dict (monthly curves, tranches, equity
    classes, tier splits) is shared with the source.
    """
    return config.model_copy(deep=True)


def clone_named_scenario(named: NamedScenario) -> NamedScenario:
    return named.model_copy(deep=True)
