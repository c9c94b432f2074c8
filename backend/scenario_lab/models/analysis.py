"""Request/response models for goal seek, sensitivity and scenario comparison."""
from enum import Enum
from typing import Optional

import pandas as pd
from pydantic import BaseModel, Field, model_validator

from scenario_lab.models.scenario import ScenarioConfiguration
from scenario_lab.models.valuation import ModelOutput, ProjectKpis


class TargetKpi(str, Enum):
    """KPI a goal seek can aim for."""
    npv = "npv"
    irr = "irr"                    # unlevered project IRR
    levered_irr = "levered_irr"    # first equity class
    equity_multiple = "equity_multiple"
    moic = "moic"                  # first equity class


class InputVariable(str, Enum):
    """Logical inputs the analysis engines can move."""
    adr = "adr"
    occupancy = "occupancy"
    discount_rate = "discount_rate"
    initial_investment = "initial_investment"
    debt_amount = "debt_amount"
    interest_rate = "interest_rate"
    terminal_growth_rate = "terminal_growth_rate"


class KpiSnapshot(BaseModel):
    """KPIs of one model evaluation. Levered figures are None without equity classes."""
    npv: float
    unlevered_irr: Optional[float] = None
    levered_irr: Optional[float] = None
    equity_multiple: float
    moic: Optional[float] = None
    wacc: Optional[float] = None
    min_dscr: Optional[float] = None


class SolverConfig(BaseModel):
    """Goal seek configuration. ``min``/``max`` override the variable's default bounds."""
    target_kpi: TargetKpi
    target_value: float
    input_variable: InputVariable
    min: Optional[float] = None
    max: Optional[float] = None
    tolerance: float = Field(default=1e-4, gt=0)
    max_iterations: int = Field(default=50, ge=1)
    operation_id: Optional[str] = None

    @model_validator(mode="after")
    def _bounds_ordered(self) -> "SolverConfig":
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError(f"min ({self.min}) must be less than max ({self.max})")
        return self


class SolverResult(BaseModel):
    input_variable: InputVariable
    value: float
    target_kpi: TargetKpi
    target_value: float


class Range(BaseModel):
    """Linear grid over one input: ``steps`` evenly spaced values, endpoints included."""
    min: float
    max: float
    steps: int = Field(ge=1)

    @model_validator(mode="after")
    def _ordered(self) -> "Range":
        if self.min > self.max:
            raise ValueError(f"range min ({self.min}) must not exceed max ({self.max})")
        return self


class SensitivityConfig(BaseModel):
    variable_x: InputVariable
    range_x: Range
    variable_y: Optional[InputVariable] = None
    range_y: Optional[Range] = None

    @model_validator(mode="after")
    def _y_pairing(self) -> "SensitivityConfig":
        if (self.variable_y is None) != (self.range_y is None):
            raise ValueError("variable_y and range_y must be given together")
        return self

    @property
    def is_2d(self) -> bool:
        return self.variable_y is not None


class SensitivityRun(BaseModel):
    variable_x_value: float
    variable_y_value: Optional[float] = None
    kpis: KpiSnapshot
    output: Optional[ModelOutput] = None


class SensitivityCell(BaseModel):
    variable_x_value: float
    variable_y_value: float
    kpis: KpiSnapshot


class SensitivityResult(BaseModel):
    """Sweep result. ``matrix[row][col]``: row follows the Y grid, column the X grid."""
    config: SensitivityConfig
    base_case_output: ModelOutput
    runs: list[SensitivityRun]
    matrix: Optional[list[list[SensitivityCell]]] = None

    def to_frame(self) -> pd.DataFrame:
        """One row per run with grid coordinates and every KPI."""
        rows = []
        for run in self.runs:
            row = {"variable_x_value": run.variable_x_value}
            if run.variable_y_value is not None:
                row["variable_y_value"] = run.variable_y_value
            row.update(run.kpis.model_dump())
            rows.append(row)
        return pd.DataFrame(rows)

    def pivot(self, kpi: str = "npv") -> pd.DataFrame:
        """KPI grid with Y values as the index and X values as columns (2D only)."""
        if self.matrix is None:
            raise ValueError("pivot requires a two-variable sweep")
        data = [[getattr(cell.kpis, kpi) for cell in row] for row in self.matrix]
        index = [row[0].variable_y_value for row in self.matrix]
        columns = [cell.variable_x_value for cell in self.matrix[0]]
        return pd.DataFrame(data, index=index, columns=columns)


class ScenarioTriadResult(BaseModel):
    base: ProjectKpis
    stress: ProjectKpis
    upside: ProjectKpis


class ScenarioComparisonInput(BaseModel):
    id: str
    name: str
    config: ScenarioConfiguration


class ScenarioComparisonResult(BaseModel):
    id: str
    name: str
    kpis: ProjectKpis


class BridgeStep(BaseModel):
    label: str
    value: float
    cumulative_value: float
