"""Request bodies for the analysis engines and background-task messages."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from scenario_lab.models.analysis import (
    ScenarioComparisonInput,
    SensitivityConfig,
    SolverConfig,
)
from scenario_lab.models.scenario import NamedScenario, ScenarioConfiguration
from scenario_lab.models.simulation import SimulationConfig


class SolveRequest(BaseModel):
    scenario: ScenarioConfiguration
    config: SolverConfig


class SensitivityRequest(BaseModel):
    scenario: ScenarioConfiguration
    config: SensitivityConfig
    include_outputs: bool = False


class SimulationRequest(BaseModel):
    scenario: ScenarioConfiguration
    config: Optional[SimulationConfig] = None


class TriadRequest(BaseModel):
    scenario: ScenarioConfiguration
    stress_pct: float = 0.10


class CompareRequest(BaseModel):
    scenarios: list[ScenarioComparisonInput]


class VarianceRequest(BaseModel):
    base: NamedScenario
    target: NamedScenario


class TaskKind(str, Enum):
    sensitivity = "sensitivity"
    simulation = "simulation"
    solve = "solve"
    triad = "triad"


class TaskStatus(str, Enum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"
    cancelled = "cancelled"


class MessageType(str, Enum):
    progress = "progress"
    success = "success"
    error = "error"
    cancelled = "cancelled"


class TaskMessage(BaseModel):
    """One message on a task's channel: progress updates, then exactly one terminal message."""
    task_id: str
    type: MessageType
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    result: Optional[Any] = None
    error: Optional[dict[str, Any]] = None


class TaskSubmission(BaseModel):
    kind: TaskKind
    payload: dict[str, Any]


class TaskSnapshot(BaseModel):
    id: str
    kind: TaskKind
    status: TaskStatus
    progress: int = 0
    result: Optional[Any] = None
    error: Optional[dict[str, Any]] = None
