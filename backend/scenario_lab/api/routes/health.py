from fastapi import APIRouter

from scenario_lab.config import settings
from scenario_lab.pipeline import run_full_model

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "pipeline": f"{run_full_model.__module__}.{run_full_model.__name__}",
        "limits": {
            "max_sensitivity_steps": settings.MAX_SENSITIVITY_STEPS,
            "max_simulation_iterations": settings.MAX_SIMULATION_ITERATIONS,
        },
    }
