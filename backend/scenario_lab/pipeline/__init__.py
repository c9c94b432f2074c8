"""Valuation pipeline — the deterministic scenario → ModelOutput function the analysis engines call."""
from scenario_lab.pipeline.stub_pipeline import run_full_model

__all__ = ["run_full_model"]
