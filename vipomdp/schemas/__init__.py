"""Pydantic schemas for input files."""

from .model_config import ModelConfig, SolverConfig

__all__ = ["ModelConfig", "SolverConfig"]
