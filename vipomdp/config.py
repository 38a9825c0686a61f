"""
Configuration management for the POMDP value iteration solver.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return float(value)


class Config:
    """Application configuration settings."""

    # Base paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    OUTPUT_DIR: Path = Path(os.getenv("VIPOMDP_OUTPUT_DIR", str(PROJECT_ROOT / "artifacts")))

    # Logging settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Solver defaults
    VI_MAX_ITERATIONS: int = int(os.getenv("VI_MAX_ITERATIONS", "500"))
    VI_EPSILON: float = float(os.getenv("VI_EPSILON", "1e-6"))
    VI_TIME_BUDGET: Optional[float] = _optional_float("VI_TIME_BUDGET")  # seconds
    VI_MAX_WORKERS: int = int(os.getenv("VI_MAX_WORKERS", "1"))

    # Numeric tolerances
    BELIEF_TOLERANCE: float = 1e-9
    STOCHASTIC_TOLERANCE: float = 1e-6

    @classmethod
    def ensure_directories(cls) -> None:
        """Ensure all required directories exist."""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
