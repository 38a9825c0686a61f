"""
Utility modules for the POMDP solver.
"""

from .logging_utils import setup_logger, get_logger, set_log_level
from .data_validation import validate_shape, validate_stochastic, validate_distribution

__all__ = [
    "setup_logger",
    "get_logger",
    "set_log_level",
    "validate_shape",
    "validate_stochastic",
    "validate_distribution",
]
