"""
Data validation utilities for model matrices and probability vectors.
"""

from typing import Tuple
import numpy as np
from scipy import sparse

from vipomdp.config import Config
from vipomdp.exceptions import StructuralError
from vipomdp.utils.logging_utils import get_logger

logger = get_logger(__name__)


def validate_shape(
    matrix,
    expected: Tuple[int, ...],
    name: str,
) -> bool:
    """
    Validate that an array (dense or sparse) has the expected shape.

    Args:
        matrix: numpy array or scipy.sparse matrix
        expected: Expected shape
        name: Name used in the error message

    Returns:
        True if validation passes

    Raises:
        StructuralError: If the shape differs
    """
    if tuple(matrix.shape) != tuple(expected):
        raise StructuralError(f"{name} has shape {matrix.shape}, expected {expected}")
    return True


def validate_stochastic(
    matrix,
    name: str,
    atol: float = Config.STOCHASTIC_TOLERANCE,
) -> bool:
    """
    Validate that every row of a matrix is a probability distribution.

    Args:
        matrix: numpy array or scipy.sparse matrix
        name: Name used in the error message
        atol: Tolerance on the row sums

    Returns:
        True if validation passes

    Raises:
        StructuralError: If a row has negative entries or does not sum to 1
    """
    if sparse.issparse(matrix):
        row_sums = np.asarray(matrix.sum(axis=1)).ravel()
        has_negative = matrix.nnz > 0 and matrix.data.min() < 0
    else:
        row_sums = matrix.sum(axis=1)
        has_negative = bool(np.any(matrix < 0))

    if has_negative:
        raise StructuralError(f"{name} contains negative probabilities")
    if not np.allclose(row_sums, 1.0, atol=atol):
        raise StructuralError(f"{name} rows do not sum to 1")

    logger.debug(f"{name} validation passed: shape {matrix.shape}")
    return True


def validate_distribution(
    vector: np.ndarray,
    name: str = "belief",
    atol: float = Config.BELIEF_TOLERANCE,
) -> bool:
    """
    Validate that a vector is non-negative and sums to one.

    Returns:
        True if validation passes, False otherwise
    """
    if vector.ndim != 1 or vector.size == 0:
        return False
    if np.any(vector < 0):
        return False
    return bool(abs(vector.sum() - 1.0) <= atol)
