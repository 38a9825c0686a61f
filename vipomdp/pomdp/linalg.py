"""
Vector and linear-operator helpers.

Vectors are plain 1-D float64 numpy arrays. Operators are dense numpy
matrices or scipy.sparse matrices; every helper gives the same numbers for
both storage kinds. None of the helpers mutate their operands.
"""

from typing import Optional, Sequence, Union
import numpy as np
from scipy import sparse

from vipomdp.exceptions import StructuralError

Operator = Union[np.ndarray, sparse.spmatrix]


def as_vector(values: Union[Sequence[float], np.ndarray], n: Optional[int] = None) -> np.ndarray:
    """
    Coerce values to a 1-D float64 array.

    Args:
        values: Sequence or array of numbers
        n: Expected length (checked when given)

    Returns:
        New float64 array
    """
    vec = np.array(values, dtype=np.float64)
    if vec.ndim != 1:
        raise StructuralError(f"Expected a 1-D vector, got shape {vec.shape}")
    if n is not None and vec.shape[0] != n:
        raise StructuralError(f"Vector has length {vec.shape[0]}, expected {n}")
    return vec


def as_operator(matrix, n: int, use_sparse: bool = False) -> Operator:
    """
    Coerce a matrix to an n x n transition operator.

    Args:
        matrix: Nested sequence, numpy array or scipy.sparse matrix
        n: Number of states
        use_sparse: Store the operator in CSR format

    Returns:
        Dense float64 array or CSR matrix
    """
    if sparse.issparse(matrix):
        op = sparse.csr_matrix(matrix, dtype=np.float64, copy=True)
    else:
        op = np.array(matrix, dtype=np.float64)
    if op.shape != (n, n):
        raise StructuralError(f"Operator has shape {op.shape}, expected ({n}, {n})")
    if use_sparse and not sparse.issparse(op):
        op = sparse.csr_matrix(op)
    elif not use_sparse and sparse.issparse(op):
        op = op.toarray()
    return op


def _check_same_length(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape != b.shape:
        raise StructuralError(f"Dimension mismatch: {a.shape} vs {b.shape}")


def homogeneous(n: int, value: float) -> np.ndarray:
    """Vector of length n with every entry equal to value."""
    return np.full(n, float(value), dtype=np.float64)


def dot(a: np.ndarray, b: np.ndarray) -> float:
    _check_same_length(a, b)
    return float(np.dot(a, b))


def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _check_same_length(a, b)
    return a + b


def scale(v: np.ndarray, factor: float) -> np.ndarray:
    return v * factor


def get(v: np.ndarray, i: int) -> float:
    if not 0 <= i < v.shape[0]:
        raise StructuralError(f"Index {i} out of range for vector of length {v.shape[0]}")
    return float(v[i])


def argmin(v: np.ndarray) -> int:
    # numpy returns the first occurrence, i.e. the lowest index on ties
    return int(np.argmin(v))


def argmax(v: np.ndarray) -> int:
    return int(np.argmax(v))


def apply_operator(operator: Operator, v: np.ndarray, gamma: float = 1.0) -> np.ndarray:
    """
    Compute gamma * (T @ v).

    Args:
        operator: Dense or sparse |S| x |S| matrix
        v: State-value vector of length |S|
        gamma: Scalar factor (usually the discount)

    Returns:
        Dense vector of length |S|
    """
    if operator.shape[1] != v.shape[0]:
        raise StructuralError(
            f"Operator with shape {operator.shape} cannot be applied to vector of length {v.shape[0]}"
        )
    result = operator @ v
    return gamma * np.asarray(result, dtype=np.float64).ravel()


def max_abs_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Infinity norm of a - b."""
    _check_same_length(a, b)
    if a.size == 0:
        return 0.0
    return float(np.max(np.abs(a - b)))
