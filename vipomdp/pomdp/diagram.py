"""
Compressed probability distributions used by symbolic belief states.
"""

from abc import ABC, abstractmethod
from functools import reduce
from typing import List, Sequence
import numpy as np

from vipomdp.exceptions import StructuralError
from vipomdp.utils.data_validation import validate_distribution


def _entropy(p: np.ndarray) -> float:
    nz = p[p > 0]
    return float(-np.sum(nz * np.log(nz)))


class CompressedDistribution(ABC):
    """
    A distribution over states that is not stored as a flat vector.

    This is the contract a decision-diagram backend has to satisfy to be
    wrapped by a SymbolicBelief.
    """

    @property
    @abstractmethod
    def nr_states(self) -> int:
        """Size of the flat state space."""

    @abstractmethod
    def to_array(self) -> np.ndarray:
        """Expand to a flat probability vector of length nr_states."""

    def entropy(self) -> float:
        return _entropy(self.to_array())

    @abstractmethod
    def __eq__(self, other) -> bool:
        """Structural equality."""


class FactoredDistribution(CompressedDistribution):
    """
    Product of independent per-variable marginals.

    State variables are ordered; the flat state index is row-major over the
    variables, the first variable being the most significant digit.
    """

    def __init__(self, marginals: Sequence[Sequence[float]], atol: float = 1e-9):
        if len(marginals) == 0:
            raise StructuralError("A factored distribution needs at least one variable")
        self.marginals: List[np.ndarray] = []
        for i, marginal in enumerate(marginals):
            vec = np.array(marginal, dtype=np.float64)
            if not validate_distribution(vec, atol=atol):
                raise StructuralError(f"Marginal {i} is not a probability distribution")
            vec.setflags(write=False)
            self.marginals.append(vec)

    @property
    def arities(self) -> List[int]:
        return [m.shape[0] for m in self.marginals]

    @property
    def nr_states(self) -> int:
        return int(np.prod(self.arities))

    def to_array(self) -> np.ndarray:
        return reduce(np.kron, self.marginals).astype(np.float64)

    def entropy(self) -> float:
        # entropy of independent variables is additive
        return float(sum(_entropy(m) for m in self.marginals))

    def __eq__(self, other) -> bool:
        if not isinstance(other, FactoredDistribution):
            return NotImplemented
        if self.arities != other.arities:
            return False
        return all(np.array_equal(a, b) for a, b in zip(self.marginals, other.marginals))

    __hash__ = None

    def __repr__(self) -> str:
        return f"FactoredDistribution(arities={self.arities})"
