"""
Alpha vectors and value functions.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple
import numpy as np

from vipomdp.exceptions import PreconditionViolation, StructuralError
from vipomdp.pomdp import linalg

if TYPE_CHECKING:
    from vipomdp.pomdp.belief import BeliefState


@dataclass
class AlphaVector:
    """
    A hyperplane over the belief simplex.

    Attributes:
        action: Action committed to at the root of the associated plan
        values: One coefficient per state
    """
    action: int
    values: np.ndarray

    def __eq__(self, other) -> bool:
        if not isinstance(other, AlphaVector):
            return NotImplemented
        return self.action == other.action and bool(np.array_equal(self.values, other.values))

    def copy(self) -> "AlphaVector":
        return AlphaVector(self.action, self.values.copy())

    def value(self, point: np.ndarray) -> float:
        return linalg.dot(self.values, point)


class ValueFunction:
    """
    Ordered set of alpha vectors over a fixed number of states.

    Insertion order defines the index of each vector. The value at a belief
    is the upper envelope of the vectors, max_i alpha_i . b.
    """

    def __init__(self, n_states: int, vectors: Optional[Sequence[AlphaVector]] = None):
        if n_states <= 0:
            raise StructuralError(f"n_states must be positive, got {n_states}")
        self.n_states = n_states
        self._vectors: List[AlphaVector] = []
        for vec in vectors or []:
            self.push(vec.values, vec.action)

    def push(self, values, action: int) -> int:
        """
        Append a copy of the coefficients with their action.

        Returns:
            Index of the new entry
        """
        coefficients = linalg.as_vector(values)
        if coefficients.shape[0] != self.n_states:
            raise StructuralError(
                f"Alpha vector has length {coefficients.shape[0]}, expected {self.n_states}"
            )
        self._vectors.append(AlphaVector(int(action), coefficients))
        return len(self._vectors) - 1

    def size(self) -> int:
        return len(self._vectors)

    def __len__(self) -> int:
        return len(self._vectors)

    def __iter__(self) -> Iterator[AlphaVector]:
        return iter(self._vectors)

    def __repr__(self) -> str:
        return f"ValueFunction(n_states={self.n_states}, size={self.size()})"

    def _check_index(self, idx: int) -> None:
        if not 0 <= idx < len(self._vectors):
            raise PreconditionViolation(
                f"Alpha vector index {idx} out of range [0, {len(self._vectors)})"
            )

    def get_actions(self) -> np.ndarray:
        """Action of every entry, in index order."""
        return np.array([vec.action for vec in self._vectors], dtype=int)

    def get_alpha_vector(self, idx: int) -> AlphaVector:
        """Copy of the entry at idx."""
        self._check_index(idx)
        return self._vectors[idx].copy()

    def get_alpha_values(self, idx: int) -> np.ndarray:
        """Copy of the coefficients at idx."""
        self._check_index(idx)
        return self._vectors[idx].values.copy()

    def get_vector_ref(self, idx: int) -> np.ndarray:
        """The coefficients at idx, by reference. Writes go straight into this value function."""
        self._check_index(idx)
        return self._vectors[idx].values

    def as_matrix(self) -> np.ndarray:
        """Coefficients as a size x n_states array."""
        if not self._vectors:
            return np.zeros((0, self.n_states))
        return np.vstack([vec.values for vec in self._vectors])

    def evaluate(self, point: np.ndarray) -> Tuple[float, int]:
        """
        Value at a belief point and the index of the supporting vector.

        Ties go to the lowest index. Does not touch any belief object.

        Args:
            point: Probability vector over states

        Returns:
            Tuple of (value, index)
        """
        if not self._vectors:
            raise PreconditionViolation("Cannot evaluate an empty value function")
        point = np.asarray(point, dtype=np.float64)
        if point.shape != (self.n_states,):
            raise StructuralError(
                f"Belief has shape {point.shape}, expected ({self.n_states},)"
            )
        values = self.as_matrix() @ point
        idx = linalg.argmax(values)
        return float(values[idx]), idx

    def value(self, belief: "BeliefState") -> float:
        """
        V(b): value of the value function at a belief.

        Cache write: the index of the supporting vector is stored in
        ``belief.alpha``. That index is only meaningful for this value
        function; re-score the belief after the value function is replaced.
        Use ``evaluate`` where the belief must not be mutated.
        """
        result, idx = self.evaluate(belief.get_point())
        belief.alpha = idx
        return result

    def copy(self) -> "ValueFunction":
        """Deep copy; coefficient arrays are not shared."""
        return ValueFunction(self.n_states, self._vectors)

    def max_difference(self, other: "ValueFunction") -> float:
        """
        Largest absolute coefficient difference between matching entries.

        Returns infinity when the two value functions do not have the same
        action sequence, since entries cannot be paired.
        """
        if self.n_states != other.n_states or self.size() != other.size():
            return float("inf")
        if not np.array_equal(self.get_actions(), other.get_actions()):
            return float("inf")
        if self.size() == 0:
            return 0.0
        return float(np.max(np.abs(self.as_matrix() - other.as_matrix())))

    def allclose(self, other: "ValueFunction", atol: float = 1e-9) -> bool:
        """Same actions in the same order and coefficients equal within atol."""
        return self.max_difference(other) <= atol
