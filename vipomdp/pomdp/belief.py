"""
Belief states and the belief update for POMDP.
"""

from abc import ABC, abstractmethod
import threading
from typing import Optional, Union
import numpy as np

from vipomdp.config import Config
from vipomdp.exceptions import PreconditionViolation, StructuralError
from vipomdp.pomdp import linalg
from vipomdp.pomdp.diagram import CompressedDistribution
from vipomdp.pomdp.schema import POMDP, ActionId
from vipomdp.utils.data_validation import validate_distribution
from vipomdp.utils.logging_utils import get_logger

logger = get_logger(__name__)


class BeliefState(ABC):
    """
    A probability distribution over states plus two cached annotations.

    Attributes:
        poba: Probability Pr(o | b, a) of reaching this belief from its
            predecessor; 1.0 for a belief with no predecessor
        alpha: Index of the alpha vector supporting this belief in the value
            function it was last scored against, -1 if never scored
    """

    def __init__(self, poba: float = 1.0, alpha: int = -1):
        self.poba = poba
        self.alpha = alpha

    @property
    def poba(self) -> float:
        return self._poba

    @poba.setter
    def poba(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise PreconditionViolation(f"poba must be a probability, got {value}")
        self._poba = float(value)

    @property
    def alpha(self) -> int:
        return self._alpha

    @alpha.setter
    def alpha(self, value: int) -> None:
        if value < -1:
            raise PreconditionViolation(f"alpha must be -1 or a vector index, got {value}")
        self._alpha = int(value)

    @abstractmethod
    def get_point(self) -> np.ndarray:
        """The belief as a flat probability vector."""

    @abstractmethod
    def copy(self) -> "BeliefState":
        """Independent belief with its own poba and alpha."""

    @property
    def nr_states(self) -> int:
        return self.get_point().shape[0]

    def compare(self, other: "BeliefState", atol: float = 1e-12) -> bool:
        """Value equality of the underlying distributions."""
        a = self.get_point()
        b = other.get_point()
        return a.shape == b.shape and bool(np.allclose(a, b, rtol=0.0, atol=atol))

    def entropy(self) -> float:
        p = self.get_point()
        nz = p[p > 0]
        return float(-np.sum(nz * np.log(nz)))


class ExplicitBelief(BeliefState):
    """Belief stored directly as a probability vector."""

    def __init__(self, point, poba: float = 1.0, alpha: int = -1):
        super().__init__(poba, alpha)
        vec = linalg.as_vector(point)
        if not validate_distribution(vec, atol=Config.BELIEF_TOLERANCE):
            raise PreconditionViolation("Belief point must be non-negative and sum to 1")
        vec.setflags(write=False)
        self._point = vec

    @classmethod
    def uniform(cls, n_states: int) -> "ExplicitBelief":
        return cls(np.full(n_states, 1.0 / n_states))

    @classmethod
    def from_weights(cls, weights, poba: float = 1.0) -> "ExplicitBelief":
        """Normalize non-negative weights into a belief."""
        vec = linalg.as_vector(weights)
        if np.any(vec < 0) or vec.sum() <= 0:
            raise PreconditionViolation("Belief weights must be non-negative with a positive sum")
        return cls(vec / vec.sum(), poba=poba)

    def get_point(self) -> np.ndarray:
        return self._point

    def copy(self) -> "ExplicitBelief":
        # the point is read-only, so sharing it is safe
        clone = type(self).__new__(type(self))
        BeliefState.__init__(clone, self.poba, self.alpha)
        clone._point = self._point
        return clone

    def __repr__(self) -> str:
        return f"ExplicitBelief(point={self._point!r}, poba={self.poba}, alpha={self.alpha})"


class SymbolicBelief(BeliefState):
    """
    Belief stored as a compressed distribution.

    The flat point is computed on the first get_point() call and kept in
    ``_point_cache`` until invalidate() is called. A lock guards the
    conversion so shared instances compute it at most once.
    """

    def __init__(self, diagram: CompressedDistribution, poba: float = 1.0, alpha: int = -1):
        super().__init__(poba, alpha)
        self.diagram = diagram
        self._point_cache: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def nr_states(self) -> int:
        return self.diagram.nr_states

    @property
    def is_materialized(self) -> bool:
        return self._point_cache is not None

    def get_point(self) -> np.ndarray:
        if self._point_cache is None:
            with self._lock:
                if self._point_cache is None:
                    point = np.asarray(self.diagram.to_array(), dtype=np.float64)
                    if point.shape != (self.diagram.nr_states,):
                        raise StructuralError(
                            f"Diagram expanded to shape {point.shape}, expected ({self.diagram.nr_states},)"
                        )
                    point.setflags(write=False)
                    self._point_cache = point
                    logger.debug(f"Materialized symbolic belief over {point.shape[0]} states")
        return self._point_cache

    def invalidate(self) -> None:
        """Drop the materialized point; the next get_point() recomputes it."""
        with self._lock:
            self._point_cache = None

    def compare(self, other: BeliefState, atol: float = 1e-12) -> bool:
        if isinstance(other, SymbolicBelief) and self.diagram == other.diagram:
            return True
        return super().compare(other, atol)

    def entropy(self) -> float:
        return self.diagram.entropy()

    def copy(self) -> "SymbolicBelief":
        clone = SymbolicBelief(self.diagram, self.poba, self.alpha)
        clone._point_cache = self._point_cache
        return clone

    def __repr__(self) -> str:
        return f"SymbolicBelief(diagram={self.diagram!r}, poba={self.poba}, alpha={self.alpha})"


def belief_update(
    pomdp: POMDP,
    belief: BeliefState,
    action: ActionId,
    observation: Union[int, str],
) -> ExplicitBelief:
    """
    Update belief state: b' ∝ Z[a][:,o] * (T[a].T @ b)

    Args:
        pomdp: POMDP model
        belief: Current belief
        action: Action taken (label or index)
        observation: Observation received (label or index)

    Returns:
        Updated belief with poba = Pr(o | b, a)
    """
    a_idx = pomdp.action_index(action)
    o_idx = pomdp.observation_index(observation)

    point = belief.get_point()
    if point.shape != (pomdp.nr_states,):
        raise StructuralError(
            f"Belief has shape {point.shape}, expected ({pomdp.nr_states},)"
        )

    # Predict next belief: T[a].T @ b
    predicted = np.asarray(pomdp.transition(a_idx).T @ point, dtype=np.float64).ravel()

    # Weight with the observation likelihood
    new_belief = pomdp.observation(a_idx)[:, o_idx] * predicted

    norm = new_belief.sum()
    if norm < 1e-10:
        # Unreachable observation: zero reachability, uniform point
        logger.warning(
            f"Observation {pomdp.O[o_idx]} has zero probability after action {pomdp.A[a_idx]}, using uniform"
        )
        return ExplicitBelief(np.ones(pomdp.nr_states) / pomdp.nr_states, poba=0.0)

    new_belief = np.maximum(new_belief / norm, 0.0)
    new_belief = new_belief / new_belief.sum()

    return ExplicitBelief(new_belief, poba=min(float(norm), 1.0))
