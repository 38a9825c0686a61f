"""
POMDP model definition.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
import numpy as np
from scipy import sparse as sp

from vipomdp.exceptions import StructuralError
from vipomdp.pomdp import linalg
from vipomdp.utils.data_validation import (
    validate_distribution,
    validate_shape,
    validate_stochastic,
)

ActionId = Union[int, str]


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class POMDP:
    """
    Partially Observable Markov Decision Process.

    The model is immutable once constructed; the solver holds a reference to
    it for the whole run without copying or locking.

    Attributes:
        S: List of state labels
        A: List of action labels
        O: List of observation labels
        T: Transition probabilities T[a][s, s'] = P(s' | s, a)
        Z: Observation probabilities Z[a][s', o] = P(o | s', a)
        R: Rewards per action, either a vector R[a][s] = R(s, a) or a
            matrix R[a][s, s'] = reward for transition s -> s' under a
        gamma: Discount factor in [0, 1)
        start: Optional initial belief over S
        sparse: Store transition operators in CSR format
    """
    S: List[str]
    A: List[str]
    O: List[str]
    T: Dict[str, np.ndarray]
    Z: Dict[str, np.ndarray]
    R: Dict[str, np.ndarray]
    gamma: float = 0.95
    start: Optional[np.ndarray] = None
    sparse: bool = False
    _transitions: List = field(default_factory=list, init=False, repr=False)
    _observations: List[np.ndarray] = field(default_factory=list, init=False, repr=False)
    _rewards: List[np.ndarray] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        """Validate POMDP structure and precompute per-action operators."""
        n_states = len(self.S)
        n_obs = len(self.O)

        if n_states == 0 or len(self.A) == 0:
            raise StructuralError("A POMDP needs at least one state and one action")
        if not 0.0 <= self.gamma < 1.0:
            raise ValueError(f"Discount factor must be in [0, 1), got {self.gamma}")

        transitions = []
        observations = []
        rewards = []

        for a in self.A:
            if a not in self.T:
                raise StructuralError(f"Missing transition matrix for action {a}")
            T_a = linalg.as_operator(self.T[a], n_states, use_sparse=self.sparse)
            validate_stochastic(T_a, f"T[{a}]")
            if sp.issparse(T_a):
                T_a.data.setflags(write=False)
            else:
                _read_only(T_a)
            transitions.append(T_a)

            if a not in self.Z:
                raise StructuralError(f"Missing emission matrix for action {a}")
            Z_a = np.array(self.Z[a], dtype=np.float64)
            validate_shape(Z_a, (n_states, n_obs), f"Z[{a}]")
            validate_stochastic(Z_a, f"Z[{a}]")
            observations.append(_read_only(Z_a))

            if a not in self.R:
                raise StructuralError(f"Missing reward for action {a}")
            R_a = np.array(self.R[a], dtype=np.float64)
            if R_a.shape == (n_states, n_states):
                # Expected immediate reward R(s, a) = sum_s' T[a][s, s'] R(s, a, s')
                dense_T = T_a.toarray() if sp.issparse(T_a) else T_a
                R_a = (dense_T * R_a).sum(axis=1)
            elif R_a.shape != (n_states,):
                raise StructuralError(
                    f"R[{a}] has shape {R_a.shape}, expected ({n_states},) or ({n_states}, {n_states})"
                )
            rewards.append(_read_only(R_a))

        object.__setattr__(self, "_transitions", transitions)
        object.__setattr__(self, "_observations", observations)
        object.__setattr__(self, "_rewards", rewards)

        if self.start is not None:
            start = linalg.as_vector(self.start, n_states)
            if not validate_distribution(start):
                raise StructuralError("start is not a probability distribution over S")
            object.__setattr__(self, "start", _read_only(start))

    @property
    def nr_states(self) -> int:
        return len(self.S)

    @property
    def nr_actions(self) -> int:
        return len(self.A)

    @property
    def nr_observations(self) -> int:
        return len(self.O)

    def action_index(self, action: ActionId) -> int:
        """Resolve an action label or index to its integer id."""
        if isinstance(action, str):
            if action not in self.A:
                raise ValueError(f"Action {action} not in POMDP actions")
            return self.A.index(action)
        index = int(action)
        if not 0 <= index < len(self.A):
            raise ValueError(f"Action index {index} out of range [0, {len(self.A)})")
        return index

    def observation_index(self, observation: Union[int, str]) -> int:
        if isinstance(observation, str):
            if observation not in self.O:
                raise ValueError(f"Observation {observation} not in POMDP observations")
            return self.O.index(observation)
        index = int(observation)
        if not 0 <= index < len(self.O):
            raise ValueError(f"Observation index {index} out of range [0, {len(self.O)})")
        return index

    def reward_values(self, action: ActionId) -> np.ndarray:
        """Expected immediate reward vector R(., a) (read-only)."""
        return self._rewards[self.action_index(action)]

    def transition(self, action: ActionId):
        """Transition operator T(a), dense or CSR (read-only)."""
        return self._transitions[self.action_index(action)]

    def observation(self, action: ActionId) -> np.ndarray:
        """Observation matrix Z(a) of shape |S| x |O| (read-only)."""
        return self._observations[self.action_index(action)]

    def reward_matrix(self) -> np.ndarray:
        """Rewards as an |S| x |A| array."""
        return np.column_stack(self._rewards)

    def reward_bounds(self) -> Tuple[float, float]:
        """(min, max) of R(s, a) over all states and actions."""
        rewards = self.reward_matrix()
        return float(rewards.min()), float(rewards.max())
