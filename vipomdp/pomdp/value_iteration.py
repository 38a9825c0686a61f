"""
Value iteration over alpha vectors.

One driver, ``ValueIteration``, runs every variant. A variant is an
initializer that builds the seed value function and a per-action backup
operator; the driver owns the double-buffered loop, the statistics and the
stopping criteria.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import numpy as np
import pandas as pd

from vipomdp.config import Config
from vipomdp.exceptions import PreconditionViolation, StructuralError
from vipomdp.pomdp import linalg
from vipomdp.pomdp.criteria import Criteria, CriteriaSet, MaxIterations, ResidualTolerance, TimeBudget
from vipomdp.pomdp.schema import POMDP
from vipomdp.pomdp.value_function import ValueFunction
from vipomdp.utils.logging_utils import get_logger

logger = get_logger(__name__)

Initializer = Callable[[POMDP], ValueFunction]
BackupOperator = Callable[[POMDP, ValueFunction, int], np.ndarray]


class SolverState(Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    TERMINATED = "terminated"


@dataclass
class ValueIterationStats:
    """
    Run statistics, written by the solver only.

    Times are in seconds. ``total_time`` is the cumulative backup time and
    excludes ``init_time``.
    """
    iterations: int = 0
    init_time: float = 0.0
    total_time: float = 0.0
    iteration_times: List[float] = field(default_factory=list)
    vector_counts: List[int] = field(default_factory=list)
    residuals: List[float] = field(default_factory=list)
    stop_reason: Optional[str] = None

    def register(self, elapsed: float, n_vectors: int, residual: float) -> None:
        self.iterations += 1
        self.total_time += elapsed
        self.iteration_times.append(elapsed)
        self.vector_counts.append(n_vectors)
        self.residuals.append(residual)

    @property
    def final_residual(self) -> Optional[float]:
        return self.residuals[-1] if self.residuals else None

    @property
    def converged(self) -> bool:
        return self.stop_reason == ResidualTolerance.name

    def to_frame(self) -> pd.DataFrame:
        """One row per iteration."""
        return pd.DataFrame({
            "iteration": np.arange(1, self.iterations + 1),
            "time": self.iteration_times,
            "vectors": self.vector_counts,
            "residual": self.residuals,
        })

    def summary(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "init_time": self.init_time,
            "total_time": self.total_time,
            "final_residual": self.final_residual,
            "stop_reason": self.stop_reason,
            "converged": self.converged,
        }


# Initializers

def zero_initializer(pomdp: POMDP) -> ValueFunction:
    """One zero vector per action."""
    vf = ValueFunction(pomdp.nr_states)
    for a in range(pomdp.nr_actions):
        vf.push(np.zeros(pomdp.nr_states), a)
    return vf


def blind_initializer(pomdp: POMDP) -> ValueFunction:
    """
    One homogeneous vector per action at min_s R(s, a) / (1 - gamma).

    This is the value of repeating the action forever in its worst state, a
    lower bound on the value of the blind policy for that action.
    """
    vf = ValueFunction(pomdp.nr_states)
    factor = 1.0 / (1.0 - pomdp.gamma)
    for a in range(pomdp.nr_actions):
        scaled = linalg.scale(pomdp.reward_values(a), factor)
        lowest = linalg.get(scaled, linalg.argmin(scaled))
        vf.push(linalg.homogeneous(pomdp.nr_states, lowest), a)
    return vf


# Backup operators

def best_response_backup(pomdp: POMDP, previous: ValueFunction, action: int) -> np.ndarray:
    """
    R(., a) + gamma T(a) V, where V(s) is the best previous vector at s.
    """
    reference = previous.as_matrix().max(axis=0)
    future = linalg.apply_operator(pomdp.transition(action), reference, pomdp.gamma)
    return linalg.add(pomdp.reward_values(action), future)


def fixed_policy_backup(pomdp: POMDP, previous: ValueFunction, action: int) -> np.ndarray:
    """
    R(., a) + gamma T(a) alpha_a, following the action's own previous vector.
    """
    matches = np.flatnonzero(previous.get_actions() == action)
    if matches.size == 0:
        raise PreconditionViolation(f"No previous alpha vector for action {action}")
    reference = previous.get_vector_ref(int(matches[0]))
    future = linalg.apply_operator(pomdp.transition(action), reference, pomdp.gamma)
    return linalg.add(pomdp.reward_values(action), future)


class ValueIteration:
    """
    Generic value iteration driver.

    Lifecycle: INITIALIZING while the seed is built, ITERATING until a
    criterion fires, then TERMINATED for good.
    """

    def __init__(
        self,
        pomdp: POMDP,
        initializer: Initializer,
        backup: BackupOperator,
        criteria: Optional[Iterable[Criteria]] = None,
        max_workers: Optional[int] = None,
        name: str = "value_iteration",
    ):
        self.state = SolverState.INITIALIZING
        start = time.perf_counter()

        self.pomdp = pomdp
        self.name = name
        self.backup = backup
        self.criteria = CriteriaSet(criteria)
        self.max_workers = max_workers if max_workers is not None else Config.VI_MAX_WORKERS
        self.stats = ValueIterationStats()
        self.old: Optional[ValueFunction] = None
        self.current = initializer(pomdp)
        if self.current.n_states != pomdp.nr_states:
            raise StructuralError(
                f"Initial value function has {self.current.n_states} states, model has {pomdp.nr_states}"
            )

        self.stats.init_time = time.perf_counter() - start
        self.state = SolverState.ITERATING
        logger.info(
            f"{self.name}: initialized {self.current.size()} vectors over "
            f"{pomdp.nr_states} states in {self.stats.init_time:.4f}s"
        )

    def add_criteria(self, criteria: Criteria) -> None:
        self.criteria.add(criteria)

    def _backup_all(self, previous: ValueFunction) -> List[np.ndarray]:
        actions = range(self.pomdp.nr_actions)
        if self.max_workers > 1 and self.pomdp.nr_actions > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                # map keeps action order, one slot per action
                return list(executor.map(lambda a: self.backup(self.pomdp, previous, a), actions))
        return [self.backup(self.pomdp, previous, a) for a in actions]

    def iterate(self) -> ValueIterationStats:
        """
        Perform one backup round.

        Every action reads the same untouched previous value function; the
        new one replaces ``current`` only after all actions are done.
        """
        if self.state is SolverState.TERMINATED:
            raise PreconditionViolation(f"{self.name} has terminated; no further backups")

        start = time.perf_counter()
        previous = self.current
        results = self._backup_all(previous)

        new_vf = ValueFunction(self.pomdp.nr_states)
        for a, values in enumerate(results):
            new_vf.push(values, a)

        self.old = previous
        self.current = new_vf

        residual = new_vf.max_difference(previous)
        self.stats.register(time.perf_counter() - start, new_vf.size(), residual)
        logger.debug(
            f"{self.name}: iteration {self.stats.iterations} "
            f"time={self.stats.iteration_times[-1]:.4f}s residual={residual:.3e}"
        )
        return self.stats

    def run(self, criteria: Optional[Iterable[Criteria]] = None) -> Tuple[ValueFunction, ValueIterationStats]:
        """
        Iterate until a stopping criterion fires.

        Args:
            criteria: Extra criteria appended to those given at construction

        Returns:
            Tuple of (final value function, statistics)
        """
        if self.state is SolverState.TERMINATED:
            return self.current, self.stats

        for c in criteria or []:
            self.criteria.add(c)
        if len(self.criteria) == 0:
            raise PreconditionViolation(f"{self.name} needs at least one stopping criterion")

        while True:
            self.iterate()
            fired = self.criteria.first_satisfied(
                self.stats.iterations, self.stats.total_time, self.old, self.current
            )
            if fired is not None:
                break

        self.stats.stop_reason = fired.name
        self.state = SolverState.TERMINATED
        logger.info(
            f"{self.name}: stopped by {fired!r} after {self.stats.iterations} iterations, "
            f"residual={self.stats.final_residual:.3e}, time={self.stats.total_time:.4f}s"
        )
        return self.current, self.stats


def exact_value_iteration(
    pomdp: POMDP,
    criteria: Optional[Iterable[Criteria]] = None,
    max_workers: Optional[int] = None,
) -> ValueIteration:
    """Zero-initialized value iteration with best-response backups."""
    return ValueIteration(
        pomdp, zero_initializer, best_response_backup,
        criteria=criteria, max_workers=max_workers, name="exact_vi",
    )


def blind_policy_iteration(
    pomdp: POMDP,
    criteria: Optional[Iterable[Criteria]] = None,
    max_workers: Optional[int] = None,
) -> ValueIteration:
    """Blind policy approximation: each action backs up its own vector."""
    return ValueIteration(
        pomdp, blind_initializer, fixed_policy_backup,
        criteria=criteria, max_workers=max_workers, name="blind_vi",
    )


ALGORITHMS = {
    "exact": exact_value_iteration,
    "blind": blind_policy_iteration,
}


def build_criteria(
    max_iterations: Optional[int] = None,
    epsilon: Optional[float] = None,
    time_budget: Optional[float] = None,
) -> List[Criteria]:
    """Criteria list in evaluation order: iterations, residual, time."""
    criteria: List[Criteria] = []
    if max_iterations is not None:
        criteria.append(MaxIterations(max_iterations))
    if epsilon is not None:
        criteria.append(ResidualTolerance(epsilon))
    if time_budget is not None:
        criteria.append(TimeBudget(time_budget))
    return criteria


def solve(
    pomdp: POMDP,
    algorithm: str = "exact",
    max_iterations: Optional[int] = Config.VI_MAX_ITERATIONS,
    epsilon: Optional[float] = Config.VI_EPSILON,
    time_budget: Optional[float] = Config.VI_TIME_BUDGET,
    max_workers: Optional[int] = None,
) -> Tuple[ValueFunction, ValueIterationStats]:
    """
    Build a solver for the named algorithm and run it to termination.

    Returns:
        Tuple of (final value function, statistics)
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm {algorithm}, expected one of {sorted(ALGORITHMS)}")
    solver = ALGORITHMS[algorithm](
        pomdp,
        criteria=build_criteria(max_iterations, epsilon, time_budget),
        max_workers=max_workers,
    )
    return solver.run()
