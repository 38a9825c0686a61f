"""
Stopping criteria for value iteration.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Optional

from vipomdp.pomdp.value_function import ValueFunction


class Criteria(ABC):
    """A stopping condition consulted by the solver after every backup."""

    name: str = "criteria"

    @abstractmethod
    def check(
        self,
        iteration: int,
        elapsed: float,
        old: Optional[ValueFunction],
        current: ValueFunction,
    ) -> bool:
        """
        Decide whether to stop.

        Args:
            iteration: Number of completed backups
            elapsed: Cumulative solve time in seconds
            old: Value function before the last backup
            current: Value function after the last backup

        Returns:
            True to stop iterating
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MaxIterations(Criteria):
    """Stop after a fixed number of backups."""

    name: str = "max_iterations"

    def __init__(self, n: int):
        if n < 1:
            raise ValueError(f"MaxIterations needs n >= 1, got {n}")
        self.n = n

    def check(self, iteration, elapsed, old, current) -> bool:
        return iteration >= self.n

    def __repr__(self) -> str:
        return f"MaxIterations({self.n})"


class ResidualTolerance(Criteria):
    """Stop when no coefficient moved by epsilon or more in the last backup."""

    name: str = "residual_tolerance"

    def __init__(self, epsilon: float):
        if epsilon <= 0:
            raise ValueError(f"ResidualTolerance needs epsilon > 0, got {epsilon}")
        self.epsilon = epsilon

    def check(self, iteration, elapsed, old, current) -> bool:
        if old is None:
            return False
        return current.max_difference(old) < self.epsilon

    def __repr__(self) -> str:
        return f"ResidualTolerance({self.epsilon})"


class TimeBudget(Criteria):
    """Stop once the cumulative solve time exceeds a budget in seconds."""

    name: str = "time_budget"

    def __init__(self, budget: float):
        if budget <= 0:
            raise ValueError(f"TimeBudget needs a positive budget, got {budget}")
        self.budget = budget

    def check(self, iteration, elapsed, old, current) -> bool:
        return elapsed > self.budget

    def __repr__(self) -> str:
        return f"TimeBudget({self.budget})"


class CriteriaSet:
    """Ordered criteria combined by short-circuit OR."""

    def __init__(self, criteria: Optional[Iterable[Criteria]] = None):
        self._criteria: List[Criteria] = []
        for c in criteria or []:
            self.add(c)

    def add(self, criteria: Criteria) -> None:
        if not isinstance(criteria, Criteria):
            raise TypeError(f"Expected a Criteria, got {type(criteria).__name__}")
        self._criteria.append(criteria)

    def __len__(self) -> int:
        return len(self._criteria)

    def __iter__(self) -> Iterator[Criteria]:
        return iter(self._criteria)

    def first_satisfied(
        self,
        iteration: int,
        elapsed: float,
        old: Optional[ValueFunction],
        current: ValueFunction,
    ) -> Optional[Criteria]:
        """The first criterion that fires, in insertion order, or None."""
        for c in self._criteria:
            if c.check(iteration, elapsed, old, current):
                return c
        return None

    def __repr__(self) -> str:
        return f"CriteriaSet({self._criteria!r})"
