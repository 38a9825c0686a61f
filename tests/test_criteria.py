"""
Tests for stopping criteria.
"""

import pytest

from vipomdp.pomdp import (
    CriteriaSet,
    MaxIterations,
    ResidualTolerance,
    TimeBudget,
    ValueFunction,
)


def vf_with(values) -> ValueFunction:
    vf = ValueFunction(len(values))
    vf.push(values, 0)
    return vf


def test_max_iterations():
    c = MaxIterations(3)

    assert not c.check(2, 0.0, None, vf_with([0.0]))
    assert c.check(3, 0.0, None, vf_with([0.0]))
    assert c.check(4, 0.0, None, vf_with([0.0]))


def test_residual_tolerance():
    """Fires when the largest coefficient change drops below epsilon."""
    c = ResidualTolerance(1e-3)
    old = vf_with([1.0, 2.0])

    assert not c.check(1, 0.0, None, old)
    assert not c.check(1, 0.0, old, vf_with([1.0, 2.01]))
    assert c.check(1, 0.0, old, vf_with([1.0, 2.0005]))


def test_residual_tolerance_incomparable_value_functions():
    """Value functions of different size never count as converged."""
    old = vf_with([1.0, 2.0])
    current = old.copy()
    current.push([1.0, 2.0], 1)

    assert not ResidualTolerance(1.0).check(1, 0.0, old, current)


def test_time_budget():
    c = TimeBudget(2.0)

    assert not c.check(10, 1.5, None, vf_with([0.0]))
    assert c.check(10, 2.5, None, vf_with([0.0]))


def test_invalid_arguments():
    with pytest.raises(ValueError):
        MaxIterations(0)
    with pytest.raises(ValueError):
        ResidualTolerance(0.0)
    with pytest.raises(ValueError):
        TimeBudget(-1.0)


def test_criteria_set_first_satisfied_in_order():
    """The set is an OR evaluated in insertion order."""
    max_iter = MaxIterations(1)
    residual = ResidualTolerance(1.0)
    criteria = CriteriaSet([residual, max_iter])
    vf = vf_with([0.0])

    assert len(criteria) == 2
    assert criteria.first_satisfied(1, 0.0, vf, vf) is residual
    assert criteria.first_satisfied(1, 0.0, None, vf) is max_iter
    assert criteria.first_satisfied(0, 0.0, None, vf) is None


def test_criteria_set_rejects_other_types():
    with pytest.raises(TypeError):
        CriteriaSet().add(lambda *args: True)
