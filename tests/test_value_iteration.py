"""
Tests for the value iteration driver and its variants.
"""

from pathlib import Path

import pytest
import numpy as np

from vipomdp.exceptions import PreconditionViolation
from vipomdp.pomdp import (
    POMDP,
    ExplicitBelief,
    MaxIterations,
    ResidualTolerance,
    SolverState,
    TimeBudget,
    ValueIteration,
    blind_initializer,
    blind_policy_iteration,
    exact_value_iteration,
    load_model,
    solve,
    zero_initializer,
)

MODELS_DIR = Path(__file__).resolve().parent.parent / "models"


def single_state_model() -> POMDP:
    return POMDP(
        S=["s"], A=["a"], O=["o"],
        T={"a": np.eye(1)},
        Z={"a": np.ones((1, 1))},
        R={"a": np.array([1.0])},
        gamma=0.9,
    )


def two_state_model() -> POMDP:
    return POMDP(
        S=["s0", "s1"], A=["a0", "a1"], O=["o"],
        T={"a0": np.eye(2), "a1": np.eye(2)},
        Z={"a0": np.ones((2, 1)), "a1": np.ones((2, 1))},
        R={"a0": np.array([0.0, 2.0]), "a1": np.array([1.0, 1.0])},
        gamma=0.5,
    )


def test_blind_single_state_converges_after_one_round():
    """Blind seed 1/(1-0.9) = 10 is already the fixed point."""
    solver = blind_policy_iteration(single_state_model(), [ResidualTolerance(1e-6)])

    assert solver.current.get_alpha_values(0)[0] == pytest.approx(10.0)

    vf, stats = solver.run()

    assert stats.iterations == 1
    assert stats.stop_reason == "residual_tolerance"
    assert stats.converged
    assert vf.size() == 1
    assert vf.get_alpha_values(0)[0] == pytest.approx(10.0)


def test_exact_two_state_single_backup():
    """One backup from zero gives the reward vectors; the tie goes to a0."""
    vf, stats = exact_value_iteration(two_state_model(), [MaxIterations(1)]).run()

    assert stats.iterations == 1
    assert stats.stop_reason == "max_iterations"
    assert not stats.converged
    assert list(vf.get_actions()) == [0, 1]
    assert np.allclose(vf.get_alpha_values(0), [0.0, 2.0])
    assert np.allclose(vf.get_alpha_values(1), [1.0, 1.0])

    belief = ExplicitBelief([0.5, 0.5])
    assert vf.value(belief) == pytest.approx(1.0)
    assert belief.alpha == 0


def test_exact_two_state_fixed_point():
    """At convergence V*(s0) = 2 and V*(s1) = 4."""
    vf, stats = exact_value_iteration(two_state_model(), [ResidualTolerance(1e-10), MaxIterations(200)]).run()

    assert stats.converged
    assert np.allclose(vf.get_alpha_values(0), [1.0, 4.0], atol=1e-8)
    assert np.allclose(vf.get_alpha_values(1), [2.0, 3.0], atol=1e-8)


def test_blind_monotonic_and_bounded():
    """Blind values never decrease and stay below max R / (1 - gamma)."""
    pomdp = load_model(MODELS_DIR / "chain.yaml")
    solver = blind_policy_iteration(pomdp, [MaxIterations(60)])
    upper = pomdp.reward_bounds()[1] / (1.0 - pomdp.gamma)

    for _ in range(60):
        solver.iterate()
        old = solver.old.as_matrix()
        current = solver.current.as_matrix()
        assert np.all(current >= old - 1e-12)
        assert np.all(current <= upper + 1e-9)


def test_bounded_termination_with_unreachable_tolerance():
    """MaxIterations halts the run even if the residual never gets small enough."""
    pomdp = load_model(MODELS_DIR / "tiger.yaml")
    solver = exact_value_iteration(pomdp, [ResidualTolerance(1e-300), MaxIterations(5)])

    vf, stats = solver.run()

    assert stats.iterations == 5
    assert stats.stop_reason == "max_iterations"
    assert not stats.converged
    assert stats.final_residual > 0
    assert len(stats.iteration_times) == 5
    assert vf.size() == pomdp.nr_actions


def test_time_budget_stops_run():
    pomdp = load_model(MODELS_DIR / "tiger.yaml")

    _, stats = exact_value_iteration(pomdp, [TimeBudget(1e-9), MaxIterations(1000)]).run()

    assert stats.stop_reason == "time_budget"
    assert stats.iterations < 1000


def test_terminated_is_absorbing():
    """After termination no further backups happen."""
    solver = exact_value_iteration(two_state_model(), [MaxIterations(2)])
    vf, stats = solver.run()

    assert solver.state is SolverState.TERMINATED
    with pytest.raises(PreconditionViolation):
        solver.iterate()

    again_vf, again_stats = solver.run([MaxIterations(10)])
    assert again_vf is vf
    assert again_stats.iterations == 2


def test_run_without_criteria_is_rejected():
    solver = exact_value_iteration(two_state_model())

    with pytest.raises(PreconditionViolation):
        solver.run()


def test_backups_read_untouched_previous_snapshot():
    """Every action in a round sees the same previous value function."""
    seen = []

    def recording_backup(pomdp, previous, action):
        seen.append((previous, previous.as_matrix().copy()))
        return previous.get_alpha_values(action) + 1.0

    pomdp = two_state_model()
    solver = ValueIteration(pomdp, zero_initializer, recording_backup, [MaxIterations(1)])
    seed = solver.current

    solver.iterate()

    assert len(seen) == 2
    assert all(prev is seed for prev, _ in seen)
    assert all(np.array_equal(snapshot, np.zeros((2, 2))) for _, snapshot in seen)
    assert solver.old is seed
    assert np.array_equal(seed.as_matrix(), np.zeros((2, 2)))
    assert np.array_equal(solver.current.as_matrix(), np.ones((2, 2)))


def test_parallel_backups_match_serial():
    pomdp = load_model(MODELS_DIR / "tiger.yaml")

    serial, _ = exact_value_iteration(pomdp, [MaxIterations(25)], max_workers=1).run()
    parallel, _ = exact_value_iteration(pomdp, [MaxIterations(25)], max_workers=3).run()

    assert serial.allclose(parallel, atol=0.0)


def test_sparse_and_dense_models_agree():
    pomdp = load_model(MODELS_DIR / "chain.yaml")
    dense = POMDP(
        S=pomdp.S, A=pomdp.A, O=pomdp.O,
        T={a: pomdp.transition(a).toarray() for a in pomdp.A},
        Z={a: pomdp.observation(a) for a in pomdp.A},
        R={a: pomdp.reward_values(a) for a in pomdp.A},
        gamma=pomdp.gamma,
    )

    vf_sparse, _ = blind_policy_iteration(pomdp, [MaxIterations(40)]).run()
    vf_dense, _ = blind_policy_iteration(dense, [MaxIterations(40)]).run()

    assert vf_sparse.allclose(vf_dense, atol=1e-12)


def test_blind_initializer_lower_bound():
    """Each seed vector is min_s R(s, a) / (1 - gamma)."""
    pomdp = load_model(MODELS_DIR / "tiger.yaml")
    vf = blind_initializer(pomdp)

    assert vf.size() == pomdp.nr_actions
    assert np.allclose(vf.get_alpha_values(0), -20.0)
    assert np.allclose(vf.get_alpha_values(1), -2000.0)
    assert np.allclose(vf.get_alpha_values(2), -2000.0)


def test_solve_dimension_invariant_and_stats_frame():
    """Every vector has one coefficient per state; stats export one row per iteration."""
    pomdp = load_model(MODELS_DIR / "tiger.yaml")

    vf, stats = solve(pomdp, algorithm="exact", max_iterations=1000, epsilon=1e-6, time_budget=None)

    assert stats.converged
    for vec in vf:
        assert vec.values.shape == (pomdp.nr_states,)
    frame = stats.to_frame()
    assert len(frame) == stats.iterations
    assert list(frame.columns) == ["iteration", "time", "vectors", "residual"]
    assert frame["residual"].iloc[-1] < 1e-6
    assert stats.summary()["stop_reason"] == "residual_tolerance"


def test_solve_unknown_algorithm():
    with pytest.raises(ValueError):
        solve(two_state_model(), algorithm="pbvi")
