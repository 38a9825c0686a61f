"""
POMDP models, belief states and value iteration over alpha vectors.
"""

from vipomdp.pomdp.schema import POMDP
from vipomdp.pomdp.value_function import AlphaVector, ValueFunction
from vipomdp.pomdp.diagram import CompressedDistribution, FactoredDistribution
from vipomdp.pomdp.belief import BeliefState, ExplicitBelief, SymbolicBelief, belief_update
from vipomdp.pomdp.criteria import Criteria, CriteriaSet, MaxIterations, ResidualTolerance, TimeBudget
from vipomdp.pomdp.value_iteration import (
    SolverState,
    ValueIteration,
    ValueIterationStats,
    blind_initializer,
    blind_policy_iteration,
    best_response_backup,
    exact_value_iteration,
    fixed_policy_backup,
    solve,
    zero_initializer,
)
from vipomdp.pomdp.alpha_io import dump_alpha_text, load_alpha_file, parse_alpha_text, save_alpha_file
from vipomdp.pomdp.io import load_model, load_solver_config

__all__ = [
    "POMDP",
    "AlphaVector",
    "ValueFunction",
    "CompressedDistribution",
    "FactoredDistribution",
    "BeliefState",
    "ExplicitBelief",
    "SymbolicBelief",
    "belief_update",
    "Criteria",
    "CriteriaSet",
    "MaxIterations",
    "ResidualTolerance",
    "TimeBudget",
    "SolverState",
    "ValueIteration",
    "ValueIterationStats",
    "zero_initializer",
    "blind_initializer",
    "best_response_backup",
    "fixed_policy_backup",
    "exact_value_iteration",
    "blind_policy_iteration",
    "solve",
    "parse_alpha_text",
    "load_alpha_file",
    "dump_alpha_text",
    "save_alpha_file",
    "load_model",
    "load_solver_config",
]
