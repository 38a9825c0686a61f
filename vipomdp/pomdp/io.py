"""
Loading model description files.
"""

from pathlib import Path
from typing import Any, Dict, Union
import numpy as np
import yaml
from pydantic import ValidationError

from vipomdp.exceptions import ParseError
from vipomdp.pomdp.schema import POMDP
from vipomdp.schemas.model_config import ModelConfig, SolverConfig
from vipomdp.utils.logging_utils import get_logger

logger = get_logger(__name__)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            line = mark.line + 1 if mark is not None else None
            raise ParseError(f"invalid YAML: {getattr(e, 'problem', None) or e}",
                             source=str(path), line=line) from None

    if not isinstance(data, dict):
        raise ParseError("expected a mapping at the top level", source=str(path))
    return data


def parse_model_config(data: Dict[str, Any], source: str = "<string>") -> ModelConfig:
    """Validate a raw mapping against the model schema."""
    try:
        return ModelConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or None
        raise ParseError(first["msg"], source=source, location=location) from None


def model_from_config(cfg: ModelConfig) -> POMDP:
    """Build the immutable POMDP described by a validated config."""
    return POMDP(
        S=list(cfg.states),
        A=list(cfg.actions),
        O=list(cfg.observations),
        T={a: np.array(cfg.transitions[a], dtype=np.float64) for a in cfg.actions},
        Z={a: np.array(cfg.observation_probs[a], dtype=np.float64) for a in cfg.actions},
        R={a: np.array(cfg.rewards[a], dtype=np.float64) for a in cfg.actions},
        gamma=cfg.discount,
        start=np.array(cfg.start, dtype=np.float64) if cfg.start is not None else None,
        sparse=cfg.sparse,
    )


def load_model_config(path: Union[str, Path]) -> ModelConfig:
    path = Path(path)
    return parse_model_config(_read_yaml(path), source=str(path))


def load_model(path: Union[str, Path]) -> POMDP:
    """
    Load and validate a POMDP from a YAML model description.

    Raises:
        ParseError: Malformed YAML or schema violation
        StructuralError: Well-formed file describing inconsistent matrices
    """
    cfg = load_model_config(path)
    pomdp = model_from_config(cfg)
    logger.info(
        f"Loaded model from {path}: {pomdp.nr_states} states, "
        f"{pomdp.nr_actions} actions, {pomdp.nr_observations} observations, gamma={pomdp.gamma}"
    )
    return pomdp


def load_solver_config(path: Union[str, Path]) -> SolverConfig:
    """
    Solver settings of a model file.

    A top-level ``tolerance`` is used as epsilon unless the solver section
    sets one explicitly.
    """
    cfg = load_model_config(path)
    solver = cfg.solver
    if cfg.tolerance is not None and "epsilon" not in solver.model_fields_set:
        solver = solver.model_copy(update={"epsilon": cfg.tolerance})
    return solver
