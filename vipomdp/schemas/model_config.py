"""Schema validation for model description files."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Literal, Union

from vipomdp.config import Config

Matrix = List[List[float]]


class SolverConfig(BaseModel):
    """Value iteration settings."""
    algorithm: Literal["exact", "blind"] = Field(default="exact", description="Solver variant")
    max_iterations: Optional[int] = Field(default=Config.VI_MAX_ITERATIONS, ge=1, description="Iteration bound")
    epsilon: Optional[float] = Field(default=Config.VI_EPSILON, gt=0, description="Residual tolerance")
    time_budget: Optional[float] = Field(default=Config.VI_TIME_BUDGET, gt=0, description="Time budget in seconds")
    max_workers: int = Field(default=Config.VI_MAX_WORKERS, ge=1, description="Threads for per-action backups")

    @model_validator(mode="after")
    def validate_has_stop(self):
        """At least one stopping criterion must be configured."""
        if self.max_iterations is None and self.epsilon is None and self.time_budget is None:
            raise ValueError("at least one of max_iterations, epsilon, time_budget is required")
        return self


class ModelConfig(BaseModel):
    """Schema for model description files."""

    name: Optional[str] = Field(default=None, description="Model name")
    discount: float = Field(..., ge=0, lt=1, description="Discount factor")
    tolerance: Optional[float] = Field(default=None, gt=0, description="Residual tolerance for the solver")
    states: List[str] = Field(..., min_length=1, description="State labels")
    actions: List[str] = Field(..., min_length=1, description="Action labels")
    observations: List[str] = Field(..., min_length=1, description="Observation labels")
    start: Optional[List[float]] = Field(default=None, description="Initial belief")
    sparse: bool = Field(default=False, description="Store transitions in CSR format")
    transitions: Dict[str, Matrix] = Field(..., description="T[a][s][s'] = P(s'|s,a)")
    observation_probs: Dict[str, Matrix] = Field(..., description="Z[a][s'][o] = P(o|s',a)")
    rewards: Dict[str, Union[List[float], Matrix]] = Field(..., description="R(s,a) vector or R(s,a,s') matrix per action")
    solver: SolverConfig = Field(default_factory=SolverConfig, description="Solver settings")

    @field_validator("states", "actions", "observations")
    @classmethod
    def validate_unique(cls, v: List[str]) -> List[str]:
        """Labels must be unique."""
        if len(set(v)) != len(v):
            raise ValueError("labels must be unique")
        return v

    @model_validator(mode="after")
    def validate_action_keys(self):
        """Every per-action table is keyed by exactly the declared actions."""
        declared = set(self.actions)
        for table in ("transitions", "observation_probs", "rewards"):
            keys = set(getattr(self, table).keys())
            if keys != declared:
                missing = sorted(declared - keys)
                extra = sorted(keys - declared)
                raise ValueError(f"{table}: missing actions {missing}, unknown actions {extra}")
        return self

    @model_validator(mode="after")
    def validate_table_shapes(self):
        """Matrices must be rectangular; transition matrices must be square."""
        for table in ("transitions", "observation_probs", "rewards"):
            for action, matrix in getattr(self, table).items():
                if not matrix or not isinstance(matrix[0], list):
                    continue
                path = f"{table}.{action}"
                width = len(matrix[0])
                for i, row in enumerate(matrix):
                    if len(row) != width:
                        raise ValueError(f"{path}: row {i} has {len(row)} entries, expected {width}")
                if table == "transitions" and width != len(matrix):
                    raise ValueError(f"{path}: transition matrix is {len(matrix)}x{width}, expected square")
        return self
