"""
Command line entry point: load a model, run value iteration, write results.
"""

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from vipomdp.config import Config
from vipomdp.pomdp.alpha_io import save_alpha_file
from vipomdp.pomdp.io import load_model, load_solver_config
from vipomdp.pomdp.value_iteration import solve
from vipomdp.schemas.model_config import SolverConfig
from vipomdp.utils.logging_utils import get_logger, set_log_level

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solve a POMDP model with value iteration.")
    parser.add_argument("--model", required=True, help="Path to model YAML.")
    parser.add_argument("--out-dir", dest="out_dir", type=str, default=None,
                        help="Output directory (if not provided, uses <OUTPUT_DIR>/<model>/<timestamp>/)")
    parser.add_argument("--algorithm", choices=["exact", "blind"], default=None,
                        help="Override the solver variant from the model file")
    parser.add_argument("--max-iter", dest="max_iterations", type=int, default=None,
                        help="Override the iteration bound")
    parser.add_argument("--epsilon", type=float, default=None,
                        help="Override the residual tolerance")
    parser.add_argument("--time-budget", dest="time_budget", type=float, default=None,
                        help="Time budget in seconds")
    parser.add_argument("--workers", dest="max_workers", type=int, default=None,
                        help="Threads for per-action backups")
    parser.add_argument("--log-level", dest="log_level", default=None,
                        help="Logging level, e.g. DEBUG")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    pomdp = load_model(args.model)
    solver_cfg = load_solver_config(args.model)
    overrides = {
        key: getattr(args, key)
        for key in ("algorithm", "max_iterations", "epsilon", "time_budget", "max_workers")
        if getattr(args, key) is not None
    }
    if overrides:
        try:
            solver_cfg = SolverConfig.model_validate({**solver_cfg.model_dump(), **overrides})
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "solver"
            parser.error(f"invalid {field}: {first['msg']}")

    vf, stats = solve(
        pomdp,
        algorithm=solver_cfg.algorithm,
        max_iterations=solver_cfg.max_iterations,
        epsilon=solver_cfg.epsilon,
        time_budget=solver_cfg.time_budget,
        max_workers=solver_cfg.max_workers,
    )

    # Determine output directory
    if args.out_dir:
        out_dir = Path(args.out_dir)
    else:
        Config.ensure_directories()
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_dir = Config.OUTPUT_DIR / Path(args.model).stem / ts
    out_dir.mkdir(parents=True, exist_ok=True)

    save_alpha_file(vf, out_dir / "value_function.alpha")
    stats.to_frame().to_csv(out_dir / "stats.csv", index=False)
    summary = {"model": str(args.model), "algorithm": solver_cfg.algorithm, **stats.summary()}
    with open(out_dir / "summary.json", "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, sort_keys=True)

    # Print summary
    print(f"Model: {args.model} ({pomdp.nr_states} states, {pomdp.nr_actions} actions)")
    print(f"Algorithm: {solver_cfg.algorithm}")
    print(f"Iterations: {stats.iterations} stopped by {stats.stop_reason}")
    print(f"Final residual: {stats.final_residual:.6e}")
    if pomdp.start is not None:
        value, idx = vf.evaluate(pomdp.start)
        print(f"V(start): {value:.6f} (action {pomdp.A[vf.get_actions()[idx]]})")
    print(f"Outputs: {out_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
