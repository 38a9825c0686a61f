#!/usr/bin/env python3
"""
Solve a POMDP model file with value iteration.

Example:
    python scripts/solve_pomdp.py --model models/tiger.yaml --out-dir artifacts/tiger
"""

from vipomdp.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
