"""
Tests for model description files and the command line entry point.
"""

import json
from pathlib import Path

import pytest
import numpy as np
import pandas as pd
import yaml
from scipy import sparse

from vipomdp.cli import main
from vipomdp.config import Config
from vipomdp.exceptions import ParseError, StructuralError
from vipomdp.pomdp import load_alpha_file, load_model, load_solver_config

MODELS_DIR = Path(__file__).resolve().parent.parent / "models"


def write_model(tmp_path: Path, data) -> Path:
    path = tmp_path / "model.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def tiger_data():
    with open(MODELS_DIR / "tiger.yaml") as f:
        return yaml.safe_load(f)


def test_load_tiger():
    pomdp = load_model(MODELS_DIR / "tiger.yaml")

    assert pomdp.S == ["tiger-left", "tiger-right"]
    assert pomdp.A == ["listen", "open-left", "open-right"]
    assert pomdp.nr_observations == 2
    assert pomdp.gamma == 0.95
    assert np.allclose(pomdp.start, [0.5, 0.5])
    assert np.allclose(pomdp.reward_values("open-left"), [-100.0, 10.0])


def test_load_chain_sparse_with_transition_rewards():
    pomdp = load_model(MODELS_DIR / "chain.yaml")

    assert sparse.issparse(pomdp.transition("move"))
    assert np.allclose(pomdp.reward_values("move"), [0.0, 0.0, 4.0, 0.0])
    assert pomdp.start is None


def test_solver_config_uses_tolerance():
    """A top-level tolerance becomes the residual epsilon."""
    cfg = load_solver_config(MODELS_DIR / "tiger.yaml")

    assert cfg.algorithm == "exact"
    assert cfg.max_iterations == 1000
    assert cfg.epsilon == 1e-6

    chain = load_solver_config(MODELS_DIR / "chain.yaml")
    assert chain.algorithm == "blind"
    assert chain.epsilon == 1e-8


def test_missing_field_reports_location(tmp_path):
    data = tiger_data()
    del data["discount"]

    with pytest.raises(ParseError) as excinfo:
        load_model(write_model(tmp_path, data))

    assert excinfo.value.location == "discount"


def test_unknown_action_in_tables(tmp_path):
    data = tiger_data()
    data["rewards"]["jump"] = [0.0, 0.0]

    with pytest.raises(ParseError):
        load_model(write_model(tmp_path, data))


def test_non_string_keys_are_parse_errors(tmp_path):
    path = tmp_path / "numbers.yaml"
    path.write_text("1: x\ndiscount: 0.9\n")

    with pytest.raises(ParseError) as excinfo:
        load_model(path)

    assert excinfo.value.source == str(path)


def test_ragged_matrix_names_table(tmp_path):
    data = tiger_data()
    data["transitions"]["listen"] = [[1.0, 0.0], [1.0]]

    with pytest.raises(ParseError) as excinfo:
        load_model(write_model(tmp_path, data))

    assert "transitions.listen" in str(excinfo.value)


def test_non_square_transitions_name_table(tmp_path):
    data = tiger_data()
    data["transitions"]["listen"] = [[0.5, 0.5, 0.0], [0.0, 0.5, 0.5]]

    with pytest.raises(ParseError) as excinfo:
        load_model(write_model(tmp_path, data))

    assert "transitions.listen" in str(excinfo.value)


def test_invalid_yaml_reports_line(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("discount: 0.9\nstates: [a, b\nactions: [x]\n")

    with pytest.raises(ParseError) as excinfo:
        load_model(path)

    assert excinfo.value.line is not None
    assert excinfo.value.source == str(path)


def test_inconsistent_matrices_are_structural(tmp_path):
    data = tiger_data()
    data["transitions"]["listen"] = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]

    with pytest.raises(StructuralError):
        load_model(write_model(tmp_path, data))


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_model(MODELS_DIR / "does_not_exist.yaml")


def test_cli_writes_outputs(tmp_path, capsys):
    """The CLI solves the model and writes alpha vectors, stats and a summary."""
    out_dir = tmp_path / "tiger"

    code = main(["--model", str(MODELS_DIR / "tiger.yaml"), "--out-dir", str(out_dir), "--max-iter", "20"])

    assert code == 0
    vf = load_alpha_file(out_dir / "value_function.alpha", load_model(MODELS_DIR / "tiger.yaml"))
    assert vf.size() == 3

    stats = pd.read_csv(out_dir / "stats.csv")
    assert len(stats) == 20

    with open(out_dir / "summary.json") as f:
        summary = json.load(f)
    assert summary["stop_reason"] == "max_iterations"
    assert summary["iterations"] == 20

    printed = capsys.readouterr().out
    assert "V(start)" in printed


def test_cli_default_output_dir(tmp_path, monkeypatch):
    """Without --out-dir results go to a timestamped folder under OUTPUT_DIR."""
    monkeypatch.setattr(Config, "OUTPUT_DIR", tmp_path / "artifacts")

    code = main(["--model", str(MODELS_DIR / "tiger.yaml"), "--max-iter", "3"])

    assert code == 0
    runs = list((tmp_path / "artifacts" / "tiger").iterdir())
    assert len(runs) == 1
    assert (runs[0] / "value_function.alpha").exists()
    assert (runs[0] / "summary.json").exists()


@pytest.mark.parametrize("flag,value", [("--workers", "0"), ("--max-iter", "0"), ("--epsilon", "-1")])
def test_cli_rejects_invalid_overrides(tmp_path, flag, value):
    with pytest.raises(SystemExit) as excinfo:
        main(["--model", str(MODELS_DIR / "tiger.yaml"), "--out-dir", str(tmp_path), flag, value])

    assert excinfo.value.code == 2
    assert not (tmp_path / "value_function.alpha").exists()
