"""
Reading and writing value functions in the alpha-vector text format.

A file is a sequence of records separated by blank lines. Each record is a
line with the integer action id, followed by a line with the
whitespace-separated coefficients. Lines starting with '#' are ignored.

    0
    -1.5 2.0 3.25

    1
    0.0 0.0 0.0
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

from vipomdp.exceptions import ParseError
from vipomdp.pomdp.schema import POMDP
from vipomdp.pomdp.value_function import ValueFunction
from vipomdp.utils.logging_utils import get_logger

logger = get_logger(__name__)


def _content_lines(text: str) -> List[Tuple[int, str]]:
    lines = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if stripped and not stripped.startswith("#"):
            lines.append((lineno, stripped))
    return lines


def parse_alpha_text(
    text: str,
    n_states: Optional[int] = None,
    n_actions: Optional[int] = None,
    source: str = "<string>",
) -> ValueFunction:
    """
    Parse alpha-vector text into a value function.

    Either the whole input parses or ParseError is raised; a partial value
    function is never returned. Input without records yields an empty value
    function when n_states is given.

    Args:
        text: File contents
        n_states: Required vector dimension, if known
        n_actions: Number of model actions, to range-check action ids
        source: Name reported in errors

    Returns:
        ValueFunction with the records in file order
    """
    lines = _content_lines(text)
    if not lines:
        # An empty value function only has a dimension if the caller supplies one
        if n_states is not None:
            return ValueFunction(n_states)
        raise ParseError("no alpha vectors found", source=source)
    if len(lines) % 2 != 0:
        lineno, _ = lines[-1]
        raise ParseError("action id without a coefficient line", source=source, line=lineno)

    records = []
    dimension = n_states
    for i in range(0, len(lines), 2):
        action_line, action_text = lines[i]
        vector_line, vector_text = lines[i + 1]

        try:
            action = int(action_text)
        except ValueError:
            raise ParseError(f"expected an integer action id, got {action_text!r}",
                             source=source, line=action_line) from None
        if action < 0 or (n_actions is not None and action >= n_actions):
            bound = f"[0, {n_actions})" if n_actions is not None else ">= 0"
            raise ParseError(f"action id {action} out of range {bound}",
                             source=source, line=action_line)

        try:
            values = [float(tok) for tok in vector_text.split()]
        except ValueError as e:
            raise ParseError(f"invalid coefficient: {e}", source=source, line=vector_line) from None

        if dimension is None:
            dimension = len(values)
        elif len(values) != dimension:
            raise ParseError(f"vector has {len(values)} coefficients, expected {dimension}",
                             source=source, line=vector_line)
        records.append((action, values))

    vf = ValueFunction(dimension)
    for action, values in records:
        vf.push(values, action)
    return vf


def load_alpha_file(path: Union[str, Path], pomdp: Optional[POMDP] = None) -> ValueFunction:
    """
    Load an alpha-vector file, checking it against a model when one is given.
    """
    path = Path(path)
    logger.info(f"Loading alpha vectors from {path}")
    text = path.read_text()
    vf = parse_alpha_text(
        text,
        n_states=pomdp.nr_states if pomdp is not None else None,
        n_actions=pomdp.nr_actions if pomdp is not None else None,
        source=str(path),
    )
    logger.info(f"Loaded {vf.size()} alpha vectors of dimension {vf.n_states}")
    return vf


def dump_alpha_text(vf: ValueFunction) -> str:
    """Serialize a value function; repr() keeps floats exact on reload."""
    records = []
    for vec in vf:
        coefficients = " ".join(repr(float(x)) for x in vec.values)
        records.append(f"{vec.action}\n{coefficients}\n")
    return "\n".join(records)


def save_alpha_file(vf: ValueFunction, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(dump_alpha_text(vf))
    logger.info(f"Saved {vf.size()} alpha vectors to {path}")
    return path
