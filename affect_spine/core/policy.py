"""
Affective Translation Spine - policy derivation.

derive_policy(E) maps the state vector to the control parameters other
subsystems consume (style, cognition, memory, safety). Every field is a fixed
linear combination of the seven dimensions, clamped to [0, 1]; the latency
budget is then rescaled to whole milliseconds. Pure and deterministic:
the same E always yields an identical bundle, so it is never cached.
"""

from typing import Any, Dict, List, Mapping, Tuple, Union

import numpy as np

from .defaults import DIMS, LATENCY_MAX_MS, LATENCY_MIN_MS, POLICY_WEIGHTS
from .engine import DIM_INDEX

LATENCY_FIELD = "latency_budget_ms"

# (group, field) for each row of the weight matrix
_FIELDS: List[Tuple[str, str]] = [
    (group, name)
    for group, fields in POLICY_WEIGHTS.items()
    for name in fields
]


def _build_matrix():
    biases = np.zeros(len(_FIELDS), dtype=float)
    weights = np.zeros((len(_FIELDS), len(DIMS)), dtype=float)
    for row, (group, name) in enumerate(_FIELDS):
        bias, dim_weights = POLICY_WEIGHTS[group][name]
        biases[row] = bias
        for dim, weight in dim_weights.items():
            weights[row, DIM_INDEX[dim]] = weight
    biases.setflags(write=False)
    weights.setflags(write=False)
    return biases, weights


_BIASES, _WEIGHTS = _build_matrix()


def _as_vector(E: Union[np.ndarray, Mapping[str, float]]) -> np.ndarray:
    if isinstance(E, np.ndarray):
        return E.astype(float, copy=False)
    return np.array([float(E[dim]) for dim in DIMS], dtype=float)


def latency_ms(level: float) -> int:
    """Map a [0, 1] level onto the latency budget range, rounded."""
    level = min(max(level, 0.0), 1.0)
    value = int(round(LATENCY_MIN_MS + (LATENCY_MAX_MS - LATENCY_MIN_MS) * level))
    return min(max(value, LATENCY_MIN_MS), LATENCY_MAX_MS)


def derive_policy(E: Union[np.ndarray, Mapping[str, float]]) -> Dict[str, Dict[str, Any]]:
    """
    Derive the policy bundle from a state vector (array in DIMS order or a
    mapping keyed by dimension name).
    """
    levels = np.clip(_BIASES + _WEIGHTS @ _as_vector(E), 0.0, 1.0)

    policy: Dict[str, Dict[str, Any]] = {group: {} for group in POLICY_WEIGHTS}
    for row, (group, name) in enumerate(_FIELDS):
        level = float(levels[row])
        if name == LATENCY_FIELD:
            policy[group][name] = latency_ms(level)
        else:
            policy[group][name] = level
    return policy
