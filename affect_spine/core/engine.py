"""
Affective Translation Spine - decay/update engine.

Pure transitions over the state vector E and momentum M. Vectors are numpy
arrays laid out in DIMS order; every function returns new arrays and never
mutates its inputs, so the session store owns the only mutable copy.

    apply_event(E, M, event, elapsed) -> EventOutcome(state, momentum, delta)
    tick(E, M, elapsed)               -> (state, momentum)
"""

import math
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional, Tuple

import numpy as np

from .defaults import (
    BASELINE,
    BOUNDS,
    COMMON_PROFILE,
    CONSERVATION,
    COOLDOWN,
    DECAY,
    DIMS,
    EVENT_PROFILES,
    MOMENTUM,
    RESET_MODES,
)

DIM_INDEX = {dim: i for i, dim in enumerate(DIMS)}

_LOWER = np.array([BOUNDS[dim][0] for dim in DIMS], dtype=float)
_UPPER = np.array([BOUNDS[dim][1] for dim in DIMS], dtype=float)


def _vector(values: Mapping[str, float]) -> np.ndarray:
    vec = np.zeros(len(DIMS), dtype=float)
    for dim, value in values.items():
        vec[DIM_INDEX[dim]] = value
    return vec


_BASELINE = _vector(BASELINE)
_COOLDOWN = _vector(COOLDOWN)
_DECAY_MULTIPLIERS = _vector(DECAY.multipliers)


class _CompiledProfile(NamedTuple):
    scaled: np.ndarray
    polar: np.ndarray
    constant: np.ndarray
    negative: Optional[np.ndarray]


def _compile(profile) -> _CompiledProfile:
    return _CompiledProfile(
        scaled=_vector(profile.scaled),
        polar=_vector(profile.polar),
        constant=_vector(profile.constant),
        negative=_vector(profile.negative) if profile.negative is not None else None,
    )


_COMMON = _compile(COMMON_PROFILE)
_PROFILES = {name: _compile(profile) for name, profile in EVENT_PROFILES.items()}


class EventOutcome(NamedTuple):
    """Result of applying one event: new state, new momentum, applied delta."""
    state: np.ndarray
    momentum: np.ndarray
    delta: np.ndarray


# --- vector helpers ---------------------------------------------------------

def baseline_vector() -> np.ndarray:
    return _BASELINE.copy()


def zero_momentum() -> np.ndarray:
    return np.zeros(len(DIMS), dtype=float)


def enforce_bounds(E: np.ndarray) -> np.ndarray:
    """Clamp every dimension into its bound."""
    return np.clip(E, _LOWER, _UPPER)


def clamp_momentum(M: np.ndarray) -> np.ndarray:
    return np.clip(M, -MOMENTUM.max_magnitude, MOMENTUM.max_magnitude)


def to_dict(vec: np.ndarray) -> dict:
    """Plain-float mapping keyed by dimension name."""
    return {dim: float(vec[i]) for i, dim in enumerate(DIMS)}


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def state_from_mapping(values: Mapping[str, Any]) -> np.ndarray:
    """
    Build a bounded state vector from untrusted data (snapshots).
    Missing or non-numeric dimensions fall back to baseline.
    """
    vec = baseline_vector()
    for dim, i in DIM_INDEX.items():
        value = _finite(values.get(dim))
        if value is not None:
            vec[i] = value
    return enforce_bounds(vec)


def momentum_from_mapping(values: Mapping[str, Any]) -> np.ndarray:
    """Build a momentum vector from untrusted data; bad entries become zero."""
    vec = zero_momentum()
    for dim, i in DIM_INDEX.items():
        value = _finite(values.get(dim))
        if value is not None:
            vec[i] = value
    return clamp_momentum(vec)


# --- decay ------------------------------------------------------------------

def decay_rates(E: np.ndarray) -> np.ndarray:
    """
    Per-dimension relaxation rate (1/s).
    Higher fatigue relaxes faster, higher stability relaxes slower.
    """
    fatigue = E[DIM_INDEX["fatigue"]]
    stability = E[DIM_INDEX["stability"]]
    fatigue_factor = 1.0 + fatigue * DECAY.fatigue_multiplier
    stability_factor = 1.0 + stability * DECAY.stability_divisor
    rates = DECAY.base_rate * _DECAY_MULTIPLIERS * fatigue_factor / stability_factor
    return np.clip(rates, DECAY.min_rate, DECAY.max_rate)


def decay_state(E: np.ndarray, elapsed: float) -> np.ndarray:
    """Relax E toward baseline over `elapsed` seconds (asymptotic, no overshoot)."""
    if elapsed <= 0:
        return E.copy()
    factor = 1.0 - np.exp(-decay_rates(E) * elapsed)
    return enforce_bounds(E + (_BASELINE - E) * factor)


def decay_momentum(M: np.ndarray, elapsed: float) -> np.ndarray:
    """Shrink momentum toward zero over `elapsed` seconds."""
    if elapsed <= 0:
        return M.copy()
    return M * math.exp(-MOMENTUM.decay_rate * elapsed)


def tick(E: np.ndarray, M: np.ndarray, elapsed: float) -> Tuple[np.ndarray, np.ndarray]:
    """Decay-only step, no event."""
    return decay_state(E, elapsed), decay_momentum(M, elapsed)


# --- events -----------------------------------------------------------------

def _type_name(event_type: Any) -> str:
    if isinstance(event_type, Enum):
        return str(event_type.value)
    return str(event_type)


def raw_delta(event) -> np.ndarray:
    """
    Delta implied by an event before momentum and conservation.
    Unknown types are treated like CUSTOM: only the common terms apply.
    """
    intensity = min(max(float(event.intensity), 0.0), 1.0)
    polarity = min(max(float(event.polarity), -1.0), 1.0)
    profile = _PROFILES.get(_type_name(event.type), _PROFILES["CUSTOM"])

    delta = _COMMON.scaled * intensity + _COMMON.polar * intensity * polarity

    scaled = profile.scaled
    if profile.negative is not None and polarity < 0:
        scaled = profile.negative

    delta = delta + scaled * intensity + profile.polar * intensity * polarity + profile.constant
    return delta


def dampen(delta: np.ndarray, M: np.ndarray) -> np.ndarray:
    """Momentum as inertia: the more a dimension moved recently, the less it moves now."""
    return delta / (1.0 + MOMENTUM.damping * np.abs(M))


def constrain_delta(delta: np.ndarray, stability: float) -> np.ndarray:
    """Scale the delta so its L2 norm respects the conservation cap."""
    max_delta = (CONSERVATION.unstable_max_delta
                 + (CONSERVATION.base_max_delta - CONSERVATION.unstable_max_delta) * stability)
    norm = float(np.linalg.norm(delta))
    if norm == 0.0 or norm <= max_delta:
        return delta
    return delta * (max_delta / norm)


def apply_event(E: np.ndarray, M: np.ndarray, event, elapsed: float = 0.0) -> EventOutcome:
    """
    Apply one validated event.

    1. decay E and M over the time since the last tick
    2. raw delta from the event profile
    3. momentum damping
    4. conservation cap (tighter when unstable)
    5. clamp E; the returned delta is what was actually applied
    6. fold the applied delta into momentum
    """
    state, momentum = tick(E, M, elapsed)

    delta = dampen(raw_delta(event), momentum)
    delta = constrain_delta(delta, float(state[DIM_INDEX["stability"]]))

    new_state = enforce_bounds(state + delta)
    applied = new_state - state

    new_momentum = clamp_momentum(momentum * (1.0 - MOMENTUM.weight) + applied)

    return EventOutcome(new_state, new_momentum, applied)


def reset_vectors(mode: str = "baseline") -> Tuple[np.ndarray, np.ndarray]:
    """Fresh (E, M) for a reset mode."""
    if mode not in RESET_MODES:
        raise ValueError(f"Unknown reset mode: {mode}")
    if mode == "cooldown":
        return _COOLDOWN.copy(), zero_momentum()
    return baseline_vector(), zero_momentum()
