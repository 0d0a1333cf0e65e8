"""
Affective Translation Spine - model constants.

Everything the engine, policy and projection layers tune against lives here as
named, frozen configuration. Nothing in this module may be mutated at runtime.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# Fixed dimension order of the state vector
DIMS: Tuple[str, ...] = (
    "valence",
    "arousal",
    "stability",
    "coherence",
    "agency",
    "trust",
    "fatigue",
)

BOUNDS: Mapping[str, Tuple[float, float]] = MappingProxyType({dim: (0.0, 1.0) for dim in DIMS})

BASELINE: Mapping[str, float] = MappingProxyType({
    "valence": 0.5,
    "arousal": 0.4,
    "stability": 0.7,
    "coherence": 0.7,
    "agency": 0.6,
    "trust": 0.6,
    "fatigue": 0.2,
})

# Cooldown: quieter, steadier, but tired and a little less trusting
COOLDOWN: Mapping[str, float] = MappingProxyType({
    "valence": 0.5,
    "arousal": 0.15,
    "stability": 0.85,
    "coherence": 0.7,
    "agency": 0.45,
    "trust": 0.5,
    "fatigue": 0.45,
})

RESET_MODES = ("baseline", "cooldown")


@dataclass(frozen=True)
class DecayConfig:
    """Relaxation toward baseline, rates in 1/second."""
    base_rate: float
    fatigue_multiplier: float
    stability_divisor: float
    min_rate: float
    max_rate: float
    # Per-dimension speed relative to base_rate
    multipliers: Mapping[str, float]


@dataclass(frozen=True)
class MomentumConfig:
    """Smoothed rate-of-change feedback."""
    weight: float
    decay_rate: float
    max_magnitude: float
    damping: float


@dataclass(frozen=True)
class ConservationConfig:
    """Caps on the L2 norm of a single event's delta."""
    base_max_delta: float
    unstable_max_delta: float


DECAY = DecayConfig(
    base_rate=0.002,
    fatigue_multiplier=0.5,
    stability_divisor=0.5,
    min_rate=0.0005,
    max_rate=0.01,
    multipliers=MappingProxyType({
        "valence": 1.0,
        "arousal": 1.5,
        "stability": 0.8,
        "coherence": 1.0,
        "agency": 1.0,
        "trust": 0.6,
        "fatigue": 0.5,
    }),
)

MOMENTUM = MomentumConfig(
    weight=0.3,
    decay_rate=0.01,
    max_magnitude=0.5,
    damping=4.0,
)

CONSERVATION = ConservationConfig(
    base_max_delta=0.35,
    unstable_max_delta=0.15,
)


@dataclass(frozen=True)
class EventProfile:
    """
    How one event type moves the state vector.

    scaled:   weight * intensity
    polar:    weight * intensity * polarity
    constant: added as-is, independent of intensity
    negative: replaces `scaled` when polarity < 0
    """
    scaled: Mapping[str, float]
    polar: Mapping[str, float]
    constant: Mapping[str, float]
    negative: Optional[Mapping[str, float]] = None


def _profile(scaled=None, polar=None, constant=None, negative=None):
    return EventProfile(
        scaled=MappingProxyType(dict(scaled or {})),
        polar=MappingProxyType(dict(polar or {})),
        constant=MappingProxyType(dict(constant or {})),
        negative=MappingProxyType(dict(negative)) if negative is not None else None,
    )


# Applied to every event before the type-specific profile
COMMON_PROFILE = _profile(
    scaled={"arousal": 0.2},
    polar={"valence": 0.15},
)

EVENT_PROFILES: Mapping[str, EventProfile] = MappingProxyType({
    "USER_MESSAGE": _profile(
        scaled={"arousal": 0.05},
        constant={"fatigue": 0.02},
    ),
    "SYSTEM_RESULT": _profile(
        scaled={"coherence": 0.03, "agency": 0.04},
        negative={"coherence": -0.05, "fatigue": 0.04},
    ),
    "ERROR": _profile(
        scaled={"stability": -0.1, "agency": -0.08, "trust": -0.04, "fatigue": 0.08},
    ),
    "SUCCESS": _profile(
        scaled={"valence": 0.05, "stability": 0.05, "agency": 0.12, "trust": 0.06, "fatigue": -0.03},
    ),
    "TIMEOUT": _profile(
        scaled={"stability": -0.1, "agency": -0.08, "trust": -0.04, "fatigue": 0.08},
    ),
    "CONFLICT": _profile(
        scaled={"valence": -0.05, "coherence": -0.15, "stability": -0.08},
    ),
    "SAFETY_BLOCK": _profile(
        scaled={"valence": -0.05, "stability": -0.05, "agency": -0.1, "trust": -0.1},
    ),
    "GOAL_PROGRESS": _profile(
        scaled={"stability": 0.05, "agency": 0.12, "trust": 0.06, "fatigue": -0.03},
    ),
    "TOOL_RESULT": _profile(
        scaled={"trust": 0.05, "agency": 0.06},
        negative={"trust": -0.06, "fatigue": 0.05},
    ),
    "FEEDBACK": _profile(
        scaled={"coherence": 0.04},
        polar={"valence": 0.1, "trust": 0.08},
    ),
    "SESSION_START": _profile(
        constant={"fatigue": -0.05, "agency": 0.03},
    ),
    "SESSION_END": _profile(
        constant={"arousal": -0.1},
    ),
    "CUSTOM": _profile(),
})

EVENT_TYPES: Tuple[str, ...] = tuple(EVENT_PROFILES.keys())


def _weights(bias, weights):
    return bias, MappingProxyType(dict(weights))


# Policy: group -> field -> (bias, {dim: weight}); result is clamped to [0, 1]
POLICY_WEIGHTS = MappingProxyType({
    "style": MappingProxyType({
        "verbosity": _weights(0.35, {"arousal": 0.2, "coherence": 0.15, "trust": 0.1, "fatigue": -0.35}),
        "directness": _weights(0.15, {"agency": 0.3, "coherence": 0.25, "arousal": 0.15, "fatigue": 0.1}),
        "warmth": _weights(0.1, {"valence": 0.45, "trust": 0.35, "stability": 0.1}),
        "creativity": _weights(0.1, {"arousal": 0.3, "valence": 0.25, "agency": 0.2, "fatigue": -0.2}),
        "caution": _weights(0.8, {"trust": -0.35, "stability": -0.25, "fatigue": 0.3}),
    }),
    "cognition": MappingProxyType({
        "exploration": _weights(0.1, {"agency": 0.4, "trust": 0.2, "arousal": 0.15, "fatigue": -0.25}),
        "risk_budget": _weights(0.0, {"trust": 0.35, "stability": 0.25, "agency": 0.2, "fatigue": -0.3}),
        "depth_budget": _weights(0.25, {"coherence": 0.35, "stability": 0.2, "agency": 0.15, "fatigue": -0.45}),
        "latency_budget_ms": _weights(0.3, {"coherence": 0.2, "stability": 0.15, "arousal": -0.3, "fatigue": -0.15}),
        "tool_use_bias": _weights(0.1, {"agency": 0.35, "trust": 0.3, "coherence": 0.1, "fatigue": -0.2}),
    }),
    "memory": MappingProxyType({
        "write_strength": _weights(0.2, {"arousal": 0.45, "coherence": 0.15, "fatigue": -0.35}),
        "summarize_bias": _weights(0.15, {"coherence": 0.4, "fatigue": 0.3}),
        "retention_bias": _weights(0.1, {"trust": 0.4, "stability": 0.35}),
    }),
    "safety": MappingProxyType({
        "strictness": _weights(0.8, {"trust": -0.35, "stability": -0.25, "fatigue": 0.2}),
        "refuse_threshold": _weights(0.3, {"trust": 0.3, "stability": 0.25, "fatigue": -0.2}),
    }),
})

LATENCY_MIN_MS = 1000
LATENCY_MAX_MS = 15000

# Projection thresholds
LABEL_THRESHOLDS = MappingProxyType({
    "fatigued_fatigue": 0.75,
    "uncertain_coherence": 0.3,
    "strained_stability": 0.35,
    "strained_arousal": 0.6,
    "guarded_trust": 0.3,
    "discouraged_valence": 0.3,
    "discouraged_agency": 0.4,
    "motivated_agency": 0.7,
    "motivated_valence": 0.6,
    "energized_arousal": 0.7,
    "energized_valence": 0.6,
    "calm_arousal": 0.25,
    "calm_stability": 0.7,
})

DEFAULT_LABEL = "balanced"
