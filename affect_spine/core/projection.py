"""
Affective Translation Spine - projection layer.

Display-only views of the state vector: one label, a set of tone tags, and a
summary string. These are non-canonical. Nothing here is ever written back
into the state, persisted as session state, or read by the policy layer.
"""

from typing import Callable, List, Mapping, Tuple, Union

import numpy as np

from .defaults import DEFAULT_LABEL, DIMS, LABEL_THRESHOLDS

StateLike = Union[np.ndarray, Mapping[str, float]]


def _view(E: StateLike) -> Mapping[str, float]:
    if isinstance(E, np.ndarray):
        return {dim: float(E[i]) for i, dim in enumerate(DIMS)}
    return E


_T = LABEL_THRESHOLDS

# Priority order matters: the first matching rule wins.
LABEL_RULES: Tuple[Tuple[str, Callable[[Mapping[str, float]], bool]], ...] = (
    ("fatigued", lambda e: e["fatigue"] > _T["fatigued_fatigue"]),
    ("uncertain", lambda e: e["coherence"] < _T["uncertain_coherence"]),
    ("strained", lambda e: e["stability"] < _T["strained_stability"] and e["arousal"] > _T["strained_arousal"]),
    ("guarded", lambda e: e["trust"] < _T["guarded_trust"]),
    ("discouraged", lambda e: e["valence"] < _T["discouraged_valence"] and e["agency"] < _T["discouraged_agency"]),
    ("motivated", lambda e: e["agency"] > _T["motivated_agency"] and e["valence"] > _T["motivated_valence"]),
    ("energized", lambda e: e["arousal"] > _T["energized_arousal"] and e["valence"] > _T["energized_valence"]),
    ("calm", lambda e: e["arousal"] < _T["calm_arousal"] and e["stability"] > _T["calm_stability"]),
)

LABELS = tuple(name for name, _ in LABEL_RULES) + (DEFAULT_LABEL,)

# Independent tags; any number may apply at once.
TONE_RULES: Tuple[Tuple[str, Callable[[Mapping[str, float]], bool]], ...] = (
    ("warm", lambda e: e["valence"] > 0.6 and e["trust"] > 0.5),
    ("reserved", lambda e: e["trust"] < 0.4 or e["valence"] < 0.35),
    ("urgent", lambda e: e["arousal"] > 0.65),
    ("unhurried", lambda e: e["arousal"] < 0.3),
    ("precise", lambda e: e["coherence"] > 0.75 and e["stability"] > 0.6),
    ("exploratory", lambda e: e["agency"] > 0.65 and e["arousal"] > 0.5),
    ("guiding", lambda e: e["agency"] > 0.65 and e["trust"] < 0.6),
    ("autonomous", lambda e: e["agency"] > 0.65 and e["trust"] >= 0.6),
    ("cautious", lambda e: e["trust"] < 0.4 or e["stability"] < 0.4 or e["fatigue"] > 0.6),
    ("concise", lambda e: e["fatigue"] > 0.5),
    ("abbreviated", lambda e: e["fatigue"] > 0.75),
    ("confident", lambda e: e["coherence"] > 0.7 and e["agency"] > 0.6),
    ("hedging", lambda e: e["coherence"] < 0.4),
)


def project_label(E: StateLike) -> str:
    """Exactly one label from the priority-ordered rule list."""
    view = _view(E)
    for name, rule in LABEL_RULES:
        if rule(view):
            return name
    return DEFAULT_LABEL


def project_tone_tags(E: StateLike) -> List[str]:
    """All tone tags whose rule holds, in rule order."""
    view = _view(E)
    return [name for name, rule in TONE_RULES if rule(view)]


def project_summary(E: StateLike) -> str:
    """Label plus tone tags as one display string."""
    label = project_label(E)
    tags = project_tone_tags(E)
    if not tags:
        return label
    return f"{label}; tone: {', '.join(tags)}"
