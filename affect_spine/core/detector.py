"""
Rule-based affect detection from free text.

Produces candidate readings only. A reading becomes an event through
candidate_event(), and that event still goes through the validator like any
other untrusted input. No language model is involved.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

_FRUSTRATED = re.compile(
    r"\b(frustrated|annoyed|angry|hate|broken|stupid|terrible|useless|sucks|"
    r"why won't|doesn't work|not working|can't believe)\b"
)
_CONFUSED = re.compile(
    r"\b(confused|don't understand|what does|how does|i'm lost|makes no sense|explain|help me)\b"
)
_CURIOUS = re.compile(
    r"\b(interesting|curious|wonder|fascinating|tell me more|explore|what if|how about|could we)\b"
)
_SATISFIED = re.compile(
    r"\b(great|perfect|thanks|awesome|excellent|love it|works|nice|wonderful)\b"
)


@dataclass(frozen=True)
class AffectReading:
    """Candidate affect read from one message. valence in [-1, 1], the rest in [0, 1]."""
    valence: float = 0.0
    arousal: float = 0.5
    dominance: float = 0.5
    flow: float = 0.5
    primary: str = "neutral"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Checked in order; the first match wins
_RULES = (
    (_FRUSTRATED, AffectReading(valence=-0.7, arousal=0.8, dominance=0.3, flow=0.1, primary="frustration")),
    (_CONFUSED, AffectReading(valence=-0.3, arousal=0.6, dominance=0.3, flow=0.2, primary="confusion")),
    (_CURIOUS, AffectReading(valence=0.5, arousal=0.6, dominance=0.6, flow=0.6, primary="curiosity")),
    (_SATISFIED, AffectReading(valence=0.7, arousal=0.4, dominance=0.7, flow=0.7, primary="satisfaction")),
)

_INQUIRY = AffectReading(valence=0.1, arousal=0.5, dominance=0.5, flow=0.4, primary="inquiry")


def detect_affect(message: Any) -> AffectReading:
    """Classify a message with keyword rules. Non-text input reads as neutral."""
    if not isinstance(message, str) or not message.strip():
        return AffectReading()

    lower = message.lower()
    for pattern, reading in _RULES:
        if pattern.search(lower):
            return reading

    if "?" in message:
        return _INQUIRY

    return AffectReading()


def candidate_event(message: Any, source: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Raw USER_MESSAGE event for a message: intensity follows arousal,
    polarity follows valence. The result is raw input for emit_event.
    """
    reading = detect_affect(message)
    return {
        "type": "USER_MESSAGE",
        "intensity": reading.arousal,
        "polarity": reading.valence,
        "payload": {"detected": reading.primary, "dominance": reading.dominance, "flow": reading.flow},
        "source": dict(source) if isinstance(source, dict) else {},
    }
