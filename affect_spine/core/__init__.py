"""
Core affect engine: configuration, state transitions, session storage,
policy derivation and projection.
"""

from .defaults import DIMS, EVENT_TYPES, RESET_MODES
from .engine import apply_event, tick
from .policy import derive_policy
from .projection import project_label, project_summary, project_tone_tags
from .service import AffectService
from .store import SessionStore
from .validation import validate_event, validate_session_id

__all__ = [
    'DIMS',
    'EVENT_TYPES',
    'RESET_MODES',
    'apply_event',
    'tick',
    'derive_policy',
    'project_label',
    'project_summary',
    'project_tone_tags',
    'AffectService',
    'SessionStore',
    'validate_event',
    'validate_session_id',
]
