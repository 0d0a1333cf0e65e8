"""
Affective Translation Spine - bounded per-session affect state that
modulates agent behaviour through a deterministic policy layer.
"""

from .core.config import VERSION
from .core.service import AffectService

__version__ = VERSION

__all__ = [
    'AffectService',
    '__version__',
]
