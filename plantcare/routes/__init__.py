# =============================================================================
# PlantCare AI Backend
# routes/__init__.py - Routes Package
#
# This package contains all API route blueprints organized by feature.
# =============================================================================

from .scan import scan_bp
from .plants import plants_bp
from .insights import insights_bp
from .places import places_bp
from .translate import translate_bp

__all__ = [
    'scan_bp',
    'plants_bp',
    'insights_bp',
    'places_bp',
    'translate_bp'
]
