# =============================================================================
# PlantCare AI Backend
# extensions.py - Flask Extensions Initialization
#
# This module initializes Flask extensions without the app instance to prevent
# circular imports. Extensions are initialized with the app in the factory.
# =============================================================================

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# =============================================================================
# Cross-Origin Resource Sharing
# Lets the browser/mobile client call the API from a different origin
# =============================================================================
cors = CORS()

# =============================================================================
# Rate Limiting
# Protects the AI, weather and map proxies from abuse
# =============================================================================
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per hour"],
    storage_uri="memory://",
    strategy="fixed-window"
)
