"""
Configuration for metarwx.

Defaults can be overridden through environment variables.
"""

import os
import tempfile

# Data server
DEFAULT_BASE_URL = "https://aviationweather.gov/adds/dataserver_current/httpparam"
BASE_URL = os.getenv("METARWX_BASE_URL", DEFAULT_BASE_URL)
USER_AGENT = "Metar/1.0"
REQUEST_TIMEOUT = 15  # seconds

# Cache
CACHE_DIR = os.getenv("METARWX_CACHE_DIR", tempfile.gettempdir())
CACHE_PREFIX = "metar-"
CACHE_SUFFIX = ".xml"
CACHE_MAX_AGE_SECONDS = 15 * 60

# Delay between stations to avoid server throttling (0 disables)
THROTTLE_SECONDS = float(os.getenv("METARWX_THROTTLE_SECONDS", "1"))

# Output
DEFAULT_FORMAT = "{raw_text}\n"
MAX_RENDER_LENGTH = 8191
DEFAULT_MAX_ENTRIES = 10
DEFAULT_HOURS = 1

# Unit conversion
INHG_TO_MB = 33.8639
