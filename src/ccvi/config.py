"""
Configuration for the CCVI dashboard.

Single place for API locations, cache windows, map defaults and the visual
constants shared by the map layer and the legend. Values that differ between
deployments can be overridden through environment variables.
"""

import os
from pathlib import Path

# ============================================================================
# Upstream API
# ============================================================================

API_BASE_URL = os.environ.get(
    "CCVI_API_BASE_URL",
    "https://pakwmis.iwmi.org/iwmi-ccvi/backend/api"
).rstrip("/")

REQUEST_TIMEOUT = float(os.environ.get("CCVI_REQUEST_TIMEOUT", "30"))

# Retries after the first attempt (connection errors, 429 and 5xx only)
RETRY_BUDGET = 2
RETRY_BACKOFF_FACTOR = 0.3
RETRY_STATUS_FORCELIST = (429, 500, 502, 503, 504)

USER_AGENT = "Mozilla/5.0 (CCVI Dashboard)"

# ============================================================================
# Cache windows (seconds)
# ============================================================================

CACHE_TTL = {
    'indicator_data': 5 * 60,
    'boundaries': 10 * 60,
    'years': 60 * 60,
}

DATA_CACHE_DIR = Path(__file__).resolve().parent.parent.parent / "data_cache"

# ============================================================================
# Map defaults
# ============================================================================

DEFAULT_VIEWPORT = {
    'longitude': 69.3451,
    'latitude': 30.3753,
    'zoom': 6,
}

MIN_ZOOM = 3
MAX_ZOOM = 12

# Bounding box used to place areas without a boundary match
PLACEHOLDER_BBOX = {
    'min_lon': 60.9,
    'max_lon': 77.8,
    'min_lat': 23.7,
    'max_lat': 37.1,
}

MAP_STYLE = os.environ.get("CCVI_MAP_STYLE", "carto-positron")
MAPBOX_TOKEN = os.environ.get("CCVI_MAPBOX_TOKEN") or None

MAP_HEIGHT = 650

DEFAULT_BACKEND = os.environ.get("CCVI_MAP_BACKEND", "plotly")

# ============================================================================
# Visual encoding
# ============================================================================

# (lower bound, upper bound, color, label), low to high intensity
COLOR_RAMP = [
    (0.0, 0.2, '#FFFFB2', 'Very Low'),
    (0.2, 0.4, '#FECC5C', 'Low'),
    (0.4, 0.6, '#FD8D3C', 'Medium'),
    (0.6, 0.8, '#F03B20', 'High'),
    (0.8, 1.0, '#BD0026', 'Very High'),
]

NO_DATA_COLOR = '#BDBDBD'

MARKER_RADIUS = {
    'min': 10,
    'max': 30,
}

MARKER_OPACITY = {
    'min': 0.6,
    'max': 0.9,
    'no_data': 0.4,
}

POLYGON_LINE_WEIGHT = 1

# ============================================================================
# Filters
# ============================================================================

DEFAULT_YEAR = 2023
DEFAULT_YEARS = [2020, 2021, 2022, 2023, 2024]

AREA_CLASSIFICATIONS = ['all', 'rural', 'urban']

LOG_LEVEL = os.environ.get("CCVI_LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
