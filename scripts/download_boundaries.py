"""
Manual boundary download script for Pakistan administrative units.

Fetches districts and tehsils from the CCVI API and caches them under
data_cache/, so the Streamlit app can draw polygons when the boundary
endpoint is down.

Usage:
    python scripts/download_boundaries.py            # both levels
    python scripts/download_boundaries.py districts  # one level
"""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from ccvi import config
from ccvi.api_client import CCVIApiClient
from ccvi.endpoints import FilterState
from ccvi.errors import MalformedResponseError, NetworkError
from ccvi.geo_utils import build_boundary_lookup, extract_boundary_units, save_boundary_cache

logging.basicConfig(level=logging.WARNING, format=config.LOG_FORMAT)

LEVELS = ['districts', 'tehsils']


def download_boundaries(level: str, client: CCVIApiClient) -> bool:
    """Download one boundary level and save it to the cache."""
    filters = FilterState(boundary_level=level)
    print(f"[{level}] Fetching {filters.area_type} units from {client.base_url}")

    try:
        payload = client.fetch_boundaries(filters)
    except (NetworkError, MalformedResponseError) as e:
        print(f"  ✗ Failed: {e}\n")
        return False

    units = extract_boundary_units(payload)
    if not units:
        print("  ✗ Response holds no units\n")
        return False

    usable = len(build_boundary_lookup(payload))
    cache_file = save_boundary_cache(payload, filters.area_type)
    if cache_file is None:
        print("  ✗ Could not write cache file\n")
        return False

    print(f"  ✓ {len(units)} units ({usable} with name and geometry)")
    print(f"  ✓ Saved to: {cache_file}\n")
    return True


if __name__ == "__main__":
    print("=" * 70)
    print("Pakistan Administrative Boundaries Downloader")
    print("=" * 70 + "\n")

    levels = sys.argv[1:] or LEVELS
    client = CCVIApiClient()
    results = [download_boundaries(level, client) for level in levels]

    if all(results):
        print("🎉 Boundaries ready! Refresh your Streamlit app.")
    else:
        print("❌ Some downloads failed; the app will fall back to approximate locations.")
        sys.exit(1)
