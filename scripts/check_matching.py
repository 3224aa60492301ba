"""
Region matching analysis between an indicator response and the boundaries.

Shows which areas join to a boundary polygon and, for the rest, the closest
boundary names (useful when extending REGION_ALIASES).

Usage:
    python scripts/check_matching.py [indicator_id] [districts|tehsils] [year]
"""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from ccvi import config
from ccvi.api_client import CCVIApiClient
from ccvi.endpoints import FilterState
from ccvi.errors import CCVIError
from ccvi.geo_utils import (
    build_boundary_lookup,
    load_boundary_cache,
    match_region_name,
    normalize_region_name,
    suggest_boundary_matches,
)
from ccvi.normalization import normalize_records

logging.basicConfig(level=logging.WARNING, format=config.LOG_FORMAT)


def main(indicator_id: str = 'vulnerability', level: str = 'tehsils', year: int = config.DEFAULT_YEAR) -> int:
    filters = FilterState(indicator_id=indicator_id, boundary_level=level, year=year)
    client = CCVIApiClient()

    try:
        records = normalize_records(client.fetch_indicator_data(indicator_id, filters), indicator_id)
    except CCVIError as e:
        print(f"✗ Could not fetch {indicator_id}: {e}")
        return 1

    try:
        boundaries = client.fetch_boundaries(filters)
    except CCVIError as e:
        print(f"Boundary API failed ({e}), trying local cache")
        boundaries = load_boundary_cache(filters.area_type)
        if boundaries is None:
            print("✗ No cached boundaries either; run scripts/download_boundaries.py")
            return 1

    lookup = build_boundary_lookup(boundaries)
    boundary_names = set(lookup.keys())

    print("=" * 70)
    print("Region Matching Analysis")
    print("=" * 70)
    print(f"\nIndicator: {indicator_id} [{filters.key()}]")
    print(f"Data areas: {len(records)}")
    print(f"Boundary units: {len(boundary_names)}\n")

    matched = []
    unmatched = []
    for record in records:
        matched_name = match_region_name(record['region_name'], boundary_names)
        if matched_name:
            matched.append((record['name'], matched_name))
            print(f"✓ '{record['name']}' → '{matched_name}'")
        else:
            unmatched.append(record['name'])
            normalized = normalize_region_name(record['region_name'])
            print(f"✗ '{record['name']}' (normalized: '{normalized}') - NO MATCH")

    rate = len(matched) / len(records) * 100 if records else 0.0
    print(f"\n\nMatched: {len(matched)}/{len(records)} ({rate:.1f}%)")
    print(f"Unmatched: {len(unmatched)}")

    if unmatched:
        print("\nUnmatched areas:")
        for name in unmatched:
            print(f"  - {name}")
            similar = suggest_boundary_matches(name, boundary_names)
            if similar:
                print(f"    Closest boundary names: {similar}")

    return 0


if __name__ == "__main__":
    args = sys.argv[1:]
    sys.exit(main(
        args[0] if len(args) > 0 else 'vulnerability',
        args[1] if len(args) > 1 else 'tehsils',
        int(args[2]) if len(args) > 2 else config.DEFAULT_YEAR,
    ))
