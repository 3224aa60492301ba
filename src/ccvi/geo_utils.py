"""
Geospatial utilities for Pakistan district/tehsil mapping.

Handles:
- Region name normalization and alias resolution
- Administrative-unit boundary parsing and lookup
- Joining normalized records to boundary geometries
- Deterministic placeholder geometries for unmatched regions
- Local caching of boundary datasets
"""

import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Optional

from rapidfuzz import fuzz, process

from . import config

logger = logging.getLogger(__name__)


# Region name aliases for matching
# Format: DATA_NAME -> BOUNDARY_NAME (both normalized)
# Only explicit spelling variants, no fuzzy guessing
REGION_ALIASES = {
    # Punjab - abbreviated forms used by survey tables
    'D G KHAN': 'DERA GHAZI KHAN',
    'DG KHAN': 'DERA GHAZI KHAN',
    'T T SINGH': 'TOBA TEK SINGH',
    'TT SINGH': 'TOBA TEK SINGH',
    'R Y KHAN': 'RAHIM YAR KHAN',
    'RY KHAN': 'RAHIM YAR KHAN',
    'M B DIN': 'MANDI BAHAUDDIN',
    'MANDI BAHA UD DIN': 'MANDI BAHAUDDIN',
    'NANKANA': 'NANKANA SAHIB',

    # Khyber Pakhtunkhwa
    'D I KHAN': 'DERA ISMAIL KHAN',
    'DI KHAN': 'DERA ISMAIL KHAN',
    'LAKKI': 'LAKKI MARWAT',

    # Sindh - renamed or alternately spelled districts
    'SHAHEED BENAZIRABAD': 'NAWABSHAH',
    'SHAHEED BENAZIR ABAD': 'NAWABSHAH',
    'NAUSHAHRO FIROZE': 'NAUSHAHRO FEROZE',
    'QAMBAR SHAHDADKOT': 'KAMBAR SHAHDADKOT',
    'TANDO MUHAMMAD KHAN': 'TANDO MOHAMMAD KHAN',

    # Balochistan
    'KACHHI': 'BOLAN',
    'KILLA ABDULLAH': 'QILLA ABDULLAH',
    'KILLA SAIFULLAH': 'QILLA SAIFULLAH',
}

BOUNDARY_NAME_KEYS = [
    'name', 'NAME', 'tehsil', 'tehsil_name', 'district', 'district_name',
    'NAME_3', 'NAME_2', 'area_name',
]


def normalize_region_name(name: Any) -> str:
    """
    Normalize a region name for matching.

    Rules:
    1. Unicode normalize (NFKD) and drop combining marks
    2. Convert to UPPERCASE
    3. Replace separators (-, _, ., /, parentheses) with spaces
    4. Collapse whitespace
    """
    if not isinstance(name, str) or not name.strip():
        return ""

    name = unicodedata.normalize('NFKD', name)
    name = ''.join(ch for ch in name if not unicodedata.combining(ch))
    name = name.upper()
    name = re.sub(r'[-_./()]', ' ', name)
    name = re.sub(r'\s+', ' ', name)

    return name.strip()


def resolve_region_alias(normalized_name: str) -> str:
    return REGION_ALIASES.get(normalized_name, normalized_name)


def match_region_name(data_name: str, boundary_names, verbose: bool = False) -> Optional[str]:
    """
    Match a region name from indicator data to a boundary dataset name.

    Matching strategy:
    1. Normalize the name
    2. Direct (case-insensitive exact) match
    3. Alias resolution + exact match

    Args:
        data_name: Region name from indicator data
        boundary_names: Set (or dict) of normalized boundary names
        verbose: Log every attempt

    Returns:
        Matched normalized boundary name or None
    """
    normalized = normalize_region_name(data_name)

    if not normalized:
        return None

    if normalized in boundary_names:
        if verbose:
            logger.info(f"✓ Direct match: {data_name} → {normalized}")
        return normalized

    resolved = resolve_region_alias(normalized)
    if resolved != normalized and resolved in boundary_names:
        if verbose:
            logger.info(f"✓ Alias match: {data_name} → {resolved}")
        return resolved

    if verbose:
        logger.warning(f"✗ No match: {data_name} (normalized: {normalized})")
    return None


def parse_geometry(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Parse a boundary geometry from whatever form the API sends.

    Accepts a GeoJSON geometry dict, a Feature (its geometry is used) or a
    stringified version of either. Returns None for anything unusable.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid geometry string: {e}")
            return None

    if not isinstance(raw, dict):
        return None

    if raw.get('type') == 'Feature':
        return parse_geometry(raw.get('geometry'))

    if raw.get('type') == 'GeometryCollection' and isinstance(raw.get('geometries'), list):
        return raw

    if 'type' in raw and isinstance(raw.get('coordinates'), list):
        return {'type': raw['type'], 'coordinates': raw['coordinates']}

    return None


def extract_boundary_units(payload: Any) -> List[dict]:
    """
    Units from an administrative-units response.

    Handles {"units": [...]}, a bare array and a GeoJSON FeatureCollection.
    """
    if isinstance(payload, list):
        return [u for u in payload if isinstance(u, dict)]

    if isinstance(payload, dict):
        if isinstance(payload.get('units'), list):
            return [u for u in payload['units'] if isinstance(u, dict)]
        if isinstance(payload.get('features'), list):
            return [f for f in payload['features'] if isinstance(f, dict)]

    if payload:
        logger.warning(f"Unexpected boundary payload: {str(payload)[:200]}")
    return []


def _unit_name(unit: dict) -> Optional[str]:
    for source in (unit, unit.get('properties') or {}):
        for key in BOUNDARY_NAME_KEYS:
            if isinstance(source.get(key), str) and source[key].strip():
                return source[key]
    return None


def build_boundary_lookup(payload: Any) -> Dict[str, dict]:
    """
    Build a lookup from an administrative-units response.

    Returns:
        Dict mapping normalized name → {'id', 'name', 'geometry'}; units
        without a name or a parsable geometry are skipped
    """
    lookup = {}
    units = extract_boundary_units(payload)

    for unit in units:
        name = _unit_name(unit)
        geometry = parse_geometry(unit.get('geometry'))
        if not name or geometry is None:
            continue

        normalized = normalize_region_name(name)
        if normalized:
            unit_id = unit.get('id', (unit.get('properties') or {}).get('id'))
            lookup[normalized] = {'id': unit_id, 'name': name, 'geometry': geometry}

    logger.info(f"Built boundary lookup for {len(lookup)}/{len(units)} units")
    return lookup


def _halton(index: int, base: int) -> float:
    result = 0.0
    fraction = 1.0
    i = index
    while i > 0:
        fraction /= base
        result += fraction * (i % base)
        i //= base
    return result


def placeholder_geometry(index: int, bbox: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    """
    Deterministic stand-in point for a region without a boundary match.

    Points follow a Halton (2, 3) sequence over the bounding box, so the
    same ordinal index always lands on the same spot and successive indices
    spread out instead of clustering.
    """
    bbox = bbox or config.PLACEHOLDER_BBOX
    lon = bbox['min_lon'] + _halton(index + 1, 2) * (bbox['max_lon'] - bbox['min_lon'])
    lat = bbox['min_lat'] + _halton(index + 1, 3) * (bbox['max_lat'] - bbox['min_lat'])
    return {'type': 'Point', 'coordinates': [round(lon, 6), round(lat, 6)]}


def bind(
    records: List[dict],
    boundary_lookup: Optional[Dict[str, dict]],
    bbox: Optional[Dict[str, float]] = None
) -> List[dict]:
    """
    Attach a geometry to every normalized record.

    Args:
        records: NormalizedRecords, in display order
        boundary_lookup: Output of build_boundary_lookup (may be empty/None)
        bbox: Bounding box for placeholders

    Returns:
        List of {'record', 'geometry', 'matched', 'boundary_id'}; unmatched
        records carry a placeholder point keyed on their ordinal index
    """
    boundary_lookup = boundary_lookup or {}
    bound = []
    matched_count = 0

    for index, record in enumerate(records):
        matched_name = match_region_name(record.get('region_name', ''), boundary_lookup)
        if matched_name:
            unit = boundary_lookup[matched_name]
            bound.append({
                'record': record,
                'geometry': unit['geometry'],
                'matched': True,
                'boundary_id': unit['id'],
            })
            matched_count += 1
        else:
            logger.debug(f"No boundary for {record.get('name')}, using placeholder")
            bound.append({
                'record': record,
                'geometry': placeholder_geometry(index, bbox),
                'matched': False,
                'boundary_id': None,
            })

    if records:
        match_rate = matched_count / len(records) * 100
        logger.info(f"Matched {matched_count}/{len(records)} regions ({match_rate:.1f}%)")

    return bound


def get_unmatched_regions(records: List[dict], boundary_lookup: Dict[str, dict]) -> List[str]:
    """Names of records that have no boundary match."""
    return [
        record['name'] for record in records
        if not match_region_name(record.get('region_name', ''), boundary_lookup)
    ]


def suggest_boundary_matches(
    name: str,
    boundary_names,
    limit: int = 3,
    score_cutoff: int = 70
) -> List[str]:
    """
    Closest boundary names for an unmatched region.

    Diagnostics only: suggestions help curate REGION_ALIASES and are never
    used for the join itself.
    """
    normalized = normalize_region_name(name)
    if not normalized or not boundary_names:
        return []

    matches = process.extract(
        normalized,
        list(boundary_names),
        scorer=fuzz.token_sort_ratio,
        limit=limit,
        score_cutoff=score_cutoff
    )
    return [match for match, _score, _idx in matches]


def boundary_cache_path(level: str, cache_dir: Optional[Path] = None) -> Path:
    cache_dir = Path(cache_dir) if cache_dir else config.DATA_CACHE_DIR
    return cache_dir / f"pakistan_{level}_units.json"


def save_boundary_cache(payload: Any, level: str, cache_dir: Optional[Path] = None) -> Optional[Path]:
    """Write an administrative-units payload to the local cache."""
    cache_file = boundary_cache_path(level, cache_dir)
    try:
        cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(cache_file, 'w', encoding='utf-8') as f:
            json.dump(payload, f)
        logger.info(f"✓ Cached {level} boundaries to {cache_file}")
        return cache_file
    except OSError as e:
        logger.warning(f"Failed to cache {level} boundaries: {e}")
        return None


def load_boundary_cache(level: str, cache_dir: Optional[Path] = None) -> Optional[Any]:
    """
    Read a cached administrative-units payload.

    Returns None when the file is missing, unreadable or holds no units.
    """
    cache_file = boundary_cache_path(level, cache_dir)
    if not cache_file.exists():
        return None

    try:
        with open(cache_file, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load cached boundaries: {e}")
        return None

    if not extract_boundary_units(payload):
        logger.warning(f"Cached boundaries at {cache_file} hold no units")
        return None

    logger.info(f"✓ Loaded {level} boundaries from cache: {cache_file}")
    return payload
