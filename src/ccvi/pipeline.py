"""
Indicator data -> map features.

    raw response --normalize--> records --extract--> values
                 --bind--> geometries --encode--> VisualFeatures

A VisualFeature is {'id', 'geometry', 'properties', 'style', 'matched'}
where properties is the NormalizedRecord. The pipeline is a pure function of
its inputs: same response, same boundaries, same order -> same features.
"""

import logging
from typing import Any, Dict, List, Optional

from .encoding import style_of
from .geo_utils import bind, build_boundary_lookup
from .normalization import normalize_records

logger = logging.getLogger(__name__)


def _feature_ids(records: List[dict]) -> List[str]:
    # Record ids are not guaranteed unique across endpoint families.
    # Suffixed ids skip ids already used or present in the response.
    upstream = {str(record['id']) for record in records}
    used = set()
    ids = []
    for record in records:
        base = str(record['id'])
        feature_id = base
        suffix = 0
        while feature_id in used or (feature_id != base and feature_id in upstream):
            suffix += 1
            feature_id = f"{base}-{suffix}"
        used.add(feature_id)
        ids.append(feature_id)
    return ids


def encode_features(bound: List[dict]) -> List[dict]:
    """VisualFeatures from the Geometry Binder output."""
    records = [item['record'] for item in bound]
    features = []
    for feature_id, item in zip(_feature_ids(records), bound):
        record = item['record']
        features.append({
            'id': feature_id,
            'geometry': item['geometry'],
            'properties': dict(record),
            'style': style_of(record['value'], record['has_data']),
            'matched': item['matched'],
        })
    return features


def build_visual_features(
    indicator_payload: Any,
    boundary_payload: Any,
    indicator_id: str,
    bbox: Optional[Dict[str, float]] = None
) -> List[dict]:
    """
    Run the full normalization and binding pipeline.

    Args:
        indicator_payload: Decoded indicator response (any recognized shape)
        boundary_payload: Decoded administrative-units response, or None
        indicator_id: Indicator the response belongs to
        bbox: Placeholder bounding box override

    Returns:
        List of VisualFeatures, one per geographic unit
    """
    records = normalize_records(indicator_payload, indicator_id)
    if not records:
        logger.info(f"No {indicator_id} records to display")
        return []

    lookup = build_boundary_lookup(boundary_payload) if boundary_payload is not None else {}
    features = encode_features(bind(records, lookup, bbox))

    no_data = sum(1 for f in features if not f['properties']['has_data'])
    if no_data:
        logger.warning(f"{no_data}/{len(features)} {indicator_id} record(s) have no value")

    logger.info(f"Built {len(features)} {indicator_id} feature(s)")
    return features
