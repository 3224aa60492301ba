"""
Response normalization for the IWMI CCVI API.

Endpoint families disagree on the envelope around their records. The
recognized shapes, checked in this order:

1. ARRAY:             [ {...}, {...} ]
2. DATA_ENVELOPE:     {"data": [ ... ]}
3. RESULTS_ENVELOPE:  {"results": [ ... ]}
4. REGION_MAP:        {"tehsil_vulnerability": {"A": {...metrics}, ...},
                       "district": "..."}

Anything else is UNRECOGNIZED: logged and treated as an empty result unless
the caller asks for strict handling.
"""

import logging
import re
from typing import Any, List, Optional, Tuple

from .errors import MalformedResponseError
from .value_extraction import extract_value_with_status

logger = logging.getLogger(__name__)


ARRAY = 'array'
DATA_ENVELOPE = 'data'
RESULTS_ENVELOPE = 'results'
REGION_MAP = 'region_map'
UNRECOGNIZED = 'unrecognized'

# Scalar fields of a REGION_MAP response that describe the enclosing area
PARENT_CONTEXT_FIELDS = ['district', 'district_name', 'province', 'province_name', 'year']

ID_FIELDS = ['id', 'district_id', 'tehsil_id']
NAME_FIELDS = ['name', 'district_name', 'tehsil_name', 'area_name', 'tehsil', 'district']
PROVINCE_FIELDS = ['province_name', 'province']
DISTRICT_FIELDS = ['district', 'district_name']


def snake_case(label: str) -> str:
    """'Vulnerability Index' -> 'vulnerability_index'."""
    return re.sub(r'[^a-z0-9]+', '_', str(label).lower()).strip('_')


def _is_region_map(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and len(value) > 0
        and all(isinstance(v, dict) for v in value.values())
    )


def _find_region_map_key(raw: dict) -> Optional[str]:
    # Prefer the '<boundary>_vulnerability' naming used by the ccvi endpoints
    candidates = [k for k, v in raw.items() if _is_region_map(v)]
    for key in candidates:
        if str(key).endswith('_vulnerability'):
            return key
    return candidates[0] if candidates else None


def detect_shape(raw: Any) -> Tuple[str, Optional[str]]:
    """
    Classify a response body.

    Returns:
        (shape tag, region map key or None)
    """
    if isinstance(raw, list):
        return ARRAY, None

    if isinstance(raw, dict):
        if isinstance(raw.get('data'), list):
            return DATA_ENVELOPE, None
        if isinstance(raw.get('results'), list):
            return RESULTS_ENVELOPE, None
        key = _find_region_map_key(raw)
        if key is not None:
            return REGION_MAP, key

    return UNRECOGNIZED, None


def flatten_region_map(raw: dict, key: str) -> List[dict]:
    """
    One record per region of a REGION_MAP response.

    The region name becomes 'name', the parent context (enclosing district,
    province) is copied onto every record, and each metric is kept under its
    original label plus a snake_case alias.
    """
    parent = {
        field: raw[field]
        for field in PARENT_CONTEXT_FIELDS
        if field in raw and not isinstance(raw[field], (dict, list))
    }

    records = []
    for region_name, metrics in raw[key].items():
        record = dict(parent)
        for label, value in metrics.items():
            record[label] = value
            alias = snake_case(label)
            if alias and alias not in record:
                record[alias] = value
        # A metric labelled 'name' must not replace the region key
        record['name'] = region_name
        records.append(record)

    return records


def normalize(raw: Any, strict: bool = False) -> List[dict]:
    """
    Turn any recognized response body into an ordered list of raw records.

    Args:
        raw: Decoded JSON body
        strict: Raise instead of returning [] for an unrecognized shape

    Returns:
        List of record dicts, in response order

    Raises:
        MalformedResponseError: Only when strict=True and the shape is unknown
    """
    shape, key = detect_shape(raw)

    if shape == ARRAY:
        items = raw
    elif shape == DATA_ENVELOPE:
        items = raw['data']
    elif shape == RESULTS_ENVELOPE:
        items = raw['results']
    elif shape == REGION_MAP:
        items = flatten_region_map(raw, key)
    else:
        preview = str(raw)[:200]
        if strict:
            raise MalformedResponseError(type(raw).__name__, preview)
        logger.warning(f"Unexpected data structure, showing empty map: {preview}")
        return []

    records = [item for item in items if isinstance(item, dict)]
    skipped = len(items) - len(records)
    if skipped:
        logger.warning(f"Skipped {skipped} non-object item(s) in {shape} response")

    logger.info(f"Normalized {len(records)} record(s) from {shape} response")
    return records


def _first_present(record: dict, fields: List[str]) -> Any:
    for field in fields:
        value = record.get(field)
        if value is not None and value != '':
            return value
    return None


def to_normalized_record(raw_record: dict, indicator_id: str, index: int) -> dict:
    """
    Build a NormalizedRecord from one raw record.

    Fields: id, name, region_name, province, district, value, has_data.
    region_name is the join key for the boundary lookup and stays empty when
    the record carries no usable name; name then falls back to 'Area N'.
    """
    record_id = _first_present(raw_record, ID_FIELDS)
    region_name = _first_present(raw_record, NAME_FIELDS)
    province = _first_present(raw_record, PROVINCE_FIELDS)
    district = _first_present(raw_record, DISTRICT_FIELDS)
    value, has_data = extract_value_with_status(raw_record, indicator_id)

    return {
        'id': record_id if record_id is not None else index,
        'name': str(region_name) if region_name is not None else f"Area {index + 1}",
        'region_name': str(region_name) if region_name is not None else '',
        'province': str(province) if province is not None else 'Unknown',
        'district': str(district) if district is not None else None,
        'value': value,
        'has_data': has_data,
    }


def normalize_records(raw: Any, indicator_id: str, strict: bool = False) -> List[dict]:
    """normalize() followed by to_normalized_record() for every record."""
    return [
        to_normalized_record(item, indicator_id, index)
        for index, item in enumerate(normalize(raw, strict=strict))
    ]
