"""
Value extraction for CCVI records.

Each indicator has an ordered list of candidate field names; the first one
present with a numeric (or numeric-string) value wins and is clamped to
[0, 1]. When no candidate carries a usable number the record is flagged as
"no data" and NO_DATA_VALUE is returned in its place. Missing values are
never replaced by a made-up number.
"""

import logging
import math
import numbers
from typing import Any, List, Optional, Tuple

from .endpoints import INDICATOR_PARAMS

logger = logging.getLogger(__name__)


NO_DATA_VALUE = 0.0

GENERIC_VALUE_FIELDS = ['value']

VALUE_FIELDS = {
    'vulnerability': ['vulnerability_index', 'Vulnerability Index', 'vulnerability', 'value'],
    'adaptive-capacity': ['adaptive_capacity', 'adaptive_capacity_index', 'Adaptive Capacity', 'value'],
    'sensitivity': ['sensitivity_index', 'sensitivity', 'Sensitivity Index', 'Sensitivity', 'value'],
    'exposure': ['exposure', 'exposure_index', 'Exposure', 'value'],
}


def value_fields(indicator_id: str) -> List[str]:
    """
    Candidate fields for an indicator, most specific first.

    Leaf indicators look for the field named after their metric/parameter
    (e.g. 'precipitation', 'water_level_depth'), then 'normalized_value',
    then the generic 'value'.
    """
    if indicator_id in VALUE_FIELDS:
        return list(VALUE_FIELDS[indicator_id])

    params = INDICATOR_PARAMS.get(indicator_id)
    if params:
        field = next(iter(params.values()))
        return [field, f"{field}_index", 'normalized_value'] + GENERIC_VALUE_FIELDS

    return list(GENERIC_VALUE_FIELDS)


def coerce_number(raw: Any) -> Optional[float]:
    """
    Finite float from a number or numeric string; None for anything else.

    A trailing '%' marks a percentage and is scaled to a fraction.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, numbers.Real):
        try:
            number = float(raw)
        except OverflowError:
            # Integers beyond float range, e.g. a 400-digit JSON number
            return None
    elif isinstance(raw, str):
        text = raw.strip()
        percent = text.endswith('%')
        text = text.rstrip('%').strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if percent:
            number /= 100
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp_unit(number: float) -> float:
    return min(1.0, max(0.0, number))


def extract_value_with_status(record: dict, indicator_id: str) -> Tuple[float, bool]:
    """
    Select and clamp the indicator value of a record.

    Returns:
        (value in [0, 1], has_data). has_data is False when no candidate
        field held a usable number, in which case value is NO_DATA_VALUE.
    """
    for field in value_fields(indicator_id):
        if field not in record:
            continue
        number = coerce_number(record[field])
        if number is not None:
            return clamp_unit(number), True

    logger.debug(f"No value for {indicator_id} in record {record.get('name', '<unnamed>')}")
    return NO_DATA_VALUE, False


def extract_value(record: dict, indicator_id: str) -> float:
    """Indicator value of a record in [0, 1]; NO_DATA_VALUE when absent."""
    value, _ = extract_value_with_status(record, indicator_id)
    return value
