"""
Visual encoding for indicator values.

Maps a value in [0, 1] to a color bucket, marker radius and opacity. The map
layer and the legend read the same COLOR_RAMP, so they cannot disagree.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from . import config

logger = logging.getLogger(__name__)


# Upper bounds of buckets 0..3; bucket 4 runs up to and including 1.0
BREAKPOINTS = np.array([upper for _lower, upper, _color, _label in config.COLOR_RAMP[:-1]])

BUCKET_COLORS = [color for _lower, _upper, color, _label in config.COLOR_RAMP]


def bucket_index(value: float) -> int:
    """Color bucket 0..4 for a value; out-of-range input is clamped first."""
    clamped = float(np.clip(value, 0.0, 1.0))
    return int(np.digitize(clamped, BREAKPOINTS, right=False))


def radius_of(value: float) -> float:
    """Clamped-linear marker radius: value * max, floored at min."""
    clamped = float(np.clip(value, 0.0, 1.0))
    radius = clamped * config.MARKER_RADIUS['max']
    return float(np.clip(radius, config.MARKER_RADIUS['min'], config.MARKER_RADIUS['max']))


def opacity_of(value: float) -> float:
    clamped = float(np.clip(value, 0.0, 1.0))
    low, high = config.MARKER_OPACITY['min'], config.MARKER_OPACITY['max']
    return round(low + (high - low) * clamped, 4)


def no_data_style() -> Dict[str, object]:
    return {
        'color': config.NO_DATA_COLOR,
        'radius': float(config.MARKER_RADIUS['min']),
        'opacity': config.MARKER_OPACITY['no_data'],
        'weight': config.POLYGON_LINE_WEIGHT,
        'bucket': None,
    }


def style_of(value: float, has_data: bool = True) -> Dict[str, object]:
    """
    Style for one feature.

    Returns:
        {'color', 'radius', 'opacity', 'weight', 'bucket'}; bucket is None
        for records without data
    """
    if not has_data:
        return no_data_style()

    bucket = bucket_index(value)
    return {
        'color': BUCKET_COLORS[bucket],
        'radius': radius_of(value),
        'opacity': opacity_of(value),
        'weight': config.POLYGON_LINE_WEIGHT,
        'bucket': bucket,
    }


def legend_entries(include_no_data: bool = True) -> List[Dict[str, object]]:
    """Legend rows, low to high, e.g. {'range': '0.0 - 0.2', 'label': 'Very Low', ...}."""
    entries = [
        {
            'bucket': bucket,
            'range': f"{lower:.1f} - {upper:.1f}",
            'label': label,
            'color': color,
        }
        for bucket, (lower, upper, color, label) in enumerate(config.COLOR_RAMP)
    ]
    if include_no_data:
        entries.append({'bucket': None, 'range': '-', 'label': 'No data', 'color': config.NO_DATA_COLOR})
    return entries


def legend_caption(boundary_level: str, n_areas: Optional[int], area_classification: str) -> str:
    """'Showing tehsils level data (12 areas) - Rural'."""
    level_label = 'districts' if boundary_level == 'primary' else 'tehsils'
    count = f" ({n_areas} areas)" if n_areas is not None else ''
    classification = 'All Areas' if area_classification == 'all' else area_classification.capitalize()
    return f"Showing {level_label} level data{count} - {classification}"
