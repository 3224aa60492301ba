"""
Export and report actions for the map view.

Turns the displayed VisualFeatures into a pandas DataFrame for CSV export,
and into a summary (distribution, extremes, coverage) rendered as a small
markdown report.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from . import config
from .endpoints import FilterState
from .geo_utils import suggest_boundary_matches
from .indicators import display_label

logger = logging.getLogger(__name__)


EXPORT_COLUMNS = [
    'id', 'name', 'region_name', 'district', 'province',
    'value', 'has_data', 'category', 'color', 'matched',
]

NO_DATA_LABEL = 'No data'

TOP_N = 5


def _category(bucket: Optional[int]) -> str:
    if bucket is None:
        return NO_DATA_LABEL
    return config.COLOR_RAMP[bucket][3]


def features_to_frame(features: List[dict]) -> pd.DataFrame:
    """
    Flatten VisualFeatures into one row per area.

    Values of records without data are NaN, so they export as empty cells
    rather than as the 0.0 sentinel.
    """
    rows = []
    for feature in features:
        props = feature['properties']
        has_data = bool(props.get('has_data'))
        rows.append({
            'id': feature['id'],
            'name': props.get('name'),
            'region_name': props.get('region_name'),
            'district': props.get('district'),
            'province': props.get('province'),
            'value': props.get('value') if has_data else np.nan,
            'has_data': has_data,
            'category': _category(feature['style'].get('bucket')),
            'color': feature['style'].get('color'),
            'matched': bool(feature.get('matched')),
        })

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    df['value'] = df['value'].astype(float)
    return df


def export_csv(features: List[dict]) -> str:
    """CSV text of the displayed areas."""
    df = features_to_frame(features)
    logger.info(f"Exporting {len(df)} areas to CSV")
    return df.to_csv(index=False)


def build_summary(features: List[dict]) -> Dict[str, Any]:
    """
    Summarise the displayed features.

    Returns:
        dict with total_areas, areas_with_data, no_data_count,
        placeholder_count, mean/min/max (None without data),
        bucket_counts (ramp label -> count, low to high) and top_areas
    """
    df = features_to_frame(features)
    bucket_counts = {label: 0 for _lower, _upper, _color, label in config.COLOR_RAMP}

    if df.empty:
        return {
            'total_areas': 0,
            'areas_with_data': 0,
            'no_data_count': 0,
            'placeholder_count': 0,
            'mean': None,
            'min': None,
            'max': None,
            'bucket_counts': bucket_counts,
            'top_areas': [],
        }

    with_data = df[df['has_data']]
    for label, count in with_data['category'].value_counts().items():
        bucket_counts[label] = int(count)

    has_values = not with_data.empty
    top = with_data.nlargest(TOP_N, 'value')[['name', 'province', 'value']]

    return {
        'total_areas': len(df),
        'areas_with_data': len(with_data),
        'no_data_count': int((~df['has_data']).sum()),
        'placeholder_count': int((~df['matched']).sum()),
        'mean': float(with_data['value'].mean()) if has_values else None,
        'min': float(with_data['value'].min()) if has_values else None,
        'max': float(with_data['value'].max()) if has_values else None,
        'bucket_counts': bucket_counts,
        'top_areas': top.to_dict('records'),
    }


def unmatched_suggestions(features: List[dict], boundary_names: Iterable[str]) -> Dict[str, List[str]]:
    """Closest boundary names for every area shown with a placeholder."""
    boundary_names = list(boundary_names)
    suggestions = {}
    for feature in features:
        if feature.get('matched'):
            continue
        name = feature['properties'].get('region_name') or feature['properties'].get('name')
        suggestions[feature['properties'].get('name')] = suggest_boundary_matches(name, boundary_names)
    return suggestions


def _fmt(value: Optional[float]) -> str:
    return f"{value:.3f}" if value is not None else '-'


def render_report_markdown(summary: Dict[str, Any], indicator_id: str, filters: FilterState) -> str:
    """Markdown report for the current map selection."""
    level = 'Districts' if filters.boundary_level == 'primary' else 'Tehsils'
    classification = 'All Areas' if filters.area_classification == 'all' else filters.area_classification.capitalize()

    lines = [
        f"# {display_label(indicator_id)} Report",
        "",
        f"*Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}*",
        "",
        f"- **Year:** {filters.year}",
        f"- **Boundary level:** {level}",
        f"- **Area classification:** {classification}",
        "",
        "## Coverage",
        "",
        f"- Areas shown: {summary['total_areas']}",
        f"- Areas with data: {summary['areas_with_data']}",
        f"- Areas without data: {summary['no_data_count']}",
        f"- Approximate locations: {summary['placeholder_count']}",
        "",
        "## Statistics",
        "",
        f"- Mean: {_fmt(summary['mean'])}",
        f"- Min: {_fmt(summary['min'])}",
        f"- Max: {_fmt(summary['max'])}",
        "",
        "## Distribution",
        "",
        "| Category | Areas |",
        "|---|---|",
    ]
    for label, count in summary['bucket_counts'].items():
        lines.append(f"| {label} | {count} |")

    if summary['top_areas']:
        lines += ["", f"## Top {len(summary['top_areas'])} Areas", ""]
        for rank, area in enumerate(summary['top_areas'], start=1):
            lines.append(f"{rank}. {area['name']} ({area['province']}): {area['value']:.3f}")

    return '\n'.join(lines) + '\n'
