"""Tests for CSV export and the summary report."""

import io
import math

import pandas as pd

from ccvi.endpoints import FilterState
from ccvi.pipeline import build_visual_features
from ccvi.reports import (
    EXPORT_COLUMNS,
    build_summary,
    export_csv,
    features_to_frame,
    render_report_markdown,
    unmatched_suggestions,
)

SQUARE = {'type': 'Polygon', 'coordinates': [[[70, 30], [71, 30], [71, 31], [70, 31], [70, 30]]]}

RAW = [
    {'id': i, 'name': name, 'province': 'Punjab', 'vulnerability_index': value}
    for i, (name, value) in enumerate([
        ('Lahore', 0.91), ('Multan', 0.72), ('Kasur', 0.55), ('Okara', 0.35),
        ('Sahiwal', 0.15), ('Jhang', 0.65), ('Rawalpindi Cty', None),
    ])
]
BOUNDARIES = {'units': [{'id': 1, 'name': n, 'geometry': SQUARE} for n in ['Lahore', 'Multan', 'Kasur', 'Rawalpindi']]}


def _features():
    return build_visual_features(RAW, BOUNDARIES, 'vulnerability')


def test_features_to_frame():
    df = features_to_frame(_features())

    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 7
    assert df.loc[0, 'category'] == 'Very High'
    assert df.loc[6, 'category'] == 'No data'
    assert math.isnan(df.loc[6, 'value'])


def test_export_csv():
    csv_text = export_csv(_features())
    df = pd.read_csv(io.StringIO(csv_text))

    assert csv_text.splitlines()[0] == ','.join(EXPORT_COLUMNS)
    assert len(df) == 7
    assert df['value'].isna().sum() == 1


def test_build_summary():
    summary = build_summary(_features())

    assert summary['total_areas'] == 7
    assert summary['areas_with_data'] == 6
    assert summary['no_data_count'] == 1
    assert summary['placeholder_count'] == 4
    assert summary['max'] == 0.91
    assert summary['min'] == 0.15
    assert round(summary['mean'], 4) == round((0.91 + 0.72 + 0.55 + 0.35 + 0.15 + 0.65) / 6, 4)
    assert summary['bucket_counts'] == {'Very Low': 1, 'Low': 1, 'Medium': 1, 'High': 2, 'Very High': 1}
    assert [a['name'] for a in summary['top_areas']] == ['Lahore', 'Multan', 'Jhang', 'Kasur', 'Okara']


def test_build_summary_empty():
    summary = build_summary([])

    assert summary['total_areas'] == 0
    assert summary['mean'] is None
    assert summary['top_areas'] == []
    assert sum(summary['bucket_counts'].values()) == 0


def test_render_report_markdown():
    filters = FilterState(boundary_level='districts', year=2022, area_classification='urban')
    report = render_report_markdown(build_summary(_features()), 'vulnerability', filters)

    assert report.startswith('# Overall Climate Vulnerability Report')
    assert '- **Year:** 2022' in report
    assert '- **Boundary level:** Districts' in report
    assert '- **Area classification:** Urban' in report
    assert '| High | 2 |' in report
    assert '1. Lahore (Punjab): 0.910' in report


def test_unmatched_suggestions():
    suggestions = unmatched_suggestions(_features(), ['LAHORE', 'MULTAN', 'KASUR', 'RAWALPINDI'])

    assert set(suggestions) == {'Okara', 'Sahiwal', 'Jhang', 'Rawalpindi Cty'}
    assert suggestions['Rawalpindi Cty'][0] == 'RAWALPINDI'
