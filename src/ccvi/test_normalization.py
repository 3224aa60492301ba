"""
Tests for response normalization.

The same underlying data in any of the four envelopes must come out as the
same NormalizedRecords.
"""

import pytest

from ccvi.errors import MalformedResponseError
from ccvi.normalization import (
    ARRAY,
    DATA_ENVELOPE,
    REGION_MAP,
    RESULTS_ENVELOPE,
    UNRECOGNIZED,
    detect_shape,
    normalize,
    normalize_records,
    snake_case,
)

ROWS = [
    {'name': 'A', 'district': 'Lahore', 'vulnerability_index': 0.42},
    {'name': 'B', 'district': 'Lahore', 'vulnerability_index': 0.9},
]

REGION_MAP_RESPONSE = {
    'district': 'Lahore',
    'tehsil_vulnerability': {
        'A': {'Vulnerability Index': 0.42},
        'B': {'Vulnerability Index': 0.9},
    },
}


@pytest.mark.parametrize('raw,expected_shape', [
    (ROWS, ARRAY),
    ({'data': ROWS}, DATA_ENVELOPE),
    ({'results': ROWS}, RESULTS_ENVELOPE),
    (REGION_MAP_RESPONSE, REGION_MAP),
    ({'message': 'ok'}, UNRECOGNIZED),
    ('oops', UNRECOGNIZED),
    (None, UNRECOGNIZED),
])
def test_detect_shape(raw, expected_shape):
    assert detect_shape(raw)[0] == expected_shape


def test_all_shapes_normalize_identically():
    expected = normalize_records(ROWS, 'vulnerability')

    for raw in ({'data': ROWS}, {'results': ROWS}, REGION_MAP_RESPONSE):
        assert normalize_records(raw, 'vulnerability') == expected

    assert [r['name'] for r in expected] == ['A', 'B']
    assert [r['value'] for r in expected] == [0.42, 0.9]
    assert all(r['district'] == 'Lahore' for r in expected)


def test_nested_region_map_scenario():
    raw = {'tehsil_vulnerability': {'A': {'Vulnerability Index': 0.42}, 'B': {'Vulnerability Index': 0.9}}}
    records = normalize_records(raw, 'vulnerability')

    assert len(records) == 2
    assert [r['name'] for r in records] == ['A', 'B']
    assert [r['value'] for r in records] == [0.42, 0.9]
    assert all(r['has_data'] for r in records)


def test_data_envelope_takes_priority_over_results():
    raw = {'data': [{'name': 'X', 'value': 0.1}], 'results': [{'name': 'Y', 'value': 0.2}]}
    assert [r['name'] for r in normalize(raw)] == ['X']


def test_region_map_prefers_vulnerability_key():
    raw = {
        'metadata': {'source': {'label': 'IWMI'}},
        'district_vulnerability': {'Multan': {'Vulnerability Index': 0.5}},
    }
    assert detect_shape(raw) == (REGION_MAP, 'district_vulnerability')


def test_region_map_copies_parent_context_and_aliases():
    records = normalize(REGION_MAP_RESPONSE)

    assert records[0]['district'] == 'Lahore'
    assert records[0]['Vulnerability Index'] == 0.42
    assert records[0]['vulnerability_index'] == 0.42


def test_region_map_metric_named_name_keeps_region_key():
    raw = {'district_vulnerability': {'Lahore': {'Name': 'Lahore District', 'name': 'LHR', 'value': 0.3}}}
    records = normalize(raw)

    assert records[0]['name'] == 'Lahore'
    assert records[0]['Name'] == 'Lahore District'
    assert normalize_records(raw, 'vulnerability')[0]['region_name'] == 'Lahore'


def test_unrecognized_shape_is_empty():
    assert normalize({'message': 'no data for this year'}) == []
    assert normalize_records(42, 'vulnerability') == []


def test_unrecognized_shape_strict():
    with pytest.raises(MalformedResponseError):
        normalize({'message': 'no data'}, strict=True)


def test_non_object_items_skipped():
    records = normalize([{'name': 'A', 'value': 0.3}, 'junk', None])
    assert len(records) == 1


def test_record_fallbacks():
    records = normalize_records([{'score': 'n/a'}], 'vulnerability')
    record = records[0]

    assert record['id'] == 0
    assert record['name'] == 'Area 1'
    assert record['region_name'] == ''
    assert record['province'] == 'Unknown'
    assert record['district'] is None
    assert record['has_data'] is False


def test_record_identity_fields():
    raw = [{'tehsil_id': 17, 'tehsil_name': 'Kasur', 'province_name': 'Punjab', 'value': '0.35'}]
    record = normalize_records(raw, 'exposure')[0]

    assert record['id'] == 17
    assert record['name'] == 'Kasur'
    assert record['province'] == 'Punjab'
    assert record['value'] == 0.35


def test_snake_case():
    assert snake_case('Vulnerability Index') == 'vulnerability_index'
    assert snake_case('Water-Level (m)') == 'water_level_m'
