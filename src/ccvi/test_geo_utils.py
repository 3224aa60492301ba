"""
Tests for region matching and geometry binding.

Every record must leave bind() with a usable geometry, matched or not, and
placeholders must not move between runs.
"""

import json

import pytest

from ccvi import config
from ccvi.geo_utils import (
    bind,
    build_boundary_lookup,
    extract_boundary_units,
    get_unmatched_regions,
    load_boundary_cache,
    match_region_name,
    normalize_region_name,
    parse_geometry,
    placeholder_geometry,
    save_boundary_cache,
    suggest_boundary_matches,
)

SQUARE = {
    'type': 'Polygon',
    'coordinates': [[[74.0, 31.0], [74.5, 31.0], [74.5, 31.5], [74.0, 31.5], [74.0, 31.0]]],
}

UNITS_RESPONSE = {
    'units': [
        {'id': 11, 'name': 'Lahore', 'geometry': json.dumps(SQUARE)},
        {'id': 12, 'name': 'Dera Ghazi Khan', 'geometry': SQUARE},
        {'id': 13, 'name': 'Broken', 'geometry': 'not json'},
        {'id': 14, 'geometry': SQUARE},
    ]
}


def _record(name, index=0):
    return {
        'id': index, 'name': name, 'region_name': name, 'province': 'Punjab',
        'district': None, 'value': 0.5, 'has_data': True,
    }


@pytest.mark.parametrize('raw,expected', [
    ('Lahore', 'LAHORE'),
    ('  dera   ghazi-khan ', 'DERA GHAZI KHAN'),
    ('Muzaffarābād', 'MUZAFFARABAD'),
    ('D.G. Khan', 'D G KHAN'),
    ('', ''),
    (None, ''),
])
def test_normalize_region_name(raw, expected):
    assert normalize_region_name(raw) == expected


def test_match_is_case_insensitive_exact():
    names = {'LAHORE', 'DERA GHAZI KHAN'}

    assert match_region_name('lahore', names) == 'LAHORE'
    assert match_region_name('Lahore Cantt', names) is None
    assert match_region_name('', names) is None


def test_match_uses_aliases():
    assert match_region_name('D.G. Khan', {'DERA GHAZI KHAN'}) == 'DERA GHAZI KHAN'
    assert match_region_name('Killa Abdullah', {'QILLA ABDULLAH'}) == 'QILLA ABDULLAH'


@pytest.mark.parametrize('raw', [
    SQUARE,
    json.dumps(SQUARE),
    {'type': 'Feature', 'properties': {}, 'geometry': SQUARE},
    json.dumps({'type': 'Feature', 'geometry': SQUARE}),
])
def test_parse_geometry_forms(raw):
    assert parse_geometry(raw) == SQUARE


@pytest.mark.parametrize('raw', [None, 'not json', 42, {'type': 'Polygon'}, {'foo': 'bar'}])
def test_parse_geometry_rejects_garbage(raw):
    assert parse_geometry(raw) is None


def test_extract_boundary_units_shapes():
    units = UNITS_RESPONSE['units']

    assert extract_boundary_units(UNITS_RESPONSE) == units
    assert extract_boundary_units(units) == units
    assert len(extract_boundary_units({'type': 'FeatureCollection', 'features': [{}, {}]})) == 2
    assert extract_boundary_units({'unexpected': True}) == []


def test_build_boundary_lookup_skips_unusable_units():
    lookup = build_boundary_lookup(UNITS_RESPONSE)

    assert set(lookup) == {'LAHORE', 'DERA GHAZI KHAN'}
    assert lookup['LAHORE']['id'] == 11
    assert lookup['LAHORE']['geometry'] == SQUARE


def test_build_boundary_lookup_from_feature_collection():
    payload = {
        'type': 'FeatureCollection',
        'features': [{'type': 'Feature', 'properties': {'NAME_3': 'Kasur', 'id': 5}, 'geometry': SQUARE}],
    }
    lookup = build_boundary_lookup(payload)

    assert lookup['KASUR']['name'] == 'Kasur'
    assert lookup['KASUR']['id'] == 5


def test_bind_matched_and_placeholder():
    lookup = build_boundary_lookup(UNITS_RESPONSE)
    records = [_record('Lahore', 0), _record('DG Khan', 1), _record('Nowhere', 2)]

    bound = bind(records, lookup)

    assert [b['matched'] for b in bound] == [True, True, False]
    assert bound[0]['geometry'] == SQUARE
    assert bound[1]['boundary_id'] == 12
    assert bound[2]['geometry']['type'] == 'Point'
    assert bound[2]['boundary_id'] is None


def test_bind_without_boundaries_places_every_record():
    records = [_record(f"Area {i}", i) for i in range(5)]
    bound = bind(records, None)

    assert len(bound) == 5
    assert all(b['geometry'] is not None and b['geometry']['type'] == 'Point' for b in bound)


def test_placeholder_deterministic_and_inside_bbox():
    bbox = config.PLACEHOLDER_BBOX
    points = [placeholder_geometry(i) for i in range(50)]

    assert points == [placeholder_geometry(i) for i in range(50)]
    assert len({tuple(p['coordinates']) for p in points}) == 50
    for point in points:
        lon, lat = point['coordinates']
        assert bbox['min_lon'] <= lon <= bbox['max_lon']
        assert bbox['min_lat'] <= lat <= bbox['max_lat']


def test_placeholder_custom_bbox():
    bbox = {'min_lon': 0.0, 'max_lon': 1.0, 'min_lat': 0.0, 'max_lat': 1.0}
    assert placeholder_geometry(0, bbox)['coordinates'] == [0.5, 0.333333]


def test_get_unmatched_regions():
    lookup = build_boundary_lookup(UNITS_RESPONSE)
    records = [_record('Lahore'), _record('Nowhere')]

    assert get_unmatched_regions(records, lookup) == ['Nowhere']


def test_suggest_boundary_matches():
    names = ['RAWALPINDI', 'LAHORE', 'MULTAN']

    assert suggest_boundary_matches('Rawalpindi City', names)[0] == 'RAWALPINDI'
    assert suggest_boundary_matches('Zzzz', names) == []
    assert suggest_boundary_matches('', names) == []


def test_boundary_cache_round_trip(tmp_path):
    path = save_boundary_cache(UNITS_RESPONSE, 'district', cache_dir=tmp_path)

    assert path == tmp_path / 'pakistan_district_units.json'
    assert load_boundary_cache('district', cache_dir=tmp_path) == UNITS_RESPONSE


def test_boundary_cache_missing_or_empty(tmp_path):
    assert load_boundary_cache('tehsil', cache_dir=tmp_path) is None

    save_boundary_cache({'units': []}, 'tehsil', cache_dir=tmp_path)
    assert load_boundary_cache('tehsil', cache_dir=tmp_path) is None
