"""
Tests for endpoint resolution.

Resolved URLs must carry the filter tuple exactly, so a parsed URL gives
back the selection it was built from.
"""

import pytest

from ccvi.endpoints import (
    FilterState,
    boundary_request,
    build_query,
    filters_from_url,
    normalize_boundary_level,
    parse_query,
    resolve,
)
from ccvi.errors import UnknownIndicatorError

BASE_URL = 'https://ccvi.test/api'


def test_tehsil_rural_scenario():
    filters = FilterState(
        indicator_id='vulnerability',
        boundary_level='tehsils',
        year=2023,
        area_classification='rural',
    )
    url = resolve('vulnerability', filters, base_url=BASE_URL)['url']

    assert url.startswith(f"{BASE_URL}/ccvi/vulnerability?")
    assert 'area_type=tehsil&year=2023&area_classification=rural' in url
    assert 'area_type=district' not in url


@pytest.mark.parametrize('filters', [
    FilterState(boundary_level='districts', year=2021, area_classification='urban'),
    FilterState(boundary_level='tehsils', region_id=3, year=2024, area_classification='rural'),
    FilterState(boundary_level='primary', region_id=1, year=2020),
])
def test_resolve_round_trip(filters):
    url = resolve(filters.indicator_id, filters, base_url=BASE_URL)['url']
    parsed = parse_query(url)

    assert parsed['boundary_level'] == filters.boundary_level
    assert parsed['region_id'] == filters.region_id
    assert parsed['year'] == filters.year
    assert parsed['area_classification'] == filters.area_classification
    assert filters_from_url(url, filters.indicator_id) == filters


def test_all_classification_is_omitted():
    filters = FilterState(area_classification='all')
    url = resolve('exposure', filters, base_url=BASE_URL)['url']

    assert 'area_classification' not in url
    assert parse_query(url)['area_classification'] == 'all'


def test_indicator_specific_parameters():
    filters = FilterState(boundary_level='districts', year=2022)
    request = resolve('avg-precipitation', filters, base_url=BASE_URL)

    assert request['endpoint'] == f"{BASE_URL}/climate/climate/statistics"
    assert list(request['query']) == ['area_type', 'year', 'metric']
    assert request['query']['metric'] == 'precipitation'
    assert parse_query(request['url'])['extra'] == {'metric': 'precipitation'}


def test_water_quality_uses_parameter():
    query = build_query('water-level-depth', FilterState())
    assert query['parameter'] == 'water_level_depth'


def test_component_without_extra_parameters():
    query = build_query('sensitivity', FilterState(region_id=2))
    assert query == {'area_type': 'tehsil', 'province': '2', 'year': '2023'}


def test_unknown_indicator_raises():
    with pytest.raises(UnknownIndicatorError) as excinfo:
        resolve('not-an-indicator', FilterState(), base_url=BASE_URL)
    assert excinfo.value.indicator_id == 'not-an-indicator'


@pytest.mark.parametrize('alias,expected', [
    ('district', 'primary'),
    ('Districts', 'primary'),
    ('county', 'primary'),
    ('tehsils', 'secondary'),
    ('tract', 'secondary'),
    ('secondary', 'secondary'),
])
def test_boundary_level_aliases(alias, expected):
    assert normalize_boundary_level(alias) == expected


def test_invalid_filters_rejected():
    with pytest.raises(ValueError):
        FilterState(boundary_level='village')
    with pytest.raises(ValueError):
        FilterState(area_classification='suburban')


def test_filter_state_is_value_object():
    a = FilterState(boundary_level='tehsils', year='2023', area_classification='Rural')
    b = FilterState(boundary_level='secondary', year=2023, area_classification='rural')

    assert a == b
    assert hash(a) == hash(b)
    assert a.key() == b.key()
    assert a.with_changes(year=2024) != a
    assert a.with_changes(year=2024).year == 2024


def test_boundary_request():
    filters = FilterState(boundary_level='districts', region_id=3)
    request = boundary_request(filters, base_url=BASE_URL)

    assert request['url'] == f"{BASE_URL}/administrative-units?level=district&province_id=3"
