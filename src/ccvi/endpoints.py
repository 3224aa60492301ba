"""
Endpoint resolution for the IWMI CCVI API.

Maps an indicator id plus the user's filter selection to a fully-qualified
request URL. Two static tables drive it:

- ENDPOINT_PATHS: indicator id -> API path
- INDICATOR_PARAMS: indicator id -> extra query parameters (metric, parameter,
  age group) that select the leaf inside a shared endpoint

An indicator without an endpoint is an error; an indicator with an endpoint
but no extra parameters just gets none.
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from . import config
from .errors import UnknownIndicatorError

logger = logging.getLogger(__name__)


CLIMATE_STATISTICS = '/climate/climate/statistics'
ENVIRONMENTAL_PARAMETERS = '/climate/environmental/parameters'
HOUSEHOLD_STATISTICS = '/household/statistics'

ENDPOINT_PATHS = {
    # CCVI components
    'vulnerability': '/ccvi/vulnerability',
    'adaptive-capacity': '/ccvi/adaptive-capacity',
    'sensitivity': '/ccvi/sensitivity-index',
    'exposure': '/ccvi/exposure',

    # Exposure
    'avg-precipitation': CLIMATE_STATISTICS,
    'avg-temp': CLIMATE_STATISTICS,
    'wind-speed': CLIMATE_STATISTICS,
    'surface-pressure': CLIMATE_STATISTICS,
    'water-level-depth': ENVIRONMENTAL_PARAMETERS,
    'electrical-conductivity': ENVIRONMENTAL_PARAMETERS,
    'total-dissolved-solids': ENVIRONMENTAL_PARAMETERS,
    'residual-sodium-bicarbonate': ENVIRONMENTAL_PARAMETERS,
    'sodium-absorption-ratio': ENVIRONMENTAL_PARAMETERS,

    # Sensitivity
    'cooking-material': HOUSEHOLD_STATISTICS,
    'drinking-water-source': HOUSEHOLD_STATISTICS,
    'residence-type': HOUSEHOLD_STATISTICS,
    'house-walls-material': HOUSEHOLD_STATISTICS,
    'house-roof-material': HOUSEHOLD_STATISTICS,
    'toilet-facility': HOUSEHOLD_STATISTICS,
    'temporary-migration': HOUSEHOLD_STATISTICS,
    'elderly-individuals': '/population/age-distribution',
    'chronic-ill-patients': HOUSEHOLD_STATISTICS,
    'households-pwds': HOUSEHOLD_STATISTICS,
    'infant-deaths': HOUSEHOLD_STATISTICS,

    # Adaptive capacity
    'educated-individuals': HOUSEHOLD_STATISTICS,
    'employed-individuals': HOUSEHOLD_STATISTICS,
    'home-appliances': HOUSEHOLD_STATISTICS,
    'agricultural-land': HOUSEHOLD_STATISTICS,
    'livestock': HOUSEHOLD_STATISTICS,
}

INDICATOR_PARAMS = {
    'avg-precipitation': {'metric': 'precipitation'},
    'avg-temp': {'metric': 'temperature'},
    'wind-speed': {'metric': 'wind_speed'},
    'surface-pressure': {'metric': 'surface_pressure'},
    'water-level-depth': {'parameter': 'water_level_depth'},
    'electrical-conductivity': {'parameter': 'electrical_conductivity'},
    'total-dissolved-solids': {'parameter': 'total_dissolved_solids'},
    'residual-sodium-bicarbonate': {'parameter': 'residual_sodium_bicarbonate'},
    'sodium-absorption-ratio': {'parameter': 'sodium_absorption_ratio'},
    'cooking-material': {'metric': 'cooking_fuel'},
    'drinking-water-source': {'metric': 'drinking_water_source'},
    'residence-type': {'metric': 'residence_type'},
    'house-walls-material': {'metric': 'wall_material'},
    'house-roof-material': {'metric': 'roof_material'},
    'toilet-facility': {'metric': 'toilet_facility'},
    'temporary-migration': {'metric': 'temporary_migration'},
    'elderly-individuals': {'age_group': '65_plus'},
    'chronic-ill-patients': {'metric': 'chronic_illness'},
    'households-pwds': {'metric': 'persons_with_disabilities'},
    'infant-deaths': {'metric': 'infant_mortality'},
    'educated-individuals': {'metric': 'education_level'},
    'employed-individuals': {'metric': 'employment_status'},
    'home-appliances': {'metric': 'home_appliances'},
    'agricultural-land': {'metric': 'agricultural_land_ownership'},
    'livestock': {'metric': 'livestock_ownership'},
}

YEARS_PATH = '/location/years'
PROVINCES_PATH = '/location/provinces'
ADMINISTRATIVE_UNITS_PATH = '/administrative-units'

# Accepted spellings for the two boundary levels, including the
# county/tract wording of the US layout
BOUNDARY_LEVEL_ALIASES = {
    'primary': 'primary',
    'district': 'primary',
    'districts': 'primary',
    'county': 'primary',
    'counties': 'primary',
    'secondary': 'secondary',
    'tehsil': 'secondary',
    'tehsils': 'secondary',
    'tract': 'secondary',
    'tracts': 'secondary',
}

AREA_TYPES = {
    'primary': 'district',
    'secondary': 'tehsil',
}


def normalize_boundary_level(level: str) -> str:
    """Canonical boundary level ('primary' or 'secondary') for any accepted alias."""
    key = str(level).strip().lower()
    if key not in BOUNDARY_LEVEL_ALIASES:
        raise ValueError(f"Unknown boundary level: {level}")
    return BOUNDARY_LEVEL_ALIASES[key]


@dataclass(frozen=True)
class FilterState:
    """
    The user's current map selection.

    Immutable: every change produces a new instance, so equality doubles as
    the staleness check and the instance itself is a valid cache key.
    """

    indicator_id: str = 'vulnerability'
    boundary_level: str = 'secondary'
    region_id: Optional[int] = None
    year: int = config.DEFAULT_YEAR
    area_classification: str = 'all'

    def __post_init__(self):
        object.__setattr__(self, 'boundary_level', normalize_boundary_level(self.boundary_level))
        object.__setattr__(self, 'year', int(self.year))
        if self.region_id is not None:
            object.__setattr__(self, 'region_id', int(self.region_id))
        classification = str(self.area_classification).strip().lower()
        if classification not in config.AREA_CLASSIFICATIONS:
            raise ValueError(f"Unknown area classification: {self.area_classification}")
        object.__setattr__(self, 'area_classification', classification)

    @property
    def area_type(self) -> str:
        return AREA_TYPES[self.boundary_level]

    def key(self) -> str:
        """Stable serialization used in logs and cache keys."""
        return '|'.join(str(v) for v in asdict(self).values())

    def with_changes(self, **changes) -> 'FilterState':
        return replace(self, **changes)


def endpoint_url(indicator_id: str, base_url: Optional[str] = None) -> str:
    """
    Fully-qualified endpoint (no query string) for an indicator.

    Raises:
        UnknownIndicatorError: If no endpoint is registered for the id
    """
    path = ENDPOINT_PATHS.get(indicator_id)
    if path is None:
        raise UnknownIndicatorError(indicator_id)
    return f"{(base_url or config.API_BASE_URL).rstrip('/')}{path}"


def build_query(indicator_id: str, filters: FilterState) -> Dict[str, str]:
    """
    Query parameters for an indicator request.

    Order is area_type, province, year, area_classification, then the
    indicator-specific parameters. area_classification is omitted for 'all'.
    """
    query = {'area_type': filters.area_type}

    if filters.region_id is not None:
        query['province'] = str(filters.region_id)

    query['year'] = str(filters.year)

    if filters.area_classification != 'all':
        query['area_classification'] = filters.area_classification

    for name, value in INDICATOR_PARAMS.get(indicator_id, {}).items():
        query[name] = value

    return query


def resolve(indicator_id: str, filters: FilterState, base_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Resolve an indicator and filter set to a request.

    Args:
        indicator_id: Catalogue id, e.g. 'vulnerability' or 'avg-temp'
        filters: Current FilterState
        base_url: API root, defaults to config.API_BASE_URL

    Returns:
        {'url': full URL with query string, 'endpoint': URL without query,
         'query': ordered dict of parameters}

    Raises:
        UnknownIndicatorError: If the indicator has no registered endpoint
    """
    endpoint = endpoint_url(indicator_id, base_url)
    query = build_query(indicator_id, filters)
    url = f"{endpoint}?{urlencode(query)}"
    logger.debug(f"Resolved {indicator_id} [{filters.key()}] -> {url}")
    return {'url': url, 'endpoint': endpoint, 'query': query}


def parse_query(url: str) -> Dict[str, Any]:
    """
    Recover filter values from a resolved URL.

    Inverse of build_query for the filter fields; indicator-specific
    parameters are returned under 'extra'.
    """
    params = dict(parse_qsl(urlsplit(url).query))
    area_type = params.pop('area_type', None)
    province = params.pop('province', None)
    year = params.pop('year', None)
    classification = params.pop('area_classification', 'all')

    return {
        'boundary_level': normalize_boundary_level(area_type) if area_type else None,
        'region_id': int(province) if province is not None else None,
        'year': int(year) if year is not None else None,
        'area_classification': classification,
        'extra': params,
    }


def filters_from_url(url: str, indicator_id: str) -> FilterState:
    parsed = parse_query(url)
    return FilterState(
        indicator_id=indicator_id,
        boundary_level=parsed['boundary_level'] or 'secondary',
        region_id=parsed['region_id'],
        year=parsed['year'] if parsed['year'] is not None else config.DEFAULT_YEAR,
        area_classification=parsed['area_classification'],
    )


def boundary_request(filters: FilterState, base_url: Optional[str] = None) -> Dict[str, Any]:
    """Request for the administrative-unit geometries matching the filters."""
    endpoint = f"{(base_url or config.API_BASE_URL).rstrip('/')}{ADMINISTRATIVE_UNITS_PATH}"
    query = {'level': filters.area_type}
    if filters.region_id is not None:
        query['province_id'] = str(filters.region_id)
    return {'url': f"{endpoint}?{urlencode(query)}", 'endpoint': endpoint, 'query': query}


def years_url(base_url: Optional[str] = None) -> str:
    return f"{(base_url or config.API_BASE_URL).rstrip('/')}{YEARS_PATH}"
