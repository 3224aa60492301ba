"""
Indicator catalogue for the Pakistan Climate Change Vulnerability Index.

The four CCVI components (vulnerability, adaptive capacity, sensitivity,
exposure) and the leaf indicators that feed them. Every entry is an
IndicatorDescriptor dict:

    {'id', 'display_name', 'description', 'parent_category'}

The catalogue is static and loaded at import time; callers get copies so the
module-level data stays immutable in practice.
"""

import logging
from typing import Dict, List, Optional

from .errors import UnknownIndicatorError

logger = logging.getLogger(__name__)

COMPONENT_IDS = ['vulnerability', 'adaptive-capacity', 'sensitivity', 'exposure']

_CATALOGUE = [
    # ==== CCVI components ====
    ('vulnerability', 'Overall Climate Vulnerability',
     'Climate Change Vulnerability Index combining adaptive capacity, sensitivity, and exposure indicators.',
     None),
    ('adaptive-capacity', 'Adaptive Capacity',
     'The ability of systems, institutions, humans and other organisms to adjust to potential damage, '
     'to take advantage of opportunities, or to respond to consequences.',
     None),
    ('sensitivity', 'Sensitivity Index',
     'The degree to which a system is affected, either adversely or beneficially, by climate-related stimuli.',
     None),
    ('exposure', 'Exposure',
     'The presence of people, livelihoods, species or ecosystems, environmental functions, services, '
     'and resources that could be adversely affected.',
     None),

    # ==== Exposure ====
    ('avg-precipitation', 'Average Level of Precipitation',
     'Average precipitation levels indicating climate exposure.', 'exposure'),
    ('avg-temp', 'Average Level of Min and Max Temperature',
     'Temperature extremes indicating climate exposure.', 'exposure'),
    ('water-level-depth', 'Water Level Depth',
     'Groundwater level measurements.', 'exposure'),
    ('electrical-conductivity', 'Electrical Conductivity',
     'Water quality parameter indicating salinity.', 'exposure'),
    ('total-dissolved-solids', 'Total Dissolved Solids',
     'Water quality parameter indicating dissolved mineral content.', 'exposure'),
    ('residual-sodium-bicarbonate', 'Residual Sodium Bicarbonate',
     'Water quality parameter affecting soil and crop health.', 'exposure'),
    ('sodium-absorption-ratio', 'Sodium Absorption Ratio',
     'Water quality parameter affecting soil structure.', 'exposure'),
    ('wind-speed', 'Wind Speed',
     'Average wind speed measurements.', 'exposure'),
    ('surface-pressure', 'Surface Pressure',
     'Atmospheric pressure measurements.', 'exposure'),

    # ==== Sensitivity ====
    ('cooking-material', 'Material used for burning during cooking',
     'Type of cooking fuel used in households.', 'sensitivity'),
    ('drinking-water-source', 'Source used for Drinking Water',
     'Primary source of drinking water for households.', 'sensitivity'),
    ('residence-type', 'Type of Residence',
     'Housing type and quality indicators.', 'sensitivity'),
    ('house-walls-material', 'Material used to build house walls',
     'Construction materials for house walls.', 'sensitivity'),
    ('house-roof-material', 'Material used to build house roof',
     'Construction materials for house roofs.', 'sensitivity'),
    ('toilet-facility', 'Type of toilet facility in the household',
     'Sanitation facility type and quality.', 'sensitivity'),
    ('temporary-migration', 'Households who have seen temporary migration',
     'Households affected by temporary migration.', 'sensitivity'),
    ('elderly-individuals', 'Individuals above 65 years of age',
     'Proportion of elderly population.', 'sensitivity'),
    ('chronic-ill-patients', 'Households with Chronic Ill Patients',
     'Households with chronically ill members.', 'sensitivity'),
    ('households-pwds', 'Households with PWDs',
     'Households with persons with disabilities.', 'sensitivity'),
    ('infant-deaths', 'Households with Infant deaths in last 12 months',
     'Households with recent infant mortality.', 'sensitivity'),

    # ==== Adaptive capacity ====
    ('educated-individuals', 'Educated Individuals',
     'Education levels in the population.', 'adaptive-capacity'),
    ('employed-individuals', 'Employed Individuals',
     'Employment rates in the population.', 'adaptive-capacity'),
    ('home-appliances', 'Households owning Home Appliances',
     'Household ownership of home appliances.', 'adaptive-capacity'),
    ('agricultural-land', 'Household owning Agricultural Land',
     'Household ownership of agricultural land.', 'adaptive-capacity'),
    ('livestock', 'Household owning Livestock',
     'Household ownership of livestock.', 'adaptive-capacity'),
]

INDICATORS: Dict[str, dict] = {
    indicator_id: {
        'id': indicator_id,
        'display_name': display_name,
        'description': description,
        'parent_category': parent,
    }
    for indicator_id, display_name, description, parent in _CATALOGUE
}

# Color swatches for the navigator, one per component
CATEGORY_COLORS = {
    'vulnerability': '#DC2626',
    'adaptive-capacity': '#059669',
    'sensitivity': '#7C3AED',
    'exposure': '#EA580C',
}

PROVINCES = [
    {'id': 1, 'name': 'Punjab', 'code': 'PB'},
    {'id': 2, 'name': 'Sindh', 'code': 'SD'},
    {'id': 3, 'name': 'Khyber Pakhtunkhwa', 'code': 'KP'},
    {'id': 4, 'name': 'Balochistan', 'code': 'BL'},
    {'id': 5, 'name': 'Gilgit-Baltistan', 'code': 'GB'},
    {'id': 6, 'name': 'Azad Jammu & Kashmir', 'code': 'AK'},
    {'id': 7, 'name': 'Islamabad Capital Territory', 'code': 'IS'},
]


def get_indicator(indicator_id: str) -> dict:
    """
    Look up an indicator descriptor.

    Raises:
        UnknownIndicatorError: If the id is not in the catalogue
    """
    descriptor = INDICATORS.get(indicator_id)
    if descriptor is None:
        raise UnknownIndicatorError(indicator_id)
    return dict(descriptor)


def list_indicators(parent_category: Optional[str] = None) -> List[dict]:
    """All descriptors in catalogue order, optionally restricted to one parent."""
    return [
        dict(d) for d in INDICATORS.values()
        if parent_category is None or d['parent_category'] == parent_category
    ]


def indicator_tree() -> List[dict]:
    """
    Components with their leaf indicators, for the navigator sidebar.

    Returns:
        List of {'id', 'display_name', 'description', 'color', 'children'}
    """
    tree = []
    for component_id in COMPONENT_IDS:
        node = get_indicator(component_id)
        node['color'] = CATEGORY_COLORS.get(component_id)
        node['children'] = list_indicators(parent_category=component_id)
        tree.append(node)
    return tree


def display_label(indicator_id: str) -> str:
    """Human label for legends and popups; falls back to a title-cased id."""
    descriptor = INDICATORS.get(indicator_id)
    if descriptor:
        return descriptor['display_name']
    return indicator_id.replace('-', ' ').title()
