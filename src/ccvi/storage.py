"""
In-memory storage for the local dashboard backend.

Two pandas tables, climate indicators and vulnerability rows, seeded with
sample data on construction. Nothing is persisted; a new MemStorage starts
from the seed again.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


INDICATOR_COLUMNS = ['id', 'name', 'category', 'description', 'is_active']
VULNERABILITY_COLUMNS = ['id', 'state', 'county', 'indicator_id', 'score', 'latitude', 'longitude']

SEED_INDICATORS = [
    {'name': 'Overall Climate Vulnerability', 'category': 'vulnerability',
     'description': 'Composite CCVI score from exposure, sensitivity and adaptive capacity'},
    {'name': 'Exposure', 'category': 'exposure',
     'description': 'Degree of exposure to climate hazards'},
    {'name': 'Sensitivity', 'category': 'sensitivity',
     'description': 'Degree to which the population is affected by climate hazards'},
    {'name': 'Adaptive Capacity', 'category': 'adaptive-capacity',
     'description': 'Ability to adjust to climate change and its impacts'},
]

SEED_VULNERABILITY = [
    {'state': 'Punjab', 'county': 'Lahore', 'indicator_id': 1, 'score': 72.0,
     'latitude': 31.5204, 'longitude': 74.3587},
    {'state': 'Sindh', 'county': 'Karachi', 'indicator_id': 1, 'score': 85.0,
     'latitude': 24.8607, 'longitude': 67.0011},
    {'state': 'Khyber Pakhtunkhwa', 'county': 'Peshawar', 'indicator_id': 1, 'score': 65.0,
     'latitude': 34.0151, 'longitude': 71.5249},
    {'state': 'Balochistan', 'county': 'Quetta', 'indicator_id': 1, 'score': 91.0,
     'latitude': 30.1798, 'longitude': 66.9750},
    {'state': 'Punjab', 'county': 'Multan', 'indicator_id': 1, 'score': 78.0,
     'latitude': 30.1575, 'longitude': 71.5249},
    {'state': 'Sindh', 'county': 'Hyderabad', 'indicator_id': 2, 'score': 81.0,
     'latitude': 25.3960, 'longitude': 68.3578},
]


class MemStorage:
    """Indicator and vulnerability tables held in DataFrames."""

    def __init__(self, seed: bool = True):
        self.indicators = pd.DataFrame(columns=INDICATOR_COLUMNS)
        self.vulnerability = pd.DataFrame(columns=VULNERABILITY_COLUMNS)

        if seed:
            for indicator in SEED_INDICATORS:
                self.add_indicator(indicator)
            for row in SEED_VULNERABILITY:
                self.add_vulnerability_data(row)
            logger.info(
                f"Seeded storage with {len(self.indicators)} indicators, "
                f"{len(self.vulnerability)} vulnerability rows"
            )

    @staticmethod
    def _next_id(table: pd.DataFrame) -> int:
        return int(table['id'].max()) + 1 if not table.empty else 1

    @staticmethod
    def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
        # NaN -> None so the rows serialise as JSON null
        return df.astype(object).where(df.notna(), None).to_dict('records')

    # ========================================================================
    # Indicators
    # ========================================================================

    def add_indicator(self, indicator: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert an indicator.

        Raises:
            ValueError: name or category missing
        """
        for field in ('name', 'category'):
            if not indicator.get(field):
                raise ValueError(f"Indicator field '{field}' is required")

        row = {
            'id': self._next_id(self.indicators),
            'name': indicator['name'],
            'category': indicator['category'],
            'description': indicator.get('description'),
            'is_active': bool(indicator.get('is_active', True)),
        }
        self.indicators.loc[len(self.indicators)] = [row[c] for c in INDICATOR_COLUMNS]
        return row

    def get_all_indicators(self) -> List[Dict[str, Any]]:
        return self._records(self.indicators)

    def _resolve_indicator_id(self, indicator: str) -> Optional[int]:
        """Indicator filter given as a numeric id or a name (case-insensitive)."""
        indicator = str(indicator).strip()
        if indicator.isdigit():
            return int(indicator)
        matches = self.indicators[self.indicators['name'].str.lower() == indicator.lower()]
        return int(matches.iloc[0]['id']) if not matches.empty else None

    # ========================================================================
    # Vulnerability data
    # ========================================================================

    def add_vulnerability_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a vulnerability row.

        Raises:
            ValueError: state or score missing, or score not numeric
        """
        if not data.get('state'):
            raise ValueError("Vulnerability field 'state' is required")
        if data.get('score') is None:
            raise ValueError("Vulnerability field 'score' is required")
        try:
            score = float(data['score'])
        except (TypeError, ValueError):
            raise ValueError(f"Vulnerability score must be numeric, got {data['score']!r}")

        row = {
            'id': self._next_id(self.vulnerability),
            'state': data['state'],
            'county': data.get('county'),
            'indicator_id': data.get('indicator_id'),
            'score': score,
            'latitude': data.get('latitude'),
            'longitude': data.get('longitude'),
        }
        self.vulnerability.loc[len(self.vulnerability)] = [row[c] for c in VULNERABILITY_COLUMNS]
        return row

    def _filter_vulnerability(self, state: Optional[str], indicator: Optional[str]) -> pd.DataFrame:
        df = self.vulnerability
        if state:
            df = df[df['state'].str.lower() == str(state).lower()]
        if indicator:
            indicator_id = self._resolve_indicator_id(indicator)
            df = df[df['indicator_id'] == indicator_id]
        return df

    def get_vulnerability_data(
        self,
        state: Optional[str] = None,
        indicator: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Vulnerability rows, optionally filtered by state and indicator."""
        return self._records(self._filter_vulnerability(state, indicator))

    def generate_export_data(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Rows for export, joined with the indicator name.

        Args:
            filters: Optional {'state', 'indicator'}
        """
        filters = filters or {}
        df = self._filter_vulnerability(filters.get('state'), filters.get('indicator'))

        names = dict(zip(self.indicators['id'], self.indicators['name']))
        export = df.assign(indicator=df['indicator_id'].map(names))[
            ['state', 'county', 'indicator', 'score', 'latitude', 'longitude']
        ]

        logger.info(f"Generated {len(export)} export rows")
        return self._records(export)
