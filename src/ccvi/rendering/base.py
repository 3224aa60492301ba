"""
Rendering backend interface.

A backend turns the current VisualFeature set into a map object for one
mapping library. It always rebuilds from the full feature set; the diff
against the previous render is computed here so backends never track layer
lifecycles themselves.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .. import config
from ..indicators import display_label

logger = logging.getLogger(__name__)


def _snapshot(feature: dict) -> str:
    return json.dumps(
        {
            'geometry': feature['geometry'],
            'style': feature['style'],
            'value': feature['properties'].get('value'),
            'has_data': feature['properties'].get('has_data'),
            'name': feature['properties'].get('name'),
        },
        sort_keys=True,
        default=str,
    )


def diff_features(previous: Dict[str, str], features: List[dict]) -> Dict[str, List[str]]:
    """
    Compare a new feature set with the snapshots of the last render.

    Returns:
        {'added': [...], 'removed': [...], 'updated': [...]} feature ids
    """
    current = {f['id']: _snapshot(f) for f in features}
    return {
        'added': [fid for fid in current if fid not in previous],
        'removed': [fid for fid in previous if fid not in current],
        'updated': [fid for fid in current if fid in previous and previous[fid] != current[fid]],
    }


def hover_text(feature: dict, indicator_id: Optional[str] = None) -> str:
    props = feature['properties']
    label = display_label(indicator_id) if indicator_id else 'Value'
    value = f"{props['value']:.3f}" if props.get('has_data') else 'No data'
    lines = [
        f"<b>{props.get('name')}</b>",
        f"District: {props.get('district') or 'Unknown'}",
        f"Province: {props.get('province') or 'Unknown'}",
        f"{label}: {value}",
    ]
    if not feature.get('matched', True):
        lines.append("<i>Approximate location</i>")
    return '<br>'.join(lines)


class RenderingBackend:
    """
    Base class for map backends.

    Args:
        map_style: Basemap style name understood by the backend
        access_token: Tile provider token, if the style needs one
        height: Map height in pixels
    """

    name = 'base'

    def __init__(
        self,
        map_style: str = config.MAP_STYLE,
        access_token: Optional[str] = config.MAPBOX_TOKEN,
        height: int = config.MAP_HEIGHT
    ):
        self.map_style = map_style
        self.access_token = access_token
        self.height = height
        self.indicator_id: Optional[str] = None
        self.last_diff: Dict[str, List[str]] = {'added': [], 'removed': [], 'updated': []}
        self.last_map: Any = None
        self._snapshots: Dict[str, str] = {}
        self._features: Dict[str, dict] = {}
        self._on_feature_click: Optional[Callable[[str], None]] = None

    def render(
        self,
        features: List[dict],
        viewport: Dict[str, float],
        on_feature_click: Optional[Callable[[str], None]] = None,
        indicator_id: Optional[str] = None
    ) -> Any:
        """
        Build the map for the given features and viewport.

        Returns:
            The library's map object (plotly Figure, folium Map, ...)
        """
        self.last_diff = diff_features(self._snapshots, features)
        self._snapshots = {f['id']: _snapshot(f) for f in features}
        self._features = {f['id']: f for f in features}
        self._on_feature_click = on_feature_click
        self.indicator_id = indicator_id

        logger.debug(
            f"{self.name}: +{len(self.last_diff['added'])} "
            f"-{len(self.last_diff['removed'])} ~{len(self.last_diff['updated'])} features"
        )
        self.last_map = self._draw(features, viewport)
        return self.last_map

    def dispatch_click(self, event: Any) -> Optional[str]:
        """
        Route a library click payload to the click callback.

        Returns:
            The clicked feature id, or None if the event does not hit a
            rendered feature
        """
        if not event:
            return None
        feature_id = self.feature_id_from_event(event)
        if feature_id is None or feature_id not in self._features:
            return None
        if self._on_feature_click is not None:
            self._on_feature_click(feature_id)
        return feature_id

    def _draw(self, features: List[dict], viewport: Dict[str, float]) -> Any:
        raise NotImplementedError

    def feature_id_from_event(self, event: Any) -> Optional[str]:
        raise NotImplementedError
