"""
Folium (Leaflet) backend.

Polygons are added as GeoJson layers and placeholder points as
CircleMarkers, each with its own popup. Clicks come back through
streamlit-folium's st_folium() return value.
"""

import logging
from typing import Any, Dict, List, Optional

import folium

from .base import RenderingBackend, hover_text

logger = logging.getLogger(__name__)


TILES = {
    'carto-positron': 'cartodbpositron',
    'carto-darkmatter': 'cartodbdark_matter',
    'open-street-map': 'OpenStreetMap',
}

CLICK_TOLERANCE = 1e-4


class FoliumBackend(RenderingBackend):

    name = 'folium'

    def _tiles(self) -> Dict[str, Any]:
        if self.map_style.startswith('mapbox://styles/') and self.access_token:
            style_path = self.map_style[len('mapbox://styles/'):]
            return {
                'tiles': (
                    f"https://api.mapbox.com/styles/v1/{style_path}/tiles/{{z}}/{{x}}/{{y}}"
                    f"?access_token={self.access_token}"
                ),
                'attr': 'Mapbox',
            }
        return {'tiles': TILES.get(self.map_style, 'cartodbpositron')}

    def _draw(self, features: List[dict], viewport: Dict[str, float]) -> folium.Map:
        m = folium.Map(
            location=[viewport['latitude'], viewport['longitude']],
            zoom_start=viewport['zoom'],
            control_scale=True,
            **self._tiles()
        )

        for feature in features:
            style = feature['style']
            props = feature['properties']
            popup = folium.Popup(hover_text(feature, self.indicator_id), max_width=260)

            if feature['geometry'].get('type') == 'Point':
                lon, lat = feature['geometry']['coordinates'][:2]
                folium.CircleMarker(
                    location=[lat, lon],
                    # style radius is a diameter in pixels, Leaflet wants a radius
                    radius=style['radius'] / 2,
                    color='#FFFFFF',
                    weight=2,
                    fill=True,
                    fill_color=style['color'],
                    fill_opacity=style['opacity'],
                    popup=popup,
                    tooltip=props.get('name'),
                ).add_to(m)
            else:
                folium.GeoJson(
                    {
                        'type': 'Feature',
                        'id': feature['id'],
                        'geometry': feature['geometry'],
                        'properties': {'feature_id': feature['id'], 'name': props.get('name')},
                    },
                    style_function=lambda _f, s=style: {
                        'fillColor': s['color'],
                        'fillOpacity': s['opacity'],
                        'color': '#FFFFFF',
                        'weight': s['weight'],
                    },
                    tooltip=props.get('name'),
                    popup=popup,
                ).add_to(m)

        return m

    def feature_id_from_event(self, event: Any) -> Optional[str]:
        """
        Feature id from an st_folium() result.

        A click on a CircleMarker is matched by coordinates; a click on a
        GeoJson polygon is read from last_active_drawing's properties.
        """
        clicked = event.get('last_object_clicked')
        if clicked and clicked.get('lat') is not None and clicked.get('lng') is not None:
            for feature_id, feature in self._features.items():
                geometry = feature['geometry']
                if geometry.get('type') != 'Point':
                    continue
                lon, lat = geometry['coordinates'][:2]
                if abs(lat - clicked['lat']) < CLICK_TOLERANCE and abs(lon - clicked['lng']) < CLICK_TOLERANCE:
                    return feature_id

        drawing = event.get('last_active_drawing') or {}
        feature_id = (drawing.get('properties') or {}).get('feature_id')
        return str(feature_id) if feature_id is not None else None
