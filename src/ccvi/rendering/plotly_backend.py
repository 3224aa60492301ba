"""
Plotly mapbox backend.

Polygons become Choroplethmapbox traces (one per color, so each bucket keeps
its exact ramp color); placeholder points become a single Scattermapbox
trace. Every trace carries feature ids in customdata for click routing.
"""

import logging
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go

from .base import RenderingBackend, hover_text

logger = logging.getLogger(__name__)


class PlotlyBackend(RenderingBackend):

    name = 'plotly'

    def _draw(self, features: List[dict], viewport: Dict[str, float]) -> go.Figure:
        fig = go.Figure()

        polygons_by_color: Dict[str, List[dict]] = {}
        points = []
        for feature in features:
            if feature['geometry'].get('type') == 'Point':
                points.append(feature)
            else:
                polygons_by_color.setdefault(feature['style']['color'], []).append(feature)

        for color, group in polygons_by_color.items():
            ids = [f['id'] for f in group]
            fig.add_trace(go.Choroplethmapbox(
                geojson={
                    'type': 'FeatureCollection',
                    'features': [
                        {'type': 'Feature', 'id': f['id'], 'geometry': f['geometry'], 'properties': {}}
                        for f in group
                    ],
                },
                locations=ids,
                z=[1] * len(group),
                colorscale=[[0, color], [1, color]],
                showscale=False,
                marker_opacity=[f['style']['opacity'] for f in group],
                marker_line_width=group[0]['style']['weight'],
                marker_line_color='#FFFFFF',
                customdata=ids,
                text=[hover_text(f, self.indicator_id) for f in group],
                hovertemplate='%{text}<extra></extra>',
            ))

        if points:
            fig.add_trace(go.Scattermapbox(
                lon=[f['geometry']['coordinates'][0] for f in points],
                lat=[f['geometry']['coordinates'][1] for f in points],
                mode='markers',
                marker=dict(
                    # radius is used as the marker diameter in pixels
                    size=[f['style']['radius'] for f in points],
                    color=[f['style']['color'] for f in points],
                    opacity=[f['style']['opacity'] for f in points],
                ),
                customdata=[f['id'] for f in points],
                text=[hover_text(f, self.indicator_id) for f in points],
                hovertemplate='%{text}<extra></extra>',
            ))

        fig.update_layout(
            height=self.height,
            margin=dict(l=0, r=0, t=0, b=0),
            showlegend=False,
            clickmode='event+select',
            uirevision='ccvi-map',
            mapbox=dict(
                style=self.map_style,
                accesstoken=self.access_token,
                center={'lat': viewport['latitude'], 'lon': viewport['longitude']},
                zoom=viewport['zoom'],
            ),
        )
        return fig

    def feature_id_from_event(self, event: Any) -> Optional[str]:
        """
        Feature id from a Plotly selection event.

        Accepts the Streamlit on_select payload ({'selection': {'points': [...]}}),
        a {'points': [...]} dict or a single point dict.
        """
        if 'selection' in event:
            points = (event['selection'] or {}).get('points', [])
        elif 'points' in event:
            points = event['points']
        else:
            points = [event]

        for point in points:
            customdata = point.get('customdata')
            if isinstance(customdata, (list, tuple)):
                customdata = customdata[0] if customdata else None
            if customdata is not None:
                return str(customdata)
            if point.get('location') is not None:
                return str(point['location'])
        return None
