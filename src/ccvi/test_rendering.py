"""Tests for the rendering backends: declarative rebuild, diffs and click routing."""

import json

import folium
import plotly.graph_objects as go
import pytest

from ccvi import config
from ccvi.pipeline import build_visual_features
from ccvi.rendering import FoliumBackend, PlotlyBackend, diff_features, get_backend

SQUARE = {
    'type': 'Polygon',
    'coordinates': [[[74.0, 31.0], [74.5, 31.0], [74.5, 31.5], [74.0, 31.5], [74.0, 31.0]]],
}
BOUNDARIES = {'units': [
    {'id': 1, 'name': 'Lahore', 'geometry': json.dumps(SQUARE)},
    {'id': 2, 'name': 'Kasur', 'geometry': SQUARE},
]}


def _features(lahore=0.9, kasur=0.1, karachi=0.5):
    raw = [
        {'id': 'lhr', 'name': 'Lahore', 'vulnerability_index': lahore},
        {'id': 'ksr', 'name': 'Kasur', 'vulnerability_index': kasur},
        {'id': 'khi', 'name': 'Karachi', 'vulnerability_index': karachi},
    ]
    return build_visual_features(raw, BOUNDARIES, 'vulnerability')


def test_get_backend():
    assert isinstance(get_backend('plotly'), PlotlyBackend)
    assert isinstance(get_backend('folium', map_style='open-street-map'), FoliumBackend)
    with pytest.raises(ValueError):
        get_backend('leaflet-classic')


def test_backend_receives_explicit_configuration():
    backend = get_backend('plotly', map_style='mapbox://styles/test/style', access_token='tok', height=400)
    fig = backend.render(_features(), config.DEFAULT_VIEWPORT)

    assert fig.layout.mapbox.accesstoken == 'tok'
    assert fig.layout.mapbox.style == 'mapbox://styles/test/style'
    assert fig.layout.height == 400


def test_plotly_traces():
    backend = PlotlyBackend()
    fig = backend.render(_features(), config.DEFAULT_VIEWPORT, indicator_id='vulnerability')

    assert isinstance(fig, go.Figure)
    kinds = [trace.type for trace in fig.data]
    # two polygon colors (0.9 and 0.1) plus one trace for the placeholder point
    assert kinds.count('choroplethmapbox') == 2
    assert kinds.count('scattermapbox') == 1
    assert list(fig.data[-1].customdata) == ['khi']
    assert fig.layout.mapbox.zoom == config.DEFAULT_VIEWPORT['zoom']


def test_render_diff():
    backend = PlotlyBackend()

    backend.render(_features(), config.DEFAULT_VIEWPORT)
    assert sorted(backend.last_diff['added']) == ['khi', 'ksr', 'lhr']

    backend.render(_features(lahore=0.3), config.DEFAULT_VIEWPORT)
    assert backend.last_diff == {'added': [], 'removed': [], 'updated': ['lhr']}

    backend.render(_features()[:2], config.DEFAULT_VIEWPORT)
    assert backend.last_diff['removed'] == ['khi']


def test_diff_features_from_empty():
    assert diff_features({}, []) == {'added': [], 'removed': [], 'updated': []}


def test_plotly_click_dispatch():
    clicked = []
    backend = PlotlyBackend()
    backend.render(_features(), config.DEFAULT_VIEWPORT, on_feature_click=clicked.append)

    assert backend.dispatch_click({'selection': {'points': [{'customdata': 'lhr'}]}}) == 'lhr'
    assert backend.dispatch_click({'points': [{'customdata': ['khi']}]}) == 'khi'
    assert backend.dispatch_click({'location': 'ksr'}) == 'ksr'
    assert backend.dispatch_click({'selection': {'points': [{'customdata': 'nope'}]}}) is None
    assert backend.dispatch_click({'selection': {'points': []}}) is None
    assert backend.dispatch_click(None) is None
    assert clicked == ['lhr', 'khi', 'ksr']


def test_folium_render_and_clicks():
    clicked = []
    features = _features()
    backend = FoliumBackend()
    m = backend.render(features, config.DEFAULT_VIEWPORT, on_feature_click=clicked.append)

    assert isinstance(m, folium.Map)
    html = m.get_root().render()
    assert 'Karachi' in html

    point = next(f for f in features if f['id'] == 'khi')['geometry']['coordinates']
    assert backend.dispatch_click({'last_object_clicked': {'lat': point[1], 'lng': point[0]}}) == 'khi'
    assert backend.dispatch_click({
        'last_object_clicked': {'lat': 31.2, 'lng': 74.2},
        'last_active_drawing': {'properties': {'feature_id': 'lhr'}},
    }) == 'lhr'
    assert backend.dispatch_click({'last_object_clicked': None, 'last_active_drawing': None}) is None
    assert clicked == ['khi', 'lhr']


def test_empty_feature_set_renders():
    assert isinstance(PlotlyBackend().render([], config.DEFAULT_VIEWPORT), go.Figure)
    assert isinstance(FoliumBackend().render([], config.DEFAULT_VIEWPORT), folium.Map)
