"""
Map rendering backends for the CCVI dashboard.

Indicator logic is written once; only the backend adapter varies per
mapping library.
"""

from .base import RenderingBackend, diff_features
from .folium_backend import FoliumBackend
from .plotly_backend import PlotlyBackend

BACKENDS = {
    PlotlyBackend.name: PlotlyBackend,
    FoliumBackend.name: FoliumBackend,
}


def get_backend(name: str, **options) -> RenderingBackend:
    """Instantiate a backend by name ('plotly' or 'folium')."""
    if name not in BACKENDS:
        raise ValueError(f"Unknown rendering backend: {name}. Available: {sorted(BACKENDS)}")
    return BACKENDS[name](**options)


__all__ = ['RenderingBackend', 'PlotlyBackend', 'FoliumBackend', 'diff_features', 'get_backend', 'BACKENDS']
