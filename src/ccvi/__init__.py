"""
CCVI Dashboard core package.

Fetches Climate Change Vulnerability Index data for Pakistan from the IWMI
CCVI API, normalizes the varying response shapes, joins records to
administrative boundaries and encodes them as styled map features.
"""

from .endpoints import FilterState, resolve
from .errors import CCVIError, MalformedResponseError, NetworkError, UnknownIndicatorError
from .pipeline import build_visual_features

__version__ = "1.0.0"

__all__ = [
    'FilterState',
    'resolve',
    'build_visual_features',
    'CCVIError',
    'NetworkError',
    'UnknownIndicatorError',
    'MalformedResponseError',
]
