"""
Map view controller.

Owns the FilterState, the displayed features, the viewport and the popup
selection. Loads run in a worker thread; their results are handed back with
deliver() on the UI thread, tagged with the filters they were started for,
so a slow response for an old selection can never replace a newer one.

    idle --set_filters--> loading --deliver--> loaded | errored
                             ^                        |
                             +------set_filters-------+
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Union

from . import config
from .api_client import fetch_concurrently
from .encoding import legend_caption
from .endpoints import FilterState
from .errors import CCVIError, MalformedResponseError
from .indicators import display_label
from .pipeline import build_visual_features

logger = logging.getLogger(__name__)


IDLE = 'idle'
LOADING = 'loading'
LOADED = 'loaded'
ERRORED = 'errored'


class MapController:
    """
    State machine behind one map view.

    Args:
        fetch_indicator: Callable (indicator_id, filters) -> raw indicator response
        fetch_boundaries: Callable (filters) -> raw administrative-units response
        executor: Executor for background loads (a 1-worker pool by default)
        bbox: Placeholder bounding box override
    """

    def __init__(
        self,
        fetch_indicator: Callable[[str, FilterState], Any],
        fetch_boundaries: Callable[[FilterState], Any],
        executor: Optional[ThreadPoolExecutor] = None,
        bbox: Optional[Dict[str, float]] = None
    ):
        self._fetch_indicator = fetch_indicator
        self._fetch_boundaries = fetch_boundaries
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='ccvi-load')
        self._future: Optional[Future] = None
        self.bbox = bbox

        self.state = IDLE
        self.filters: Optional[FilterState] = None
        self.features: List[dict] = []
        self.error: Optional[CCVIError] = None
        self.viewport = dict(config.DEFAULT_VIEWPORT)
        self.selected_id: Optional[str] = None

    # ========================================================================
    # Loading
    # ========================================================================

    def set_filters(self, filters: FilterState) -> Optional[Future]:
        """
        Switch to a new selection and start loading it.

        Unchanged filters are a no-op and return the load already in flight
        (or None once it has been delivered).
        """
        if filters == self.filters and self.state != IDLE:
            return self._future

        logger.info(f"Filters changed to [{filters.key()}]")
        self.filters = filters
        return self._start_load()

    def refresh(self) -> Optional[Future]:
        """Reload the current filters, e.g. after an error."""
        if self.filters is None:
            return None
        return self._start_load()

    def _start_load(self) -> Future:
        # Features from the previous load stay on screen until the new ones arrive
        if self._future is not None and self._future.cancel():
            logger.debug("Cancelled queued load for superseded filters")
        self.state = LOADING
        self._future = self._executor.submit(self._load, self.filters)
        return self._future

    def _load(self, filters: FilterState):
        try:
            indicator_data, boundary_data = fetch_concurrently(
                lambda: self._fetch_indicator(filters.indicator_id, filters),
                lambda: self._fetch_boundaries(filters),
            )
            features = build_visual_features(indicator_data, boundary_data, filters.indicator_id, self.bbox)
        except MalformedResponseError as e:
            logger.warning(f"Unrecognised response for [{filters.key()}], showing empty map: {e}")
            features = []
        except CCVIError as e:
            logger.error(f"Load failed for [{filters.key()}]: {e}")
            return filters, e
        return filters, features

    def deliver(self, filters: FilterState, result: Union[List[dict], CCVIError]) -> bool:
        """
        Apply a load result.

        Returns:
            False if the result belongs to filters that are no longer current
            (it is discarded), True otherwise
        """
        if filters != self.filters:
            logger.info(f"Discarding stale result for [{filters.key()}]")
            return False

        if isinstance(result, CCVIError):
            self.state = ERRORED
            self.error = result
            return True

        self.features = result
        self.state = LOADED
        self.error = None

        if self.selected_id is not None and self.get_feature(self.selected_id) is None:
            logger.debug(f"Selected feature {self.selected_id} no longer present")
            self.selected_id = None
        return True

    def poll(self) -> str:
        """Deliver the in-flight load if it has finished; never blocks."""
        if self._future is not None and self._future.done():
            self._collect()
        return self.state

    def wait(self, timeout: Optional[float] = None) -> str:
        """Block until the in-flight load finishes and deliver it."""
        if self._future is not None:
            self._future.result(timeout=timeout)
            self._collect()
        return self.state

    def _collect(self):
        future, self._future = self._future, None
        filters, result = future.result()
        self.deliver(filters, result)

    def close(self):
        self._executor.shutdown(wait=False)

    # ========================================================================
    # Viewport
    # ========================================================================

    def zoom_in(self) -> Dict[str, float]:
        self.viewport['zoom'] = min(self.viewport['zoom'] + 1, config.MAX_ZOOM)
        return dict(self.viewport)

    def zoom_out(self) -> Dict[str, float]:
        self.viewport['zoom'] = max(self.viewport['zoom'] - 1, config.MIN_ZOOM)
        return dict(self.viewport)

    def reset_view(self) -> Dict[str, float]:
        self.viewport = dict(config.DEFAULT_VIEWPORT)
        return dict(self.viewport)

    # ========================================================================
    # Selection / popup
    # ========================================================================

    def get_feature(self, feature_id: str) -> Optional[dict]:
        for feature in self.features:
            if feature['id'] == feature_id:
                return feature
        return None

    def select_feature(self, feature_id: str) -> bool:
        """Open the popup for a feature; replaces any open popup. Unknown ids are ignored."""
        if self.get_feature(feature_id) is None:
            logger.debug(f"Ignoring selection of unknown feature {feature_id}")
            return False
        self.selected_id = feature_id
        return True

    def close_popup(self):
        self.selected_id = None

    def popup_content(self) -> Optional[Dict[str, Any]]:
        """Fields shown in the popup of the selected feature, or None."""
        if self.selected_id is None:
            return None
        feature = self.get_feature(self.selected_id)
        if feature is None:
            return None

        props = feature['properties']
        indicator_id = self.filters.indicator_id if self.filters else None
        return {
            'id': feature['id'],
            'title': props.get('name'),
            'district': props.get('district') or 'Unknown',
            'province': props.get('province') or 'Unknown',
            'indicator': display_label(indicator_id) if indicator_id else 'Value',
            'value': f"{props['value']:.3f}" if props.get('has_data') else 'No data',
            'approximate_location': not feature['matched'],
        }

    # ========================================================================
    # Status overlays
    # ========================================================================

    def status_badge(self) -> Dict[str, str]:
        """{'level': success|info|error, 'text': ...} for the status overlay."""
        if self.state == ERRORED:
            return {'level': 'error', 'text': 'API Error'}
        if self.state == LOADED:
            return {'level': 'success', 'text': 'Connected to IWMI CCVI API'}
        return {'level': 'info', 'text': 'Connecting to API...'}

    def loading_message(self) -> Optional[str]:
        if self.state != LOADING or self.filters is None:
            return None
        return f"Loading {display_label(self.filters.indicator_id)} data from IWMI API..."

    def caption(self) -> Optional[str]:
        if self.filters is None:
            return None
        n_areas = len(self.features) if self.state == LOADED else None
        return legend_caption(self.filters.boundary_level, n_areas, self.filters.area_classification)
