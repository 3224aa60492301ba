"""
CCVI Pakistan Streamlit Application

Interactive map of the Climate Change Vulnerability Index:
- Indicator navigator (CCVI components and their sub-indicators)
- Boundary level, province, year and rural/urban filters
- Choropleth / marker map with legend, popups and zoom controls
- CSV export and summary report of the displayed areas

Design Principles:
- All data comes live from the IWMI CCVI API, memoised with st.cache_data
- Previous map stays visible while a new selection loads
- API failures show a status badge, never a crash
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd
import streamlit as st
from streamlit_folium import st_folium

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ccvi import config
from ccvi.api_client import CCVIApiClient, default_years, describe_request
from ccvi.controller import ERRORED, LOADED, LOADING, MapController
from ccvi.encoding import legend_entries
from ccvi.endpoints import FilterState
from ccvi.errors import CCVIError, MalformedResponseError, NetworkError
from ccvi.geo_utils import build_boundary_lookup, load_boundary_cache, save_boundary_cache
from ccvi.indicators import PROVINCES, display_label, indicator_tree
from ccvi.rendering import BACKENDS, get_backend
from ccvi.reports import build_summary, export_csv, render_report_markdown, unmatched_suggestions

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

BOUNDARY_OPTIONS = {'Tehsils': 'secondary', 'Districts': 'primary'}
ALL_PROVINCES = 'All Pakistan'


# ============================================================================
# Data Loading Functions
# ============================================================================

@st.cache_resource
def get_client() -> CCVIApiClient:
    return CCVIApiClient()


@st.cache_data(ttl=config.CACHE_TTL['indicator_data'], show_spinner=False)
def fetch_indicator_data(indicator_id: str, filters: FilterState) -> Any:
    """Raw indicator response, memoised per indicator and filter tuple."""
    return get_client().fetch_indicator_data(indicator_id, filters)


@st.cache_data(ttl=config.CACHE_TTL['boundaries'], show_spinner=False)
def _fetch_boundaries(boundary_level: str, region_id: Optional[int]) -> Any:
    filters = FilterState(boundary_level=boundary_level, region_id=region_id)
    level = filters.area_type

    try:
        payload = get_client().fetch_boundaries(filters)
    except (NetworkError, MalformedResponseError) as e:
        # Only the nationwide set is cached on disk
        cached = load_boundary_cache(level) if region_id is None else None
        if cached is None:
            raise
        logger.warning(f"Boundary API unavailable, using cached {level} units: {e}")
        return cached

    if region_id is None:
        save_boundary_cache(payload, level)
    return payload


def fetch_boundaries(filters: FilterState) -> Any:
    """Boundaries depend only on level and region, so the cache ignores the other filters."""
    return _fetch_boundaries(filters.boundary_level, filters.region_id)


@st.cache_data(ttl=config.CACHE_TTL['years'], show_spinner=False)
def load_years() -> List[int]:
    return default_years(get_client())


def get_controller() -> MapController:
    if 'controller' not in st.session_state:
        st.session_state.controller = MapController(fetch_indicator_data, fetch_boundaries)
    return st.session_state.controller


def get_map_backend(name: str):
    key = f"backend_{name}"
    if key not in st.session_state:
        st.session_state[key] = get_backend(
            name,
            map_style=config.MAP_STYLE,
            access_token=config.MAPBOX_TOKEN,
            height=config.MAP_HEIGHT,
        )
    return st.session_state[key]


# ============================================================================
# Sidebar: Indicator Navigator & Filters
# ============================================================================

def render_sidebar() -> tuple:
    """
    Sidebar with the indicator navigator and geographic filters.

    Returns:
        (FilterState, backend name)
    """
    st.sidebar.title("🌍 CCVI Pakistan")
    st.sidebar.markdown("**Climate Change Vulnerability Index**")
    st.sidebar.markdown("---")

    # Indicator navigator
    st.sidebar.markdown("### 🧭 Indicator")
    tree = indicator_tree()
    component = st.sidebar.radio(
        "Component",
        tree,
        format_func=lambda node: node['display_name'],
    )

    indicator_id = component['id']
    if component['children']:
        options = [None] + component['children']
        leaf = st.sidebar.selectbox(
            "Sub-indicator",
            options,
            format_func=lambda node: f"{component['display_name']} (overall)" if node is None else node['display_name'],
        )
        if leaf is not None:
            indicator_id = leaf['id']

    st.sidebar.caption(component['description'])
    st.sidebar.markdown("---")

    # Geographic filters
    st.sidebar.markdown("### 🗺️ Area")
    boundary_label = st.sidebar.radio("Boundary level", list(BOUNDARY_OPTIONS), horizontal=True)

    province_names = [ALL_PROVINCES] + [p['name'] for p in PROVINCES]
    province_name = st.sidebar.selectbox("Province", province_names)
    region_id = next((p['id'] for p in PROVINCES if p['name'] == province_name), None)

    years = load_years()
    default_index = years.index(config.DEFAULT_YEAR) if config.DEFAULT_YEAR in years else len(years) - 1
    year = st.sidebar.selectbox("Year", years, index=default_index)

    area_classification = st.sidebar.radio(
        "Area classification",
        config.AREA_CLASSIFICATIONS,
        format_func=lambda value: 'All Areas' if value == 'all' else value.capitalize(),
        horizontal=True,
    )

    st.sidebar.markdown("---")
    backend_names = sorted(BACKENDS)
    backend_name = st.sidebar.selectbox(
        "Map engine",
        backend_names,
        index=backend_names.index(config.DEFAULT_BACKEND) if config.DEFAULT_BACKEND in backend_names else 0,
    )

    st.sidebar.markdown("---")
    st.sidebar.caption("Data: IWMI CCVI API | CCVI Dashboard v1.0")

    filters = FilterState(
        indicator_id=indicator_id,
        boundary_level=BOUNDARY_OPTIONS[boundary_label],
        region_id=region_id,
        year=year,
        area_classification=area_classification,
    )
    return filters, backend_name


# ============================================================================
# Map Panel
# ============================================================================

def render_status(controller: MapController):
    badge = controller.status_badge()
    if badge['level'] == 'error':
        st.error(f"❌ {badge['text']}: {controller.error}")
        if st.button("🔄 Retry"):
            controller.refresh()
            st.rerun()
    elif badge['level'] == 'success':
        st.success(f"✅ {badge['text']}")
    else:
        st.info(f"⏳ {badge['text']}")


def render_zoom_controls(controller: MapController):
    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("➕ Zoom in", use_container_width=True):
            controller.zoom_in()
    with col2:
        if st.button("➖ Zoom out", use_container_width=True):
            controller.zoom_out()
    with col3:
        if st.button("⟲ Reset view", use_container_width=True):
            controller.reset_view()


def handle_map_event(backend, event: Any):
    """Dispatch a click once; Streamlit replays the last event on every rerun."""
    if not event:
        return
    signature = json.dumps(event, default=str, sort_keys=True)
    if st.session_state.get('last_map_event') == signature:
        return
    st.session_state.last_map_event = signature
    if backend.dispatch_click(event) is not None:
        st.rerun()


def render_map(controller: MapController, backend_name: str):
    backend = get_map_backend(backend_name)
    indicator_id = controller.filters.indicator_id

    map_object = backend.render(
        controller.features,
        controller.viewport,
        on_feature_click=controller.select_feature,
        indicator_id=indicator_id,
    )

    if backend.name == 'plotly':
        event = st.plotly_chart(
            map_object,
            use_container_width=True,
            on_select='rerun',
            selection_mode='points',
            key='ccvi_plotly_map',
            config={'displayModeBar': False},
        )
    else:
        event = st_folium(
            map_object,
            height=config.MAP_HEIGHT,
            use_container_width=True,
            key='ccvi_folium_map',
            returned_objects=['last_object_clicked', 'last_active_drawing'],
        )

    handle_map_event(backend, event)


def render_legend(controller: MapController):
    st.markdown(f"**{display_label(controller.filters.indicator_id)}**")
    for entry in legend_entries():
        st.markdown(
            f"<span style='display:inline-block;width:14px;height:14px;"
            f"background:{entry['color']};border-radius:50%;margin-right:6px'></span>"
            f"{entry['range']} {entry['label']}",
            unsafe_allow_html=True,
        )
    caption = controller.caption()
    if caption:
        st.caption(caption)


def render_popup(controller: MapController):
    content = controller.popup_content()
    if content is None:
        st.caption("Click an area on the map for details")
        return

    st.markdown(f"### 📍 {content['title']}")
    st.markdown(f"**District:** {content['district']}")
    st.markdown(f"**Province:** {content['province']}")
    st.metric(content['indicator'], content['value'])
    if content['approximate_location']:
        st.caption("⚠️ No boundary match, location is approximate")
    if st.button("✖ Close", key='close_popup'):
        controller.close_popup()
        st.rerun()


# ============================================================================
# Export & Report
# ============================================================================

def render_summary(controller: MapController):
    summary = build_summary(controller.features)

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Areas", summary['total_areas'])
    with col2:
        st.metric("Mean", f"{summary['mean']:.3f}" if summary['mean'] is not None else "N/A")
    with col3:
        st.metric("No Data", summary['no_data_count'])
    with col4:
        st.metric("Approx. Locations", summary['placeholder_count'])

    if summary['total_areas'] == 0:
        return

    filters = controller.filters
    stem = f"ccvi_{filters.indicator_id}_{filters.area_type}_{filters.year}"
    report = render_report_markdown(summary, filters.indicator_id, filters)

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            label="📥 Export Data (CSV)",
            data=export_csv(controller.features),
            file_name=f"{stem}.csv",
            mime="text/csv",
        )
    with col2:
        st.download_button(
            label="📄 Download Report",
            data=report,
            file_name=f"{stem}_report.md",
            mime="text/markdown",
        )

    with st.expander("📊 Report preview"):
        st.markdown(report)

    if summary['placeholder_count']:
        with st.expander(f"🔍 Unmatched areas ({summary['placeholder_count']})"):
            render_unmatched(controller)


def render_unmatched(controller: MapController):
    try:
        lookup = build_boundary_lookup(fetch_boundaries(controller.filters))
    except CCVIError as e:
        st.caption(f"Boundary data unavailable: {e}")
        return

    suggestions = unmatched_suggestions(controller.features, lookup.keys())
    st.dataframe(
        pd.DataFrame([
            {'Area': name, 'Closest boundary names': ', '.join(matches) or '-'}
            for name, matches in suggestions.items()
        ]),
        use_container_width=True,
        hide_index=True,
    )


# ============================================================================
# Main Application
# ============================================================================

def main():
    """
    Main application entry point.

    Configures page layout, applies the sidebar filters to the map controller
    and renders the map panel.
    """
    st.set_page_config(
        page_title="CCVI Pakistan Dashboard",
        page_icon="🌍",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    filters, backend_name = render_sidebar()
    controller = get_controller()
    controller.set_filters(filters)
    controller.poll()

    st.title(f"🌍 {display_label(filters.indicator_id)}")
    st.markdown("**Climate Change Vulnerability Index** - Pakistan")

    render_status(controller)

    map_col, side_col = st.columns([3, 1])
    with map_col:
        if controller.state == LOADING:
            st.caption(f"⏳ {controller.loading_message()}")
        render_zoom_controls(controller)
        render_map(controller, backend_name)
    with side_col:
        render_legend(controller)
        st.markdown("---")
        render_popup(controller)

    if controller.state in (LOADED, ERRORED):
        st.markdown("---")
        render_summary(controller)

        with st.expander("🔗 API requests"):
            st.json(describe_request(filters.indicator_id, filters, base_url=config.API_BASE_URL))

    # Stale map is on screen; finish the load and redraw
    if controller.state == LOADING:
        controller.wait()
        st.rerun()


if __name__ == "__main__":
    main()
