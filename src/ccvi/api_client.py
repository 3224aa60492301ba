"""
HTTP client for the IWMI CCVI API.

Wraps a requests.Session with urllib3 retries (connection errors, 429 and
5xx) and turns every failure into the dashboard's error kinds:

- transport failure or non-2xx status -> NetworkError
- body that is not JSON               -> MalformedResponseError

Caching is left to the caller (the Streamlit app wraps these methods in
st.cache_data with the windows from config.CACHE_TTL).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import config
from .endpoints import FilterState, boundary_request, resolve, years_url
from .errors import MalformedResponseError, NetworkError

logger = logging.getLogger(__name__)


def build_retry_session(retries: int = config.RETRY_BUDGET) -> requests.Session:
    """Session that retries idempotent GETs with urllib3's backoff."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=config.RETRY_BACKOFF_FACTOR,
        status_forcelist=config.RETRY_STATUS_FORCELIST,
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({'User-Agent': config.USER_AGENT, 'Accept': 'application/json'})
    return session


class CCVIApiClient:
    """
    Thin client over the CCVI endpoints.

    Args:
        base_url: API root, defaults to config.API_BASE_URL
        session: requests-compatible session (tests pass a fake)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = config.REQUEST_TIMEOUT
    ):
        self.base_url = (base_url or config.API_BASE_URL).rstrip('/')
        self.session = session if session is not None else build_retry_session()
        self.timeout = timeout

    def get_json(self, url: str) -> Any:
        """
        GET a URL and decode its JSON body.

        Raises:
            NetworkError: Connection failure, timeout or non-2xx status
            MalformedResponseError: Body is not valid JSON
        """
        logger.info(f"Fetching {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise NetworkError(url, reason=str(e)) from e

        if not response.ok:
            logger.warning(f"HTTP {response.status_code} from {url}")
            raise NetworkError(url, status_code=response.status_code, reason=response.reason or "")

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError('non-json', response.text[:200]) from e

    def fetch_indicator_data(self, indicator_id: str, filters: FilterState) -> Any:
        """Raw indicator response for the filters."""
        request = resolve(indicator_id, filters, base_url=self.base_url)
        data = self.get_json(request['url'])
        logger.info(f"Received {indicator_id} data for [{filters.key()}]")
        return data

    def fetch_boundaries(self, filters: FilterState) -> Any:
        """Raw administrative-units response for the filters' boundary level and region."""
        request = boundary_request(filters, base_url=self.base_url)
        return self.get_json(request['url'])

    def fetch_years(self) -> List[int]:
        """
        Years offered by the API.

        The endpoint returns [{id, value, label}] options; plain numbers are
        accepted too. Unparsable entries are dropped.
        """
        payload = self.get_json(years_url(self.base_url))
        years = []
        for option in payload if isinstance(payload, list) else []:
            raw = option.get('value') if isinstance(option, dict) else option
            try:
                years.append(int(raw))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring year option: {option}")
        return sorted(set(years))

    def fetch_all(self, indicator_id: str, filters: FilterState) -> Tuple[Any, Any]:
        """Indicator data and boundaries fetched concurrently; both must finish."""
        return fetch_concurrently(
            lambda: self.fetch_indicator_data(indicator_id, filters),
            lambda: self.fetch_boundaries(filters),
        )


def fetch_concurrently(fetch_indicator, fetch_boundaries) -> Tuple[Any, Any]:
    """
    Run the two fetches in parallel and wait for both.

    Errors from the indicator fetch propagate. A failed boundary fetch only
    degrades the map to placeholder geometries, so it is logged and None is
    returned in its place.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix='ccvi-fetch') as executor:
        indicator_future = executor.submit(fetch_indicator)
        boundary_future = executor.submit(fetch_boundaries)

        indicator_data = indicator_future.result()
        try:
            boundary_data = boundary_future.result()
        except (NetworkError, MalformedResponseError) as e:
            logger.warning(f"Boundary fetch failed, using placeholder geometries: {e}")
            boundary_data = None

    return indicator_data, boundary_data


def default_years(client: Optional[CCVIApiClient] = None) -> List[int]:
    """Years from the API, or config.DEFAULT_YEARS when it is unreachable."""
    client = client or CCVIApiClient()
    try:
        years = client.fetch_years()
    except (NetworkError, MalformedResponseError) as e:
        logger.warning(f"Failed to fetch years, using defaults: {e}")
        return list(config.DEFAULT_YEARS)
    return years or list(config.DEFAULT_YEARS)


def describe_request(indicator_id: str, filters: FilterState, base_url: Optional[str] = None) -> Dict[str, str]:
    """Both URLs a map load will hit, for the status panel."""
    return {
        'indicator': resolve(indicator_id, filters, base_url=base_url)['url'],
        'boundaries': boundary_request(filters, base_url=base_url)['url'],
    }
