"""
Error kinds raised by the CCVI data pipeline.

A boundary join miss is deliberately not an exception: unmatched areas get a
placeholder geometry and the pipeline carries on.
"""

from typing import Optional


class CCVIError(Exception):
    """Base class for dashboard errors the controller knows how to surface."""


class NetworkError(CCVIError):
    """Request failed at the transport level or returned a non-2xx status."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"HTTP {status_code}: request to {url} failed"
        else:
            message = f"Request to {url} failed"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnknownIndicatorError(CCVIError):
    """No endpoint is registered for the indicator id."""

    def __init__(self, indicator_id: str):
        self.indicator_id = indicator_id
        super().__init__(f"No endpoint found for indicator: {indicator_id}")


class MalformedResponseError(CCVIError):
    """Response body does not match any envelope the normalizer understands."""

    def __init__(self, shape: str, preview: str = ""):
        self.shape = shape
        self.preview = preview
        message = f"Unrecognized response shape: {shape}"
        if preview:
            message = f"{message} - {preview}"
        super().__init__(message)
