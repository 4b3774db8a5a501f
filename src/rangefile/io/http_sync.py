"""Synchronous file-service backend using requests."""

import logging
from typing import List

import requests

from ..core.model import Range, BackendFailure
from .base import (
    API_VERSION, DEFAULT_TIMEOUT,
    create_headers, upload_headers, parse_range_list,
)

logger = logging.getLogger(__name__)

# Module-level session for connection pooling
_session = None


def _get_session():
    """Get or create the global requests session."""
    global _session
    if _session is None:
        _session = requests.Session()
    return _session


class HTTPRangeBackend:
    """Synchronous backend for a file addressed by a signed URL."""

    def __init__(self, url: str, *, timeout: float = DEFAULT_TIMEOUT, api_version: str = API_VERSION):
        self.url = url
        self.timeout = timeout
        self.api_version = api_version
        self.requests_made = 0
        self._session = _get_session()

    def _request(self, method: str, *, params=None, headers=None, data=None) -> requests.Response:
        all_headers = {"x-ms-version": self.api_version}
        if headers:
            all_headers.update(headers)
        logger.debug("%s %s params=%s", method, self.url.split("?")[0], params)
        self.requests_made += 1
        try:
            return self._session.request(
                method, self.url, params=params, headers=all_headers, data=data, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise BackendFailure(f"{method} request failed: {e}") from e

    def _check(self, response: requests.Response, action: str) -> requests.Response:
        if response.status_code >= 400:
            raise BackendFailure(
                f"{action} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def create(self, capacity: int) -> None:
        response = self._request("PUT", headers=create_headers(capacity))
        self._check(response, "Create file")

    def exists(self) -> bool:
        response = self._request("HEAD")
        if response.status_code == 404:
            return False
        self._check(response, "HEAD request")
        return True

    def size(self) -> int:
        response = self._check(self._request("HEAD"), "HEAD request")
        content_length = response.headers.get("content-length")
        if content_length is None:
            raise BackendFailure("HEAD response carries no Content-Length")
        return int(content_length)

    def upload_range(self, offset: int, data: bytes) -> None:
        response = self._request(
            "PUT",
            params={"comp": "range"},
            headers=upload_headers(offset, len(data)),
            data=data,
        )
        self._check(response, "Range upload")

    def get_range_list(self) -> List[Range]:
        response = self._check(self._request("GET", params={"comp": "rangelist"}), "Range list")
        return parse_range_list(response.content)

    def download(self) -> bytes:
        return self._check(self._request("GET"), "Download").content

    def delete(self) -> None:
        self._check(self._request("DELETE"), "Delete file")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Session is shared, don't close it here
        pass


def open_http_backend(url: str, **options) -> HTTPRangeBackend:
    """Create a synchronous HTTP backend."""
    return HTTPRangeBackend(url, **options)
