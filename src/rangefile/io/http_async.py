"""Asynchronous file-service backend using httpx."""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx

from ..core.model import Range, BackendFailure
from .base import (
    API_VERSION, DEFAULT_TIMEOUT,
    create_headers, upload_headers, parse_range_list,
)

logger = logging.getLogger(__name__)

# Global async client
_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def _get_client():
    """Get or create the global httpx AsyncClient."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=60.0)

    try:
        yield _client
    finally:
        # Don't close the client here - it's shared
        pass


class HTTPAsyncRangeBackend:
    """Asynchronous backend for a file addressed by a signed URL."""

    def __init__(self, url: str, *, timeout: float = DEFAULT_TIMEOUT, api_version: str = API_VERSION):
        self.url = url
        self.timeout = timeout
        self.api_version = api_version
        self.requests_made = 0

    async def _request(self, method: str, *, params=None, headers=None, content=None) -> httpx.Response:
        all_headers = {"x-ms-version": self.api_version}
        if headers:
            all_headers.update(headers)
        # params must extend the SAS query, not replace it
        url = httpx.URL(self.url).copy_merge_params(params) if params else self.url
        logger.debug("%s %s params=%s", method, self.url.split("?")[0], params)
        self.requests_made += 1
        async with _get_client() as client:
            try:
                return await client.request(
                    method, url, headers=all_headers,
                    content=content, timeout=self.timeout,
                )
            except httpx.RequestError as e:
                raise BackendFailure(f"{method} request failed: {e}") from e

    def _check(self, response: httpx.Response, action: str) -> httpx.Response:
        if response.status_code >= 400:
            raise BackendFailure(
                f"{action} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def create(self, capacity: int) -> None:
        response = await self._request("PUT", headers=create_headers(capacity))
        self._check(response, "Create file")

    async def exists(self) -> bool:
        response = await self._request("HEAD")
        if response.status_code == 404:
            return False
        self._check(response, "HEAD request")
        return True

    async def size(self) -> int:
        response = self._check(await self._request("HEAD"), "HEAD request")
        content_length = response.headers.get("content-length")
        if content_length is None:
            raise BackendFailure("HEAD response carries no Content-Length")
        return int(content_length)

    async def upload_range(self, offset: int, data: bytes) -> None:
        response = await self._request(
            "PUT",
            params={"comp": "range"},
            headers=upload_headers(offset, len(data)),
            content=data,
        )
        self._check(response, "Range upload")

    async def get_range_list(self) -> List[Range]:
        response = self._check(await self._request("GET", params={"comp": "rangelist"}), "Range list")
        return parse_range_list(response.content)

    async def download(self) -> bytes:
        return self._check(await self._request("GET"), "Download").content

    async def delete(self) -> None:
        self._check(await self._request("DELETE"), "Delete file")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Client is shared, don't close it here
        pass


async def open_http_backend_async(url: str, **options) -> HTTPAsyncRangeBackend:
    """Create an asynchronous HTTP backend."""
    return HTTPAsyncRangeBackend(url, **options)


async def close_global_client():
    """Close the global httpx client. Call this at application shutdown."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
