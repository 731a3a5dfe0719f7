#!/usr/bin/env python3
"""
HTTP Fetcher — requests-backed fetcher capability

Operation descriptors are mappings:
    {"method": "GET", "path": "/users/{id}", "headers": {...}}

Variables may carry:
    path   -> values formatted into the descriptor path
    query  -> query string parameters
    body   -> JSON request body

The blocking request runs in a worker thread so the event loop keeps
serving cache notifications while it waits.
"""

import asyncio
import logging
import os
import threading
from typing import Any, Dict, Mapping, Optional

import requests

from .config import HttpSettings
from .errors import FetchError

logger = logging.getLogger(__name__)


class RequestsFetcher:
    """
    Fetcher capability for ApiConfig(fetcher=...).

    Design principles:
    - Base URL from settings or APICACHE_HTTP_BASE_URL
    - HTTP status >= 400 raises FetchError, which the controller records as
      the entry's error
    - JSON responses decode to Python values, anything else to text
    """

    DEFAULT_TIMEOUT = 30  # seconds

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = (base_url or os.environ.get("APICACHE_HTTP_BASE_URL", "")).rstrip("/")
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            **(headers or {}),
        }
        self._request_count = 0
        self._error_count = 0
        # counters are bumped from worker threads
        self._stats_lock = threading.Lock()

        if not self.base_url:
            logger.warning("No HTTP base URL configured. Set APICACHE_HTTP_BASE_URL environment variable.")

    @classmethod
    def from_settings(cls, settings: HttpSettings, **kwargs: Any) -> "RequestsFetcher":
        return cls(base_url=settings.base_url, timeout=settings.timeout_sec, **kwargs)

    async def __call__(self, api: Mapping[str, Any], variables: Mapping[str, Any]) -> Any:
        return await asyncio.to_thread(self._request, api, variables)

    def _build_url(self, api: Mapping[str, Any], variables: Mapping[str, Any]) -> str:
        path = api.get("path", "")
        path_args = variables.get("path") or {}
        try:
            path = path.format(**path_args)
        except KeyError as e:
            raise FetchError(f"Missing path variable {e} for {api.get('path')}") from e
        return f"{self.base_url}{path}"

    def _request(self, api: Mapping[str, Any], variables: Mapping[str, Any]) -> Any:
        method = str(api.get("method", "GET")).upper()
        url = self._build_url(api, variables)
        headers = {**self.headers, **(api.get("headers") or {})}
        self._count_request()

        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if variables.get("query"):
            kwargs["params"] = variables["query"]
        if variables.get("body") is not None:
            kwargs["json"] = variables["body"]

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.Timeout as e:
            self._count_error()
            logger.error(f"HTTP timeout: {method} {url} (>{self.timeout}s)")
            raise FetchError(f"Timeout: {method} {url}") from e
        except requests.RequestException as e:
            self._count_error()
            logger.error(f"HTTP request error: {method} {url}: {e}")
            raise FetchError(f"Request failed: {method} {url}: {e}") from e

        if response.status_code >= 400:
            self._count_error()
            logger.warning(f"HTTP error: {method} {url} -> {response.status_code} {response.text[:200]}")
            raise FetchError(
                f"HTTP {response.status_code}: {method} {url}",
                status_code=response.status_code,
                details={"body": response.text[:200]},
            )

        content_type = response.headers.get("Content-Type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError as e:
                raise FetchError(f"Invalid JSON from {method} {url}: {e}") from e
        return response.text

    def _count_request(self) -> None:
        with self._stats_lock:
            self._request_count += 1

    def _count_error(self) -> None:
        with self._stats_lock:
            self._error_count += 1

    def get_stats(self) -> Dict[str, Any]:
        return {
            "requests": self._request_count,
            "errors": self._error_count,
            "base_url": self.base_url or None,
        }

    def close(self) -> None:
        self.session.close()
        logger.info("RequestsFetcher closed")
