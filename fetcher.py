"""
HTTP fetcher for NHS Jobs pages.

Uses curl_cffi with browser impersonation so requests look like a regular
Chrome visit. Failed attempts are retried after a delay, moving to the
next configured proxy (if any) on every retry.
"""

import itertools
import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional

from curl_cffi import requests
from curl_cffi.requests import exceptions as requests_exceptions

import crawler_config

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A request failed on every attempt."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PageFetcher:
    """Fetches pages and JSON documents with retries and proxy rotation."""

    def __init__(self, proxy_urls: Optional[Iterable[str]] = None,
                 max_retries: Optional[int] = None, retry_delay: Optional[float] = None,
                 timeout: Optional[float] = None):
        """
        Initialize the fetcher.

        Args:
            proxy_urls: Proxy URLs to rotate through (None = direct connection)
            max_retries: Retries after the first attempt (None = use config default)
            retry_delay: Seconds between attempts (None = use config default)
            timeout: Per-request timeout in seconds (None = use config default)
        """
        self.max_retries = max_retries if max_retries is not None else crawler_config.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else crawler_config.RETRY_DELAY
        self.timeout = timeout if timeout is not None else crawler_config.REQUEST_TIMEOUT
        self.impersonate = crawler_config.IMPERSONATE

        proxies = list(proxy_urls or [])
        self._proxies = itertools.cycle(proxies) if proxies else None
        self._proxy_lock = threading.Lock()

        # curl_cffi sessions aren't shared between threads
        self._local = threading.local()
        self._sessions = []

    def _session(self) -> requests.Session:
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._proxy_lock:
                self._sessions.append(session)
        return session

    def _next_proxy(self) -> Optional[Dict[str, str]]:
        if self._proxies is None:
            return None
        with self._proxy_lock:
            proxy = next(self._proxies)
        return {'http': proxy, 'https': proxy}

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None,
              want_json: bool = False) -> Any:
        """
        Fetch a URL.

        Args:
            url: URL to fetch
            headers: Extra headers, merged over the default headers
            want_json: Ask for and decode a JSON response

        Returns:
            Response text, or the decoded JSON document if want_json

        Raises:
            FetchError: If every attempt failed
        """
        request_headers = dict(crawler_config.DEFAULT_HEADERS)
        if want_json:
            request_headers.update(crawler_config.JSON_HEADERS)
        request_headers.update(headers or {})

        reason = "no attempt made"
        for attempt in range(self.max_retries + 1):
            if attempt:
                time.sleep(self.retry_delay)
                logger.debug(f"Retrying {url} (attempt {attempt + 1}/{self.max_retries + 1})")

            try:
                response = self._session().get(
                    url,
                    headers=request_headers,
                    proxies=self._next_proxy(),
                    timeout=self.timeout,
                    impersonate=self.impersonate,
                )
            except requests_exceptions.RequestException as e:
                reason = str(e)
                logger.warning(f"Request error for {url}: {e}")
                continue

            if response.status_code >= 400:
                reason = f"HTTP {response.status_code}"
                logger.warning(f"{reason} for {url}")
                # Client errors other than rate limiting won't improve on retry
                if response.status_code < 500 and response.status_code != 429:
                    break
                continue

            if not want_json:
                return response.text

            try:
                return response.json()
            except ValueError as e:
                # The page answered with HTML; retrying won't change that
                raise FetchError(url, f"response is not JSON ({e})") from e

        raise FetchError(url, reason)

    def close(self) -> None:
        """Close the sessions opened by every worker thread."""
        with self._proxy_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
