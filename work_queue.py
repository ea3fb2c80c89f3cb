"""
Bounded work queue that runs crawl requests concurrently.

Worker threads only fetch. Results are handed back to the dispatcher
thread, which passes each one to the handler (the frontier controller)
and enqueues whatever requests the handler returns. The run ends when
nothing is queued and nothing is in flight.
"""

import logging
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Deque, Dict, Iterable, List

import crawler_config
from extractors.json_api import api_url
from fetcher import FetchError, PageFetcher
from frontier import LIST, CrawlRequest, RequestResult

logger = logging.getLogger(__name__)

Handler = Callable[[RequestResult], List[CrawlRequest]]


class WorkQueue:
    """FIFO request queue drained by a fixed-size thread pool."""

    def __init__(self, fetcher: PageFetcher, handler: Handler,
                 max_concurrency: int = crawler_config.MAX_CONCURRENCY):
        """
        Initialize the queue.

        Args:
            fetcher: Fetcher used by the worker threads
            handler: Called on the dispatcher thread for every finished request
            max_concurrency: Number of worker threads
        """
        self.fetcher = fetcher
        self.handler = handler
        self.max_concurrency = max(1, max_concurrency)
        self.pending: Deque[CrawlRequest] = deque()
        self.processed = 0

    def enqueue(self, requests: Iterable[CrawlRequest]) -> None:
        """Add requests to the back of the queue."""
        self.pending.extend(requests)

    def execute(self, request: CrawlRequest) -> RequestResult:
        """
        Fetch one request. Runs on a worker thread and never raises.

        LIST requests also try the JSON representation of the page; if
        that isn't available the result simply carries no API payload.
        """
        try:
            body = self.fetcher.fetch(request.url)
        except FetchError as e:
            return RequestResult(request=request, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching {request.url}")
            return RequestResult(request=request, error=e)

        result = RequestResult(request=request, body=body)
        if request.label == LIST:
            try:
                result.api_payload = self.fetcher.fetch(
                    api_url(request.url, request.page_number or 1),
                    want_json=True,
                )
            except FetchError as e:
                logger.debug(f"JSON API not available: {e}")
        return result

    def run(self) -> None:
        """Process requests until the queue is drained."""
        running: Dict[Future, CrawlRequest] = {}

        with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
            while self.pending or running:
                while self.pending and len(running) < self.max_concurrency:
                    request = self.pending.popleft()
                    running[pool.submit(self.execute, request)] = request

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    running.pop(future)
                    self.processed += 1
                    self.enqueue(self.handler(future.result()))

        logger.debug(f"Work queue drained after {self.processed} requests")
