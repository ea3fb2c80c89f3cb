"""
Frontier controller - decides what to fetch next.

The crawl has two request labels:
1. LIST pages (search results) are mined for job summaries and followed
   to the next results page while the budget and page ceiling allow
2. DETAIL pages (one job advert each) become finished job records

Every completed fetch arrives as one RequestResult. handle() performs a
short synchronous state transition and returns the requests to enqueue
next. The controller itself never performs I/O other than appending
finished records to the sink.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from bs4 import BeautifulSoup

from extractors.detail_page import extract_detail
from extractors.json_api import api_results, extract_api_results
from extractors.list_page import extract_listing
from extractors.pagination import next_page
from models import ListingHint
from persistence.crawl_state import CrawlState
from persistence.dataset import Sink

logger = logging.getLogger(__name__)

LIST = 'LIST'
DETAIL = 'DETAIL'


@dataclass
class CrawlRequest:
    """A page to fetch, with what the controller needs to handle it."""
    url: str
    label: str = LIST
    page_number: Optional[int] = None  # LIST only
    hint: Optional[ListingHint] = None  # DETAIL only
    chain: Optional[str] = None  # start URL of the listing chain


@dataclass
class RequestResult:
    """Outcome of fetching one CrawlRequest."""
    request: CrawlRequest
    body: Optional[str] = None
    api_payload: Any = None  # LIST only: decoded JSON API response, if any
    error: Optional[Exception] = None


class FrontierController:
    """
    Two-phase crawl controller.

    Turns start URLs into LIST requests, LIST results into DETAIL requests
    (or directly saved records) and DETAIL results into saved records,
    keeping within the result budget and page ceiling.
    """

    def __init__(self, start_urls: Iterable[str], state: CrawlState, sink: Sink,
                 collect_details: bool = True):
        """
        Initialize the controller.

        Args:
            start_urls: Search results URLs, one listing chain each
            state: Crawl-wide budget and seen URLs
            sink: Where finished records go
            collect_details: Fetch each job's advert page (False = save listing data)
        """
        self.start_urls = list(start_urls)
        self.state = state
        self.sink = sink
        self.collect_details = collect_details

        # Statistics
        self.stats = {
            'list_pages_visited': 0,
            'list_pages_failed': 0,
            'api_pages': 0,
            'html_pages': 0,
            'details_failed': 0,
            'details_discarded': 0,
        }

    def initial_requests(self) -> List[CrawlRequest]:
        """One LIST request per start URL, as page 1 of its chain."""
        return [
            CrawlRequest(url=url, label=LIST, page_number=1, chain=url)
            for url in self.start_urls
        ]

    def handle(self, result: RequestResult) -> List[CrawlRequest]:
        """
        Process one completed request.

        Never raises; failures are logged and their bookkeeping performed.

        Args:
            result: Fetch outcome

        Returns:
            Requests to enqueue next
        """
        if result.request.label == DETAIL:
            self._handle_detail(result)
            return []

        try:
            return self._handle_list(result)
        except Exception:
            logger.exception(f"Failed to process listing page {result.request.url}")
            self.stats['list_pages_failed'] += 1
            return []

    def _handle_list(self, result: RequestResult) -> List[CrawlRequest]:
        request = result.request
        page_number = request.page_number or 1
        chain = request.chain or request.url

        if result.error is not None:
            logger.error(f"Listing page {page_number} failed, ending chain: {result.error}")
            self.stats['list_pages_failed'] += 1
            return []

        logger.info(f"Processing page {page_number}: {request.url}")
        self.state.visit_page(chain)
        self.stats['list_pages_visited'] += 1

        soup = BeautifulSoup(result.body or '', 'lxml')

        # A non-empty API result list wins even if every entry was seen before
        if api_results(result.api_payload):
            jobs = extract_api_results(result.api_payload, seen=self.state)
            self.stats['api_pages'] += 1
            logger.info(f"JSON API returned {len(jobs)} new jobs")
        else:
            jobs = list(extract_listing(soup, request.url, seen=self.state))
            self.stats['html_pages'] += 1
            logger.info(f"HTML parsing found {len(jobs)} jobs")

        if not jobs:
            logger.info(f"No jobs found on page {page_number}, ending chain")
            return []

        requests = []
        if self.collect_details:
            for hint in self.state.admit_details(jobs):
                requests.append(CrawlRequest(url=hint.url, label=DETAIL, hint=hint, chain=chain))
            if requests:
                logger.info(f"Enqueued {len(requests)} detail pages")
        else:
            records = self.state.admit_records(jobs)
            for record in records:
                self.sink.append(record.to_record())
            if records:
                logger.info(f"Saved {len(records)} jobs (total: {self.state.budget.saved})")

        if not self.state.wants_more():
            return requests

        if page_number >= self.state.budget.max_pages:
            logger.info(f"Reached max_pages limit: {self.state.budget.max_pages}")
            return requests

        next_url = next_page(soup, request.url, page_number)
        if next_url:
            requests.append(CrawlRequest(url=next_url, label=LIST,
                                         page_number=page_number + 1, chain=chain))
            logger.info(f"Enqueued next page: {page_number + 1}")
        else:
            logger.info("No more pages found")

        return requests

    def _handle_detail(self, result: RequestResult) -> None:
        request = result.request
        try:
            if result.error is not None:
                logger.error(f"Failed to fetch {request.url}: {result.error}")
                self.stats['details_failed'] += 1
                return

            if self.state.budget_met():
                logger.debug(f"Budget met, discarding {request.url}")
                self.stats['details_discarded'] += 1
                return

            soup = BeautifulSoup(result.body or '', 'lxml')
            record = extract_detail(soup, request.url, request.hint)
            self.sink.append(record)
            saved = self.state.record_saved()
            logger.info(f"Saved job detail ({saved}/{self.state.budget.wanted}): {record.title}")
        except Exception:
            logger.exception(f"Failed to process {request.url}")
            self.stats['details_failed'] += 1
        finally:
            self.state.release_detail()
