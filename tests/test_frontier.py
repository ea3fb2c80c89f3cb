"""
Tests for the frontier controller and complete crawls.

Crawls run through the real work queue and controller with a fake
fetcher serving fixture pages, so no network access is needed.
"""

import math
import threading
import unittest
from pathlib import Path

from extractors.json_api import api_url
from fetcher import FetchError
from frontier import DETAIL, LIST, CrawlRequest, FrontierController, RequestResult
from input_loader import CrawlInput
from job_crawler import run_crawl
from models import ListingHint
from persistence.crawl_state import CrawlState
from persistence.dataset import MemoryDataset

FIXTURES = Path(__file__).parent / "fixtures"
SEARCH_URL = "https://www.jobs.nhs.uk/candidate/search/results?keyword=nurse"
PAGE_2_URL = "https://www.jobs.nhs.uk/candidate/search/results?keyword=nurse&page=2"
JOB_1 = "https://www.jobs.nhs.uk/candidate/jobadvert/C9237-24-0001?keyword=nurse"
JOB_2 = "https://www.jobs.nhs.uk/candidate/jobadvert/C9237-24-0002"
JOB_3 = "https://www.jobs.nhs.uk/candidate/jobadvert/C9237-24-0003"
EMPTY_PAGE = "<html><body><p>No jobs found</p></body></html>"


def fixture(name):
    with open(FIXTURES / name, 'r', encoding='utf-8') as f:
        return f.read()


class FakeFetcher:
    """Serves canned pages and JSON payloads; anything else fails."""

    def __init__(self, pages=None, json_pages=None):
        self.pages = pages or {}
        self.json_pages = json_pages or {}
        self.fetched = []
        self._lock = threading.Lock()

    def fetch(self, url, headers=None, want_json=False):
        with self._lock:
            self.fetched.append((url, want_json))
        source = self.json_pages if want_json else self.pages
        if url not in source:
            raise FetchError(url, "HTTP 404")
        return source[url]

    def html_fetches(self):
        return [url for url, want_json in self.fetched if not want_json]


def site(details=True):
    pages = {
        SEARCH_URL: fixture("listing_page.html"),
        PAGE_2_URL: EMPTY_PAGE,
    }
    if details:
        pages.update({
            JOB_1: fixture("detail_page_bare.html"),
            JOB_2: fixture("detail_page.html"),
            JOB_3: fixture("detail_page_bare.html"),
        })
    return FakeFetcher(pages)


def crawl(fetcher, start_urls=(SEARCH_URL,), concurrency=3, **options):
    sink = MemoryDataset()
    crawl_input = CrawlInput.from_dict({'start_urls': list(start_urls), **options})
    controller = run_crawl(crawl_input, sink, fetcher=fetcher, max_concurrency=concurrency)
    return controller, sink


class TestDirectListCrawl(unittest.TestCase):
    """Crawls that save listing data without visiting job pages."""

    def test_budget_stops_pagination(self):
        """3 items on page 1 with wanted=2: exactly 2 records, no page 2 request."""
        fetcher = site(details=False)
        controller, sink = crawl(fetcher, results_wanted=2, collect_details=False)

        self.assertEqual(len(sink.records), 2)
        self.assertEqual(sink.urls, [JOB_1, JOB_2])
        self.assertEqual(fetcher.html_fetches(), [SEARCH_URL])
        self.assertEqual(controller.state.budget.saved, 2)

    def test_follows_pagination_until_empty_page(self):
        fetcher = site(details=False)
        controller, sink = crawl(fetcher, results_wanted=math.inf, collect_details=False)

        self.assertEqual(len(sink.records), 3)
        self.assertEqual(fetcher.html_fetches(), [SEARCH_URL, PAGE_2_URL])
        self.assertEqual(controller.stats['list_pages_visited'], 2)
        self.assertEqual(controller.state.budget.pages_visited[SEARCH_URL], 2)

    def test_max_pages_one(self):
        """max_pages=1 issues a single LIST request per chain whatever the budget."""
        fetcher = site(details=False)
        crawl(fetcher, results_wanted=1000, max_pages=1, collect_details=False)

        self.assertEqual(fetcher.html_fetches(), [SEARCH_URL])

    def test_listing_records_are_normalized(self):
        _, sink = crawl(site(details=False), collect_details=False)
        record = sink.records[0]

        self.assertEqual(record.title, "Staff Nurse")
        self.assertEqual(record.working_pattern, "Full-time")
        self.assertIsNone(record.description_text)

    def test_json_api_preferred(self):
        """A non-empty JSON API payload replaces HTML parsing for that page."""
        fetcher = site(details=False)
        fetcher.json_pages[api_url(SEARCH_URL, 1)] = {"results": [
            {"title": "Porter", "employer": "Harrogate and District NHS Foundation Trust",
             "url": "/candidate/jobadvert/P100"},
            {"title": "Porter Porter", "url": "/candidate/jobadvert/P200"},
        ]}
        controller, sink = crawl(fetcher, collect_details=False)

        self.assertEqual([record.title for record in sink.records], ["Porter", "Porter"])
        self.assertEqual(sink.urls, [
            "https://www.jobs.nhs.uk/candidate/jobadvert/P100",
            "https://www.jobs.nhs.uk/candidate/jobadvert/P200",
        ])
        self.assertEqual(controller.stats['api_pages'], 1)
        # Page 2 has no JSON and falls back to (empty) HTML
        self.assertEqual(controller.stats['html_pages'], 1)


class TestDetailCrawl(unittest.TestCase):
    """Crawls that visit every job page."""

    def test_collects_details(self):
        fetcher = site()
        controller, sink = crawl(fetcher)

        self.assertEqual(sorted(sink.urls), sorted([JOB_1, JOB_2, JOB_3]))
        self.assertEqual(controller.state.budget.saved, 3)
        self.assertEqual(controller.state.budget.in_flight_details, 0)

    def test_hint_backfills_company(self):
        """A detail page without company data takes the listing's company."""
        _, sink = crawl(site())
        record = next(record for record in sink.records if record.url == JOB_1)

        self.assertEqual(record.company, "Leeds Teaching Hospitals NHS Trust")
        self.assertEqual(record.title, "Healthcare Assistant")
        self.assertEqual(record.working_pattern, "Full-time")

    def test_budget_limits_detail_requests(self):
        """saved ends at min(wanted, discoverable) and extra pages aren't fetched."""
        fetcher = site()
        controller, sink = crawl(fetcher, results_wanted=2)

        self.assertEqual(len(sink.records), 2)
        self.assertEqual(controller.state.budget.saved, 2)
        self.assertEqual(fetcher.html_fetches().count(JOB_3), 0)
        self.assertNotIn(PAGE_2_URL, fetcher.html_fetches())

    def test_budget_larger_than_site(self):
        controller, sink = crawl(site(), results_wanted=50)
        self.assertEqual(controller.state.budget.saved, 3)
        self.assertEqual(len(sink.records), 3)

    def test_failed_detail_does_not_stall(self):
        """A job page that can't be fetched is skipped and its slot released."""
        fetcher = site()
        del fetcher.pages[JOB_3]
        controller, sink = crawl(fetcher)

        self.assertEqual(sorted(sink.urls), sorted([JOB_1, JOB_2]))
        self.assertEqual(controller.stats['details_failed'], 1)
        self.assertEqual(controller.state.budget.in_flight_details, 0)

    def test_failed_listing_ends_chain(self):
        controller, sink = crawl(FakeFetcher())

        self.assertEqual(sink.records, [])
        self.assertEqual(controller.stats['list_pages_failed'], 1)

    def test_urls_unique_across_chains(self):
        """Two start URLs listing the same jobs never produce duplicate records."""
        fetcher = site()
        other_search = SEARCH_URL + "&sort=date"
        fetcher.pages[other_search] = fixture("listing_page.html")
        _, sink = crawl(fetcher, start_urls=[SEARCH_URL, other_search], concurrency=6)

        self.assertEqual(len(sink.urls), 3)
        self.assertEqual(len(set(sink.urls)), 3)

    def test_description_text_invariant(self):
        _, sink = crawl(site())
        for record in sink.records:
            if record.description_html is None:
                self.assertIsNone(record.description_text)
            else:
                self.assertNotIn("console.log", record.description_text)
                self.assertNotIn("  ", record.description_text)
                self.assertEqual(record.description_text, record.description_text.strip())


class TestFrontierController(unittest.TestCase):
    """Unit tests for single state transitions."""

    def setUp(self):
        self.sink = MemoryDataset()
        self.state = CrawlState(wanted=2, max_pages=3)
        self.controller = FrontierController([SEARCH_URL], self.state, self.sink)

    def test_initial_requests(self):
        [request] = self.controller.initial_requests()

        self.assertEqual(request.label, LIST)
        self.assertEqual(request.page_number, 1)
        self.assertEqual(request.chain, SEARCH_URL)

    def test_list_schedules_details_within_budget(self):
        request = self.controller.initial_requests()[0]
        requests = self.controller.handle(RequestResult(request, body=fixture("listing_page.html")))

        self.assertEqual([r.label for r in requests], [DETAIL, DETAIL])
        self.assertEqual(requests[0].hint.title, "Staff Nurse")
        self.assertEqual(self.state.budget.in_flight_details, 2)
        self.assertIn(JOB_1, self.state)

    def test_list_schedules_next_page(self):
        self.state.budget.wanted = 10
        request = self.controller.initial_requests()[0]
        requests = self.controller.handle(RequestResult(request, body=fixture("listing_page.html")))

        self.assertEqual(requests[-1].label, LIST)
        self.assertEqual(requests[-1].url, PAGE_2_URL)
        self.assertEqual(requests[-1].page_number, 2)
        self.assertEqual(requests[-1].chain, SEARCH_URL)

    def test_page_of_seen_jobs_ends_chain(self):
        """Jobs already discovered are not rescheduled; nothing new means no next page."""
        self.state.budget.wanted = 10
        request = self.controller.initial_requests()[0]
        self.controller.handle(RequestResult(request, body=fixture("listing_page.html")))
        requests = self.controller.handle(RequestResult(request, body=fixture("listing_page.html")))

        self.assertEqual(requests, [])
        self.assertEqual(self.state.budget.in_flight_details, 3)

    def test_detail_discarded_when_budget_met(self):
        self.state.budget.saved = 2
        self.state.budget.in_flight_details = 1
        request = CrawlRequest(url=JOB_2, label=DETAIL, hint=ListingHint(url=JOB_2))

        requests = self.controller.handle(RequestResult(request, body=fixture("detail_page.html")))

        self.assertEqual(requests, [])
        self.assertEqual(self.sink.records, [])
        self.assertEqual(self.state.budget.in_flight_details, 0)
        self.assertEqual(self.controller.stats['details_discarded'], 1)

    def test_detail_error_is_contained(self):
        """An extraction failure is logged and still releases the slot."""
        self.state.budget.in_flight_details = 1
        request = CrawlRequest(url="not a url", label=DETAIL)

        with self.assertLogs('frontier', level='ERROR'):
            requests = self.controller.handle(RequestResult(request, body="<html></html>"))

        self.assertEqual(requests, [])
        self.assertEqual(self.state.budget.in_flight_details, 0)
        self.assertEqual(self.controller.stats['details_failed'], 1)

    def test_api_results_win_even_when_all_seen(self):
        """A non-empty API result list is used even if it has no new jobs."""
        self.state.budget.wanted = 10
        self.state.admit_details([ListingHint(url=JOB_2)])
        request = self.controller.initial_requests()[0]
        payload = {"results": [{"title": "Band 6 Nurse", "url": JOB_2}]}

        requests = self.controller.handle(RequestResult(
            request, body=fixture("listing_page.html"), api_payload=payload))

        self.assertEqual(requests, [])
        self.assertEqual(self.controller.stats['api_pages'], 1)
        self.assertEqual(self.controller.stats['html_pages'], 0)

    def test_empty_api_results_fall_back_to_html(self):
        request = self.controller.initial_requests()[0]
        requests = self.controller.handle(RequestResult(
            request, body=fixture("listing_page.html"), api_payload={"results": []}))

        self.assertEqual(len(requests), 2)
        self.assertEqual(self.controller.stats['api_pages'], 0)
        self.assertEqual(self.controller.stats['html_pages'], 1)

    def test_list_fetch_error(self):
        request = self.controller.initial_requests()[0]
        result = RequestResult(request, error=FetchError(SEARCH_URL, "HTTP 503"))

        self.assertEqual(self.controller.handle(result), [])
        self.assertEqual(self.controller.stats['list_pages_failed'], 1)

    def test_page_ceiling(self):
        self.state.budget.wanted = 10
        request = CrawlRequest(url=SEARCH_URL, label=LIST, page_number=3, chain=SEARCH_URL)
        requests = self.controller.handle(RequestResult(request, body=fixture("listing_page.html")))

        self.assertNotIn(LIST, [r.label for r in requests])


if __name__ == '__main__':
    unittest.main()
