"""
Crawl-wide state shared by concurrent request handlers.

Holds the result budget and the set of discovered job URLs. All reads
and updates go through CrawlState methods, each a short critical section
under one lock, so concurrent LIST and DETAIL completions see consistent
counters.
"""

import math
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, TypeVar

T = TypeVar('T')


@dataclass
class CrawlBudget:
    """Result budget and page ceiling of one crawl."""
    wanted: float = math.inf  # int, or math.inf when unbounded
    max_pages: int = 50
    saved: int = 0
    in_flight_details: int = 0
    pages_visited: Dict[str, int] = field(default_factory=dict)

    @property
    def outstanding(self) -> int:
        """Records saved or on their way."""
        return self.saved + self.in_flight_details


class SeenSet:
    """
    Job URLs already discovered by the crawl.

    Grows for the crawl's whole lifetime; nothing is ever removed.
    Not thread-safe on its own - CrawlState guards it.
    """

    def __init__(self, urls: Optional[Iterable[str]] = None):
        self._urls: Set[str] = set(urls or ())

    def __contains__(self, url: str) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def claim(self, url: str) -> bool:
        """Add url; return True if it was not seen before."""
        if url in self._urls:
            return False
        self._urls.add(url)
        return True


class CrawlState:
    """
    Budget and seen set behind a single lock.

    One instance per crawl; separate crawls never share state.
    """

    def __init__(self, wanted: float = math.inf, max_pages: int = 50):
        self.budget = CrawlBudget(wanted=wanted, max_pages=max_pages)
        self.seen = SeenSet()
        self._lock = threading.Lock()

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self.seen

    def admit_details(self, items: Iterable[T]) -> List[T]:
        """
        Admit listing items for detail fetching.

        Takes items in order while the budget has room, skipping URLs
        already seen. Admitted URLs are claimed and counted as in flight.

        Args:
            items: Objects with a `url` attribute

        Returns:
            Admitted items
        """
        with self._lock:
            remaining = self.budget.wanted - self.budget.outstanding
            admitted = self._claim_up_to(items, remaining)
            self.budget.in_flight_details += len(admitted)
            return admitted

    def admit_records(self, items: Iterable[T]) -> List[T]:
        """
        Admit listing items to be saved directly.

        Same as admit_details, but admitted items count as saved.
        """
        with self._lock:
            remaining = self.budget.wanted - self.budget.saved
            admitted = self._claim_up_to(items, remaining)
            self.budget.saved += len(admitted)
            return admitted

    def _claim_up_to(self, items: Iterable[T], remaining: float) -> List[T]:
        admitted: List[T] = []
        for item in items:
            if len(admitted) >= max(0, remaining):
                break
            url = getattr(item, 'url', None)
            if url and self.seen.claim(url):
                admitted.append(item)
        return admitted

    def budget_met(self) -> bool:
        with self._lock:
            return self.budget.saved >= self.budget.wanted

    def record_saved(self) -> int:
        """Count one saved record; returns the new total."""
        with self._lock:
            self.budget.saved += 1
            return self.budget.saved

    def release_detail(self) -> None:
        """Mark one detail request as resolved (success or failure)."""
        with self._lock:
            self.budget.in_flight_details = max(0, self.budget.in_flight_details - 1)

    def wants_more(self) -> bool:
        """True while saved plus in-flight records are below the budget."""
        with self._lock:
            return self.budget.outstanding < self.budget.wanted

    def visit_page(self, chain: str) -> int:
        """Count a visited listing page of a chain; returns the chain's total."""
        with self._lock:
            visited = self.budget.pages_visited.get(chain, 0) + 1
            self.budget.pages_visited[chain] = visited
            return visited

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return {
                'wanted': self.budget.wanted,
                'saved': self.budget.saved,
                'in_flight_details': self.budget.in_flight_details,
                'seen': len(self.seen),
            }
