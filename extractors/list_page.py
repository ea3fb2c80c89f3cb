"""
Pure extraction functions for NHS Jobs search results pages.

These functions don't perform I/O. They turn a parsed listing page into
partial job records (listing hints) in document order.
"""

import logging
from typing import Container, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from crawler_config import JOB_ADVERT_PATH
from models import ListingHint
from .normalize import element_text, normalize, to_absolute_url
from .strategies import (
    first_non_empty,
    own_text,
    select_attr,
    select_text,
)

logger = logging.getLogger(__name__)

# Result item containers, most specific first
CONTAINER_SELECTORS = [
    'li.search-result',
    'article.search-result',
    'div.search-result',
]

# Title link candidates inside a container
TITLE_LINK_SELECTORS = [
    '[data-test="search-result-job-title"]',
    'h2 a',
    'h3 a',
    f'a[href*="{JOB_ADVERT_PATH}"]',
]

_LOCATION_BLOCK = '[data-test="search-result-location"]'

FIELD_STRATEGIES = {
    'company': [
        own_text(f'{_LOCATION_BLOCK} h3'),
        select_text(_LOCATION_BLOCK),
        select_text('[class*="employer"]'),
        select_text('[class*="organisation"]'),
    ],
    'location': [
        select_text(f'{_LOCATION_BLOCK} h3 .location-font-size'),
        select_text(f'{_LOCATION_BLOCK} .location-font-size'),
        select_text('[class*="location"]'),
    ],
    'salary': [
        select_text('[data-test="search-result-salary"] strong'),
        select_text('[class*="salary"]'),
    ],
    'date_posted': [
        select_text('[data-test="search-result-publicationDate"] strong'),
        select_attr('time[datetime]', 'datetime'),
    ],
    'closing_date': [
        select_text('[data-test="search-result-closingDate"] strong'),
        select_text('[class*="closing"]'),
    ],
    'contract_type': [
        select_text('[data-test="search-result-jobType"] strong'),
        select_text('[data-test="search-result-contractType"] strong'),
        select_text('[class*="contract"]'),
    ],
    'working_pattern': [
        select_text('[data-test="search-result-workingPattern"] strong'),
        select_text('[class*="working-pattern"]'),
        select_text('[class*="hours"]'),
    ],
}


def find_containers(soup: BeautifulSoup) -> List[Tag]:
    """
    Collect result item containers.

    Args:
        soup: Parsed listing page

    Returns:
        Containers in document order
    """
    return soup.select(', '.join(CONTAINER_SELECTORS))


def resolve_title_link(container: Tag, base_url: str) -> tuple[Optional[str], Optional[str]]:
    """
    Find the title and absolute detail URL of a result item.

    The first title-link candidate that has both a non-empty title and a
    resolvable href wins.

    Args:
        container: Result item element
        base_url: Base URL for resolving relative links

    Returns:
        (title, url), or (None, None) if no candidate qualifies
    """
    for css in TITLE_LINK_SELECTORS:
        for link in container.select(css):
            title = normalize(element_text(link))
            href = link.get('href')
            if href is None:
                # The data-test marker may sit on a heading wrapping the link
                inner = link.find('a', href=True)
                href = inner.get('href') if inner else None
            url = to_absolute_url(href, base_url)
            if title and url:
                return title, url
    return None, None


def _extract_from_containers(soup: BeautifulSoup, base_url: str,
                             seen: Container[str], emitted: set) -> Iterator[ListingHint]:
    for container in find_containers(soup):
        title, url = resolve_title_link(container, base_url)
        if not title or not url:
            logger.debug("Skipping result item without title or link")
            continue

        if url in seen or url in emitted:
            continue
        emitted.add(url)

        fields = {
            name: first_non_empty(container, strategies)
            for name, strategies in FIELD_STRATEGIES.items()
        }
        yield ListingHint(title=title, url=url, **fields)


def _extract_from_links(soup: BeautifulSoup, base_url: str,
                        seen: Container[str], emitted: set) -> Iterator[ListingHint]:
    for link in soup.select(f'a[href*="{JOB_ADVERT_PATH}"]'):
        url = to_absolute_url(link.get('href'), base_url)
        if not url or url in seen or url in emitted:
            continue

        title = normalize(element_text(link)) or normalize(link.get('title'))
        if not title:
            continue

        emitted.add(url)
        yield ListingHint(title=title, url=url)


def extract_listing(soup: BeautifulSoup, base_url: str,
                    seen: Container[str] = ()) -> Iterator[ListingHint]:
    """
    Extract job summaries from a search results page.

    When no structured result item yields a job (the markup drifted), every
    job advert link on the page becomes a minimal title + url record.

    Args:
        soup: Parsed listing page
        base_url: URL of the page, for resolving relative links
        seen: URLs already discovered by the crawl; these are skipped

    Yields:
        ListingHint per job, in document order, each URL at most once
    """
    emitted: set = set()

    found = False
    for hint in _extract_from_containers(soup, base_url, seen, emitted):
        found = True
        yield hint

    if not found:
        yield from _extract_from_links(soup, base_url, seen, emitted)
