"""
Next-page resolution for search results pages.
"""

from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup

from .normalize import to_absolute_url

# Next-link candidates, first match wins
NEXT_LINK_SELECTORS = [
    'a.nhsuk-pagination__link--next',
    'a[rel="next"]',
    'a[aria-label*="next" i]',
    'a:-soup-contains("Next")',
]


def with_page_param(url: str, page_number: int, page_param: str = 'page') -> str:
    """
    Set the page query parameter on a URL, keeping the other parameters.

    Args:
        url: URL to update
        page_number: Page number to set
        page_param: Query parameter name

    Returns:
        Updated URL
    """
    parsed = urlparse(url)
    params = parse_qs(parsed.query, keep_blank_values=True)
    params[page_param] = [str(page_number)]
    query = urlencode(params, doseq=True)
    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        query,
        ''
    ))


def find_next_link(soup: BeautifulSoup, current_url: str) -> Optional[str]:
    """Absolute URL of the page's own "next page" link, if it has one."""
    for css in NEXT_LINK_SELECTORS:
        link = soup.select_one(css)
        if link is None:
            continue
        url = to_absolute_url(link.get('href'), current_url)
        if url:
            return url
    return None


def next_page(soup: BeautifulSoup, current_url: str, page_number: int) -> Optional[str]:
    """
    Resolve the URL of the next listing page.

    Prefers the page's navigation link. Without one, the next page is
    manufactured by setting page=page_number + 1 on current_url; that page
    may not exist, in which case it simply extracts nothing.

    Args:
        soup: Parsed listing page
        current_url: URL of the listing page
        page_number: Number of the listing page (1-based)

    Returns:
        Absolute URL of the next page
    """
    return find_next_link(soup, current_url) or with_page_param(current_url, page_number + 1)
