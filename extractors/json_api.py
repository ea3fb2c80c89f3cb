"""
Mapping of the search page's JSON representation to listing hints.

The search results URL answers with JSON when asked for it
(Accept: application/json). Field names vary between API versions, so
each record field is matched against a list of candidate keys.
"""

import logging
from typing import Any, Container, Dict, List

from crawler_config import BASE_URL
from models import ListingHint
from .normalize import to_absolute_url
from .pagination import with_page_param
from .strategies import first_non_empty

logger = logging.getLogger(__name__)

# Candidate payload keys per record field, first non-empty wins
FIELD_KEYS = {
    'title': ['title'],
    'company': ['employer', 'organisation', 'company'],
    'location': ['location', 'jobLocation'],
    'salary': ['salary', 'payRange'],
    'contract_type': ['contractType', 'contract'],
    'working_pattern': ['workingPattern', 'workingHours'],
    'date_posted': ['datePosted', 'postedDate'],
    'closing_date': ['closingDate', 'deadline'],
    'reference': ['reference', 'jobReference', 'referenceNumber'],
}

URL_KEYS = ['url', 'link', 'jobUrl', 'href']


def api_url(list_url: str, page_number: int) -> str:
    """URL of the JSON representation of a listing page."""
    return with_page_param(list_url, page_number)


def key_value(key: str):
    """Strategy reading a scalar value from a payload entry."""
    def strategy(entry: Dict[str, Any]):
        value = entry.get(key)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return value
        return None
    return strategy


def _first_url(entry: Dict[str, Any], base_url: str):
    for key in URL_KEYS:
        value = entry.get(key)
        url = to_absolute_url(value, base_url) if isinstance(value, str) else None
        if url:
            return url
    return None


def api_results(payload: Any) -> List[Any]:
    """Raw `results` entries of a JSON API payload; empty if it has none."""
    if not isinstance(payload, dict):
        return []
    results = payload.get('results')
    return results if isinstance(results, list) else []


def extract_api_results(payload: Any, base_url: str = BASE_URL,
                        seen: Container[str] = ()) -> List[ListingHint]:
    """
    Map a JSON API payload to listing hints.

    Args:
        payload: Decoded JSON response
        base_url: Base URL for resolving relative job links
        seen: URLs already discovered by the crawl; these are skipped

    Returns:
        Listing hints in payload order; empty if the payload has no results
    """
    results = api_results(payload)

    hints = []
    emitted = set()
    for entry in results:
        if not isinstance(entry, dict):
            continue

        url = _first_url(entry, base_url)
        if not url:
            logger.debug(f"Dropping API result without a usable link: {entry.get('title')!r}")
            continue
        if url in seen or url in emitted:
            continue
        emitted.add(url)

        fields = {
            name: first_non_empty(entry, [key_value(key) for key in keys])
            for name, keys in FIELD_KEYS.items()
        }
        hints.append(ListingHint(url=url, **fields))

    return hints
