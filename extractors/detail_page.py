"""
Extraction of a full job record from a job advert page.

Fields come from three sources, in order: the page's JSON-LD JobPosting
block, page elements (stable ids first, class-substring matches second),
and finally the listing hint carried over from the search results page.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from models import JobRecord, ListingHint
from .normalize import element_text, normalize, to_text
from .strategies import (
    Strategy,
    constant,
    first_non_empty,
    joined_text,
    next_sibling_text,
    select_attr,
    select_text,
)

logger = logging.getLogger(__name__)

_CLOSING_DATE_PREFIX_RE = re.compile(r'the closing date is', re.IGNORECASE)

EMPLOYER_ADDRESS_SELECTORS = [
    '#employer_address_line_1',
    '#employer_address_line_2',
    '#employer_address_line_3',
    '#employer_town',
    '#employer_postcode',
]

# Description containers; every match contributes, not just the first
DESCRIPTION_SELECTORS = [
    '#job_description',
    'section[class*="job-description"]',
    'div[class*="job-description"]',
    '#job-description',
    '.description',
]

# Page element strategies per field: stable ids, then class substrings
PAGE_STRATEGIES: Dict[str, List[Strategy]] = {
    'title': [
        select_text('#heading'),
        select_text('h1'),
        select_text('[class*="job-title"]'),
    ],
    'company': [
        select_text('#employer_name'),
        select_text('[class*="employer"]'),
        select_text('[class*="organisation"]'),
    ],
    'location': [
        joined_text(EMPLOYER_ADDRESS_SELECTORS),
        select_text('[class*="location"]'),
    ],
    'salary': [
        select_text('#fixed_salary'),
        select_text('#salary'),
    ],
    'date_posted': [
        select_attr('time[datetime]', 'datetime'),
    ],
    'contract_type': [
        select_text('#contract_type'),
        select_text('[class*="contract-type"]'),
    ],
    'working_pattern': [
        next_sibling_text('#working_pattern_heading', 'p'),
        select_text('[class*="working-pattern"]'),
    ],
}


def _closing_date_text(scope: Tag) -> Optional[str]:
    element = scope.select_one('#closing_date')
    if not element:
        return None
    return _CLOSING_DATE_PREFIX_RE.sub('', element_text(element))


# Resolved outside the JSON-LD ordering
CLOSING_DATE_STRATEGIES: List[Strategy] = [
    _closing_date_text,
    select_text('[class*="closing-date"]'),
]

REFERENCE_STRATEGIES: List[Strategy] = [
    select_text('#trac-job-reference'),
    select_text('[class*="reference"]'),
]


def _is_job_posting(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    declared = entry.get('@type') or entry.get('type')
    if isinstance(declared, list):
        return 'JobPosting' in declared
    return declared == 'JobPosting'


def _find_job_posting(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, list):
        for item in data:
            found = _find_job_posting(item)
            if found:
                return found
        return None
    if _is_job_posting(data):
        return data
    if isinstance(data, dict) and isinstance(data.get('@graph'), list):
        return _find_job_posting(data['@graph'])
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def _location_from_posting(posting: Dict[str, Any]) -> Optional[str]:
    job_location = _as_dict(posting.get('jobLocation'))
    address = _as_dict(job_location.get('address'))
    parts = [
        normalize(address.get(key))
        for key in ('addressLocality', 'addressRegion', 'postalCode')
    ]
    composed = ', '.join(part for part in parts if part)
    return composed or normalize(job_location.get('name'))


def _salary_from_posting(posting: Dict[str, Any]) -> Optional[str]:
    base = _as_dict(posting.get('baseSalary'))
    value = _as_dict(base.get('value'))
    if normalize(value.get('value')):
        return normalize(value.get('value'))
    if value.get('minValue') and value.get('maxValue'):
        # schema.org puts currency on the MonetaryAmount, some sites on the value
        currency = value.get('currency') or base.get('currency') or ''
        return normalize(f"{value['minValue']} to {value['maxValue']} {currency}")
    return None


def _employment_type(posting: Dict[str, Any]) -> Optional[str]:
    employment_type = posting.get('employmentType')
    if isinstance(employment_type, list):
        return normalize(', '.join(str(item) for item in employment_type if item))
    return normalize(employment_type)


def extract_json_ld(soup: BeautifulSoup) -> Optional[Dict[str, Optional[str]]]:
    """
    Map the page's JSON-LD JobPosting block to record fields.

    Malformed blocks are skipped.

    Args:
        soup: Parsed detail page

    Returns:
        Dict of record fields, or None if the page has no JobPosting block
    """
    for script in soup.select('script[type="application/ld+json"]'):
        try:
            data = json.loads(script.string or script.get_text() or '')
        except json.JSONDecodeError as e:
            logger.debug(f"Ignoring malformed JSON-LD block: {e}")
            continue

        posting = _find_job_posting(data)
        if posting is None:
            continue

        organisation = _as_dict(posting.get('hiringOrganization'))
        description = posting.get('description')
        if not isinstance(description, str) or not description.strip():
            description = None
        return {
            'title': first_non_empty(posting, [
                lambda p: p.get('title'),
                lambda p: p.get('name'),
            ]),
            'company': normalize(organisation.get('name')),
            'date_posted': normalize(posting.get('datePosted')),
            'description_html': description.strip() if description else None,
            'location': _location_from_posting(posting),
            'salary': _salary_from_posting(posting),
            'contract_type': _employment_type(posting),
            'closing_date': normalize(posting.get('validThrough') or posting.get('expires')),
        }

    return None


def extract_description_html(soup: BeautifulSoup) -> Optional[str]:
    """
    Collect the inner HTML of every description container.

    Different page templates put parts of the advert under different ids,
    so all matches are kept, in selector priority order. Elements nested in
    another matched container are covered by it and skipped, as is empty
    content.

    Args:
        soup: Parsed detail page

    Returns:
        Fragments joined with a line break, or None if nothing matched
    """
    matches: List[Tag] = []
    matched = set()
    for css in DESCRIPTION_SELECTORS:
        for element in soup.select(css):
            if id(element) not in matched:
                matched.add(id(element))
                matches.append(element)

    fragments = []
    for element in matches:
        if any(id(parent) in matched for parent in element.parents):
            continue
        html = element.decode_contents().strip()
        if to_text(html):
            fragments.append(html)
    return '\n'.join(fragments) or None


def _hint_value(hint: Optional[ListingHint], field: str) -> Strategy:
    return constant(hint.get(field) if hint else None)


def extract_detail(soup: BeautifulSoup, url: str,
                   hint: Optional[ListingHint] = None) -> JobRecord:
    """
    Build the full job record for a job advert page.

    Args:
        soup: Parsed detail page
        url: Request URL of the page; always becomes the record's url
        hint: Listing hint scheduled with this page, if any

    Returns:
        JobRecord
    """
    structured = extract_json_ld(soup) or {}
    fields: Dict[str, Optional[str]] = {}

    for name, strategies in PAGE_STRATEGIES.items():
        fields[name] = first_non_empty(soup, [
            constant(structured.get(name)),
            *strategies,
            _hint_value(hint, name),
        ])

    fields['closing_date'] = first_non_empty(soup, [
        *CLOSING_DATE_STRATEGIES,
        _hint_value(hint, 'closing_date'),
        constant(structured.get('closing_date')),
    ])
    fields['reference'] = first_non_empty(soup, [
        *REFERENCE_STRATEGIES,
        _hint_value(hint, 'reference'),
    ])

    fields['description_html'] = (
        structured.get('description_html')
        or extract_description_html(soup)
        or (hint.description_html if hint else None)
    )

    return JobRecord(url=url, **fields)
