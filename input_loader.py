"""
Input loader for crawl runs.

Loads and validates YAML (or JSON) input files describing what to search
for, where to start, and how many results to collect.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import yaml

import crawler_config

# Input key -> search results query parameter
QUERY_PARAMS = {
    'keyword': 'keyword',
    'location': 'location',
    'distance': 'distance',
    'contract_type': 'contractType',
    'working_pattern': 'workingPattern',
    'staff_group': 'staffGroup',
    'pay_range': 'salaryRange',
}

# Apify-style camelCase keys accepted as aliases
KEY_ALIASES = {
    'contractType': 'contract_type',
    'workingPattern': 'working_pattern',
    'staffGroup': 'staff_group',
    'payRange': 'pay_range',
    'collectDetails': 'collect_details',
    'startUrls': 'start_urls',
    'startUrl': 'start_url',
    'resultsWanted': 'results_wanted',
    'maxPages': 'max_pages',
    'proxyUrls': 'proxy_urls',
}


def _as_results_wanted(value: Any) -> float:
    """Result budget; anything non-finite or non-numeric means unlimited."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return math.inf
    if not math.isfinite(number):
        return math.inf
    return max(1, int(number))


def _as_max_pages(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return crawler_config.MAX_PAGES
    if not math.isfinite(number):
        return crawler_config.MAX_PAGES
    return max(1, int(number))


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ('false', '0', 'no', 'off', '')
    return bool(value)


def _url_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"'{name}' must be a list")

    urls = []
    for entry in value:
        # Apify request lists use {"url": ...} objects
        if isinstance(entry, dict):
            entry = entry.get('url')
        if not isinstance(entry, str) or not entry.strip():
            raise ValueError(f"'{name}' entries must be non-empty URLs")
        urls.append(entry.strip())
    return urls


def build_start_url(query: Dict[str, Any], base_url: str = crawler_config.BASE_URL) -> str:
    """
    Build the search results URL for a query.

    Args:
        query: Input keys from QUERY_PARAMS; empty values are left out
        base_url: Site root

    Returns:
        Search results URL
    """
    params = []
    for key, param in QUERY_PARAMS.items():
        value = query.get(key)
        if value is None or not str(value).strip():
            continue
        params.append((param, str(value).strip()))

    url = base_url.rstrip('/') + crawler_config.SEARCH_PATH
    if params:
        url += '?' + urlencode(params)
    return url


@dataclass
class CrawlInput:
    """
    Complete input for one crawl run.

    Either explicit start URLs or a search query (or both) define where the
    crawl begins.
    """
    keyword: Optional[str] = None
    location: Optional[str] = None
    distance: Optional[str] = None
    contract_type: Optional[str] = None
    working_pattern: Optional[str] = None
    staff_group: Optional[str] = None
    pay_range: Optional[str] = None
    start_urls: List[str] = field(default_factory=list)
    results_wanted: float = crawler_config.RESULTS_WANTED
    max_pages: int = crawler_config.MAX_PAGES
    collect_details: bool = crawler_config.COLLECT_DETAILS
    proxy_urls: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CrawlInput':
        """
        Create a CrawlInput from a dictionary (loaded from YAML/JSON).

        Args:
            data: Dictionary from the input file

        Returns:
            CrawlInput instance

        Raises:
            ValueError: If a field has the wrong shape
        """
        data = {KEY_ALIASES.get(key, key): value for key, value in data.items()}

        start_urls = _url_list(data.get('start_urls'), 'start_urls')
        for alias in ('start_url', 'url'):
            start_urls.extend(_url_list(data.get(alias), alias))

        query = {}
        for key in QUERY_PARAMS:
            value = data.get(key)
            if value is not None and not isinstance(value, (str, int, float)):
                raise ValueError(f"'{key}' must be a string")
            query[key] = str(value).strip() if value is not None and str(value).strip() else None

        return cls(
            start_urls=start_urls,
            results_wanted=_as_results_wanted(data.get('results_wanted', crawler_config.RESULTS_WANTED)),
            max_pages=_as_max_pages(data.get('max_pages', crawler_config.MAX_PAGES)),
            collect_details=_as_bool(data.get('collect_details', crawler_config.COLLECT_DETAILS)),
            proxy_urls=_url_list(data.get('proxy_urls'), 'proxy_urls'),
            **query
        )

    def query(self) -> Dict[str, Optional[str]]:
        return {key: getattr(self, key) for key in QUERY_PARAMS}

    def resolve_start_urls(self) -> List[str]:
        """Explicit start URLs, or the search URL built from the query."""
        if self.start_urls:
            return list(self.start_urls)
        return [build_start_url(self.query())]


def load_input(file_path: str) -> CrawlInput:
    """
    Load crawl input from a YAML or JSON file.

    Args:
        file_path: Path to the input file

    Returns:
        CrawlInput instance

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If input is invalid
        yaml.YAMLError: If parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Input file must contain a mapping")

    return CrawlInput.from_dict(data)


def validate_input(crawl_input: CrawlInput) -> List[str]:
    """
    Validate crawl input and return a list of warnings (not errors).

    Args:
        crawl_input: Input to validate

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings = []

    for url in crawl_input.start_urls:
        if not url.startswith('http://') and not url.startswith('https://'):
            warnings.append(f"URL may be invalid (missing http/https): {url}")

    if not crawl_input.start_urls and not any(crawl_input.query().values()):
        warnings.append("No start URLs or search terms - crawling all NHS jobs")

    if math.isinf(crawl_input.results_wanted):
        warnings.append("results_wanted is unlimited - the crawl stops at max_pages")
    elif crawl_input.results_wanted > 10000:
        warnings.append(f"results_wanted is very high: {crawl_input.results_wanted}")

    if crawl_input.max_pages > 1000:
        warnings.append(f"max_pages is very high: {crawl_input.max_pages}")

    return warnings
