"""
Extractors for NHS Jobs pages.

This package contains pure, unit-testable functions that turn listing
pages, detail pages and JSON API payloads into job records. Page-level
extractors live in their own modules (list_page, detail_page, json_api,
pagination); the shared text helpers are re-exported here.
"""

from .normalize import (
    normalize,
    element_text,
    to_text,
    clean_text,
    to_absolute_url
)

__all__ = [
    'normalize',
    'element_text',
    'to_text',
    'clean_text',
    'to_absolute_url'
]
