"""
Text and URL normalization shared by every extractor.

Every field value that ends up in a job record goes through normalize().
The NHS Jobs markup frequently renders the same text twice (once for
screen readers, once visually), so besides collapsing whitespace the
normalizer repairs doubled text.
"""

import re
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from crawler_config import BASE_URL

_WHITESPACE_RE = re.compile(r'\s+')
_DOUBLED_PHRASE_RE = re.compile(r'^(.{3,}) \1$')

# Tags whose content never belongs in plain-text descriptions
NON_TEXT_TAGS = ['script', 'style', 'noscript', 'iframe']

# Elements that separate words; inline elements (b, a, span, ...) don't
BLOCK_TAGS = {
    'address', 'article', 'aside', 'blockquote', 'br', 'dd', 'div', 'dl', 'dt',
    'footer', 'form', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'header', 'hr',
    'li', 'main', 'nav', 'ol', 'p', 'pre', 'section', 'table', 'td', 'th',
    'tr', 'ul',
}

# Longest token run checked for immediate repetition
MAX_RUN_TOKENS = 8


def to_text(value: Any) -> Optional[str]:
    """
    Collapse whitespace without any doubled-text repair.

    Args:
        value: Raw value (anything str() accepts)

    Returns:
        Trimmed string or None if nothing is left
    """
    if value is None:
        return None
    text = _WHITESPACE_RE.sub(' ', str(value)).strip()
    return text or None


def _collapse_halves(text: str) -> str:
    half = len(text) // 2
    if half >= 2 and len(text) % 2 == 0 and text[:half] == text[half:]:
        return text[:half]
    return text


def _collapse_doubled_phrase(text: str) -> str:
    match = _DOUBLED_PHRASE_RE.match(text)
    if match:
        return match.group(1)
    return text


def _collapse_token_runs(text: str) -> str:
    # Drop the second copy of any run of tokens that repeats immediately,
    # e.g. "Band 5 Band 5 Nurse" -> "Band 5 Nurse".
    tokens = []
    for token in text.split(' '):
        tokens.append(token)
        end = len(tokens)
        for size in range(1, min(end // 2, MAX_RUN_TOKENS) + 1):
            if all(tokens[end - i] == tokens[end - size - i] for i in range(1, size + 1)):
                del tokens[-size:]
                break
    return ' '.join(tokens)


def normalize(value: Any) -> Optional[str]:
    """
    Normalize a raw field value.

    Collapses whitespace, then repairs doubled text with three rules
    applied in order: identical halves, "<phrase> <phrase>", and
    immediately repeated token runs. The rules are re-applied until the
    value stops changing, so normalize(normalize(x)) == normalize(x).

    Args:
        value: Raw value extracted from a page or API payload

    Returns:
        Cleaned string or None for empty input
    """
    text = to_text(value)
    if text is None:
        return None

    while True:
        repaired = _collapse_token_runs(_collapse_doubled_phrase(_collapse_halves(text)))
        if repaired == text:
            return text
        text = repaired


def _text_parts(element: Tag):
    for child in element.children:
        if isinstance(child, Tag):
            block = child.name in BLOCK_TAGS
            if block:
                yield ' '
            yield from _text_parts(child)
            if block:
                yield ' '
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            yield str(child)


def element_text(element: Tag) -> str:
    """
    Text content of an element as a browser would lay it out.

    Block elements separate words; inline markup doesn't, so
    "Nur<b>se</b>" reads "Nurse".
    """
    return ''.join(_text_parts(element))


def clean_text(html: Optional[str]) -> Optional[str]:
    """
    Convert an HTML fragment to whitespace-collapsed plain text.

    Script, style, noscript and iframe content is removed first.

    Args:
        html: HTML fragment

    Returns:
        Plain text, or None if html is None
    """
    if html is None:
        return None
    soup = BeautifulSoup(html, 'lxml')
    for tag in soup.find_all(NON_TEXT_TAGS):
        tag.decompose()
    return to_text(element_text(soup)) or ''


def to_absolute_url(href: Any, base_url: str = BASE_URL) -> Optional[str]:
    """
    Resolve a link to an absolute http(s) URL.

    Args:
        href: The href attribute (may be relative or absolute)
        base_url: The base URL to resolve against

    Returns:
        Absolute URL, or None if the link can't be resolved
    """
    href = to_text(href)
    if not href or href.startswith(('#', 'javascript:', 'mailto:', 'tel:')):
        return None

    try:
        absolute_url = urljoin(base_url, href)
        parsed = urlparse(absolute_url)
    except ValueError:
        return None

    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return parsed._replace(fragment='').geturl()
