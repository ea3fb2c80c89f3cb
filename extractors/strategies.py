"""
Building blocks for ordered fallback chains.

A strategy is a callable taking a scope (a BeautifulSoup Tag, or any other
object for strategies built with constant()) and returning a raw value or
None. A field's chain is a plain list of strategies; first_non_empty()
evaluates them lazily and returns the first value that survives
normalization.
"""

from typing import Any, Callable, Iterable, Optional

from bs4 import Tag

from .normalize import element_text, normalize

Strategy = Callable[[Any], Any]


def first_non_empty(scope: Any, strategies: Iterable[Strategy]) -> Optional[str]:
    """
    Run strategies in order until one yields a non-empty normalized value.

    Args:
        scope: Object passed to every strategy
        strategies: Ordered strategies, highest priority first

    Returns:
        First normalized value or None
    """
    for strategy in strategies:
        value = normalize(strategy(scope))
        if value:
            return value
    return None


def select_text(css: str) -> Strategy:
    """Text of the first element matching css."""
    def strategy(scope: Tag) -> Optional[str]:
        element = scope.select_one(css)
        return element_text(element) if element else None
    return strategy


def select_attr(css: str, attr: str) -> Strategy:
    """Attribute value of the first element matching css."""
    def strategy(scope: Tag) -> Optional[str]:
        element = scope.select_one(css)
        return element.get(attr) if element else None
    return strategy


def own_text(css: str) -> Strategy:
    """
    Text directly inside the first element matching css, ignoring the
    text of its child elements.
    """
    def strategy(scope: Tag) -> Optional[str]:
        element = scope.select_one(css)
        if not element:
            return None
        return ' '.join(element.find_all(string=True, recursive=False))
    return strategy


def next_sibling_text(css: str, sibling: str) -> Strategy:
    """Text of the next sibling tag named `sibling` after the element matching css."""
    def strategy(scope: Tag) -> Optional[str]:
        element = scope.select_one(css)
        if not element:
            return None
        following = element.find_next_sibling()
        if following is None or following.name != sibling:
            return None
        return element_text(following)
    return strategy


def joined_text(selectors: Iterable[str], separator: str = ', ') -> Strategy:
    """Normalized text of every selector that matches, joined in order."""
    selectors = list(selectors)

    def strategy(scope: Tag) -> Optional[str]:
        parts = [normalize(select_text(css)(scope)) for css in selectors]
        return separator.join(part for part in parts if part) or None
    return strategy


def constant(value: Any) -> Strategy:
    """Strategy that ignores its scope and returns value."""
    return lambda scope: value
