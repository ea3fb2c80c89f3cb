"""
Persistence layer for crawl state and results.

This package provides the shared crawl state (budget and seen URLs)
and the sinks finished job records are written to.
"""

from .crawl_state import CrawlBudget, CrawlState, SeenSet
from .dataset import JsonlDataset, MemoryDataset, Sink

__all__ = ['CrawlBudget', 'CrawlState', 'SeenSet', 'JsonlDataset', 'MemoryDataset', 'Sink']
