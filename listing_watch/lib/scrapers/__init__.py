# listing_watch/lib/scrapers/__init__.py
from __future__ import annotations

from .base import BaseScraper, ScrapeError
from .registry import get, register, unknown_kinds
from .selector import SelectorScraper
from .stub import StubScraper

__all__ = [
    "BaseScraper",
    "ScrapeError",
    "SelectorScraper",
    "StubScraper",
    "get",
    "register",
    "unknown_kinds",
]
