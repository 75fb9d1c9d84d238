# listing_watch/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience.
# Importing .scrapers registers the built-in scraper kinds.
from . import scrapers as _scrapers  # noqa: F401
from .browser import BrowserPool, ResourceError
from .config import ConfigError, SelectorSpec, Settings, SiteConfig
from .differ import new_entries
from .engine import CycleResult, poll_forever, run_once, scrape_all
from .filters import FilterRules, passes_filters
from .identity import listing_identity
from .models import Company, Listing, ScrapeResult, Snapshot
from .notifier import DeliveryError, WebhookDispatcher
from .scrapers.base import ScrapeError

__all__ = [
    "BrowserPool",
    "Company",
    "ConfigError",
    "CycleResult",
    "DeliveryError",
    "FilterRules",
    "Listing",
    "ResourceError",
    "ScrapeError",
    "ScrapeResult",
    "SelectorSpec",
    "Settings",
    "SiteConfig",
    "Snapshot",
    "WebhookDispatcher",
    "listing_identity",
    "new_entries",
    "passes_filters",
    "poll_forever",
    "run_once",
    "scrape_all",
]
