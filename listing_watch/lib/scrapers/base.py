from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..config import SiteConfig
from ..models import Listing
from ..utils import format_found_date


class ScrapeError(Exception):
    """A single site's extraction failed (navigation, timeout, selector mismatch)."""


class BaseScraper(ABC):
    """
    Abstract scraper interface.

    One instance handles one site per call. The engine runs one task per
    configured site concurrently, each inside a browser lease.

    Contract:
      - fetch(browser, site) returns ALL raw candidates for the site (pre-filter);
        filtering and identity happen upstream in the engine.
      - Do NOT send notifications or mutate global state.
      - Do NOT close the browser; the pool owns it. Pages you open are yours to close.
    """

    # Concrete subclasses MUST set this to a stable string, e.g. "selector", "stub"
    kind: str = ""

    def __init__(self, *, timezone: str = "UTC") -> None:
        self.timezone = timezone

    def found_date(self) -> str:
        return format_found_date(tz_name=self.timezone)

    @abstractmethod
    async def fetch(self, browser: Any, site: SiteConfig) -> list[Listing]:
        """
        Scrape one site.

        Args:
            browser: shared browser handle from the pool (may be unused, e.g. stub)
            site: the site's configuration

        Returns:
            list[Listing] - raw candidates, not yet filtered.

        Raises:
            ScrapeError on failures the caller should record against this site.
        """
        raise NotImplementedError
