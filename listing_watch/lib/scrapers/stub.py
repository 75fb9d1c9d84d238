from __future__ import annotations

from typing import Any

from ..config import SiteConfig
from ..models import Listing
from .base import BaseScraper, ScrapeError
from .registry import register


@register
class StubScraper(BaseScraper):
    """
    A zero-network scraper used for tests and dry-runs.

    site.params may contain:
      - items: list[{title:str, location:str, url:str}]  # produces listings
      - error: str                                        # raise ScrapeError with this message

    The browser handle is accepted but never touched.
    """

    kind = "stub"

    async def fetch(self, browser: Any, site: SiteConfig) -> list[Listing]:
        params: dict[str, Any] = dict(site.params or {})
        if params.get("error"):
            raise ScrapeError(f"{site.company.value}: {params['error']}")

        raw_items = params.get("items") or []
        if not isinstance(raw_items, list):
            raw_items = []

        found = self.found_date()
        listings: list[Listing] = []
        for item in raw_items:
            if not isinstance(item, dict):
                continue
            url = str(item.get("url") or "").strip()
            if not url:
                continue  # URL is required for identity
            listings.append(
                Listing(
                    title=str(item.get("title") or "").strip() or "n/a",
                    location=str(item.get("location") or "").strip() or "n/a",
                    url=url,
                    found_date=str(item.get("found_date") or found),
                    company=site.company,
                )
            )
        return listings
