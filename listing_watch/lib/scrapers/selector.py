# listing_watch/lib/scrapers/selector.py
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from ..config import SelectorSpec, SiteConfig
from ..models import Listing
from .base import BaseScraper, ScrapeError
from .registry import register

LOG = logging.getLogger(__name__)

MISSING = "n/a"


@register
class SelectorScraper(BaseScraper):
    """
    Generic career-page scraper driven by CSS selectors.

    The page is rendered in the shared browser (most career sites build their
    lists client-side), then the settled HTML is parsed with BeautifulSoup.

    SiteConfig fields used:
      url, wait_until       navigation target and load state
      selectors.list_container / title / location / url / location_index

    Behavior:
      - One Listing per container that yields a URL; containers without one are skipped.
      - Missing title/location text becomes "n/a".
      - Relative hrefs are resolved against the site URL.
    """

    kind = "selector"
    navigation_timeout_ms = 45_000

    async def fetch(self, browser: Any, site: SiteConfig) -> list[Listing]:
        html = await self._load_page(browser, site)
        listings = self.parse_listings(html, site)
        LOG.info("%s: found %d raw job listings", site.company.value, len(listings))
        return listings

    async def _load_page(self, browser: Any, site: SiteConfig) -> str:
        if not site.url:
            raise ScrapeError(f"{site.company.value}: no url configured")
        page = await browser.new_page()
        try:
            page.set_default_navigation_timeout(self.navigation_timeout_ms)
            await page.goto(site.url, wait_until=site.wait_until)
            return await page.content()
        except PlaywrightError as e:
            raise ScrapeError(f"{site.company.value}: failed to load {site.url}: {e}") from e
        finally:
            await page.close()

    # ---- parsing (no browser needed) ----

    def parse_listings(self, html: str, site: SiteConfig, *, found_date: str | None = None) -> list[Listing]:
        sel = site.selectors
        if sel is None:
            raise ScrapeError(f"{site.company.value}: no selectors configured")

        soup = BeautifulSoup(html, "html5lib")
        found = found_date or self.found_date()
        out: list[Listing] = []

        for container in soup.select(sel.list_container):
            href = _href(container, sel)
            if not href:
                continue
            out.append(
                Listing(
                    title=_text(container, sel.title) or MISSING,
                    location=_location(container, sel) or MISSING,
                    url=urljoin(site.url, href),
                    found_date=found,
                    company=site.company,
                )
            )
        return out


def _text(root: Any, selector: str) -> str:
    el = root.select_one(selector)
    return el.get_text(" ", strip=True) if el else ""


def _location(root: Any, sel: SelectorSpec) -> str:
    if not sel.location:
        return ""
    matches = root.select(sel.location)
    idx = sel.location_index or 0
    if len(matches) <= idx:
        return ""
    return matches[idx].get_text(" ", strip=True)


def _href(root: Any, sel: SelectorSpec) -> str:
    if sel.url == "href":
        return str(root.get("href") or "").strip()
    el = root.select_one(sel.url)
    return str(el.get("href") or "").strip() if el else ""
