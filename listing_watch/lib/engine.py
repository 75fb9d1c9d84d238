"""
Polling orchestrator: scrape every site, diff against the previous snapshot,
notify for what is new, sleep, repeat.

Features:
  - Concurrent per-site tasks sharing one browser via BrowserPool leases
  - Per-site failure isolation (one broken site never discards the others)
  - Cycle-level failure isolation with forced browser teardown
  - Dependency injection for testability (`get_scraper`)
  - Structured summary per cycle via `logging_bridge`
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from . import logging_bridge
from .browser import BrowserPool, ResourceError
from .config import Settings, SiteConfig
from .differ import new_entries
from .filters import passes_filters
from .identity import listing_identity
from .models import ScrapeResult, Snapshot
from .notifier import WebhookDispatcher
from .scrapers.base import BaseScraper
from .utils import format_found_date

LOG = logging.getLogger(__name__)

GetScraper = Callable[[str], type[BaseScraper]]


@dataclass
class CycleResult:
    snapshot: Snapshot
    new: Snapshot
    sent: int = 0
    results: list[ScrapeResult] = field(default_factory=list)

    @property
    def errors(self) -> dict[str, list[str]]:
        return {r.company.value: r.errors for r in self.results if r.errors}


# =============================================================================
# DEFAULT SCRAPER LOOKUP (PRODUCTION)
# =============================================================================
def _default_get_scraper(kind: str) -> type[BaseScraper]:
    from .scrapers.registry import get as get_scraper_class

    return get_scraper_class(kind)


# =============================================================================
# FAN-OUT
# =============================================================================
async def _run_site(
    site: SiteConfig,
    settings: Settings,
    pool: BrowserPool,
    get_scraper: GetScraper,
) -> ScrapeResult:
    """
    Scrape, filter and key one site. Failures are recorded on the result, except
    ResourceError, which means the shared browser is unusable and aborts the cycle.
    """
    t0 = time.perf_counter_ns()
    result = ScrapeResult(company=site.company)
    try:
        scraper = get_scraper(site.kind)(timezone=settings.timezone)
        async with pool.lease() as browser:
            raw = await scraper.fetch(browser, site)
        result.raw_count = len(raw)
        for listing in raw:
            if not passes_filters(listing, site.filters):
                continue
            key = listing_identity(
                listing.company,
                listing.url,
                pattern=site.id_pattern,
                strategy=site.id_strategy,
            )
            result.items[key] = listing
    except ResourceError:
        raise
    except Exception as e:
        result.items = {}
        result.errors.append(repr(e))
        LOG.error("Scrape failed for %s: %s", site.company.value, e)
        logging_bridge.error({
            "component": "listing_watch.engine",
            "op": "scrape_site",
            "company": site.company.value,
            "kind": site.kind,
            "error": repr(e),
        })
    result.duration_us = int((time.perf_counter_ns() - t0) // 1000)
    return result


async def scrape_all(
    settings: Settings,
    pool: BrowserPool,
    get_scraper: GetScraper | None = None,
) -> tuple[Snapshot, list[ScrapeResult]]:
    """
    Run every configured site concurrently and merge into one snapshot
    (configured site order; later entries win on identity collision).
    """
    get_scraper_func = get_scraper or _default_get_scraper

    # Every task finishes (and releases its lease) before anything propagates.
    outcomes = await asyncio.gather(
        *(_run_site(site, settings, pool, get_scraper_func) for site in settings.sites),
        return_exceptions=True,
    )
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome

    results: list[ScrapeResult] = list(outcomes)
    snapshot: Snapshot = {}
    for res in results:
        snapshot.update(res.items)
    return snapshot, results


def _carry_forward(previous: Snapshot, current: Snapshot, results: list[ScrapeResult]) -> int:
    """
    Opt-in (carry_forward_failed_sites): keep the previous entries of sites that
    failed this cycle, so their listings are not announced again as new once the
    site recovers. Off by default, where each snapshot fully replaces the last.
    Returns how many were kept.
    """
    failed = {r.company for r in results if not r.ok}
    if not failed:
        return 0
    kept = 0
    for key, listing in previous.items():
        if listing.company in failed and key not in current:
            current[key] = listing
            kept += 1
    return kept


# =============================================================================
# ONE CYCLE
# =============================================================================
async def run_once(
    settings: Settings,
    pool: BrowserPool,
    dispatcher: WebhookDispatcher,
    previous: Snapshot,
    *,
    notify: bool = True,
    get_scraper: GetScraper | None = None,
) -> CycleResult:
    """
    Scrape, diff against `previous`, and dispatch notifications for new entries.

    Errors other than per-site scrape failures propagate to the caller.
    """
    start_ns = time.perf_counter_ns()

    current, results = await scrape_all(settings, pool, get_scraper)
    carried = _carry_forward(previous, current, results) if settings.carry_forward_failed_sites else 0
    fresh = new_entries(previous, current)

    logging_bridge.activity({
        "component": "listing_watch.engine",
        "op": "summary",
        "found_by_company": {r.company.value: len(r.items) for r in results},
        "raw_by_company": {r.company.value: r.raw_count for r in results},
        "new_by_company": _count_by_company(fresh),
        "failed": sorted(r.company.value for r in results if not r.ok),
        "carried_forward": carried,
        "notify": notify,
        "durations_us": {r.company.value: r.duration_us for r in results},
        "total_us": int((time.perf_counter_ns() - start_ns) // 1000),
    })

    sent = 0
    if notify:
        sent = await dispatcher.dispatch(fresh)
    else:
        logging_bridge.activity({
            "component": "listing_watch.engine",
            "op": "ingest_only",
            "new_total": len(fresh),
        })

    return CycleResult(snapshot=current, new=fresh, sent=sent, results=results)


def _count_by_company(snapshot: Snapshot) -> dict[str, int]:
    counts: dict[str, int] = {}
    for listing in snapshot.values():
        counts[listing.company.value] = counts.get(listing.company.value, 0) + 1
    return counts


# =============================================================================
# LOOP
# =============================================================================
async def poll_forever(
    settings: Settings,
    *,
    pool: BrowserPool,
    dispatcher: WebhookDispatcher,
    stop: asyncio.Event | None = None,
    get_scraper: GetScraper | None = None,
    max_cycles: int | None = None,
) -> Snapshot:
    """
    Run cycles until `stop` is set (or `max_cycles` have run). A failed cycle is
    logged, tears the browser down, and leaves the previous snapshot in place.
    The browser is always force-closed on the way out.

    Returns the last good snapshot. When `max_cycles` ends the loop right after a
    failed cycle, that cycle's exception is re-raised instead, so one-shot callers
    can report the failure.
    """
    stop = stop or asyncio.Event()
    previous: Snapshot = {}
    failure: Exception | None = None
    seeded = not settings.ingest_only_first_cycle
    cycles = 0

    LOG.info("Starting monitoring of %d site(s)...", len(settings.sites))
    try:
        while not stop.is_set():
            cycles += 1
            try:
                result = await run_once(
                    settings,
                    pool,
                    dispatcher,
                    previous,
                    notify=seeded,
                    get_scraper=get_scraper,
                )
                previous = result.snapshot
                seeded = True
                failure = None
            except Exception as e:
                failure = e
                LOG.exception("Error in main loop: %s", e)
                logging_bridge.error({
                    "component": "listing_watch.engine",
                    "op": "cycle",
                    "cycle": cycles,
                    "error": repr(e),
                })
                await pool.force_close()

            LOG.info("Finished checking at %s", format_found_date(tz_name=settings.timezone))
            if max_cycles is not None and cycles >= max_cycles:
                if failure is not None:
                    raise failure
                break
            await _sleep_or_stop(stop, settings.refresh_seconds)
    finally:
        await pool.force_close()
    return previous


async def _sleep_or_stop(stop: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass
