from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

from .lib.browser import BrowserPool
from .lib.config import Settings
from .lib.engine import GetScraper, poll_forever
from .lib.logging_bridge import activity as log_activity
from .lib.models import Snapshot
from .lib.notifier import WebhookDispatcher
from .lib.utils import truthy

LOG = logging.getLogger(__name__)


def run(**kwargs: Any) -> Snapshot:
    """
    Entry point for listing_watch.

    Accepts kwargs (from the CLI), all optional; anything omitted falls back to env:
      webhook_url: str            (NOTIFICATION_WEBHOOK)
      refresh_minutes: float = 60 (REFRESH_DURATION)
      timezone: str = "UTC"       (TZ)
      sites_path: str             (SITES_PATH)
      pacing_ms: int = 20
      headless: bool = True
      ingest_only_first_cycle: bool = False

      once: bool = False          # run a single cycle and exit

    Returns the last good snapshot (empty if interrupted).
    """
    once = truthy(kwargs.pop("once", False))
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "listing_watch.main",
        "op": "start",
        "companies": [s.company.value for s in settings.sites],
        "refresh_minutes": settings.refresh_minutes,
        "timezone": settings.timezone,
        "delivery_enabled": bool(settings.webhook_url),
        "flags": {
            "once": once,
            "ingest_only_first_cycle": settings.ingest_only_first_cycle,
        },
    })

    return asyncio.run(serve(settings, max_cycles=1 if once else None))


async def serve(
    settings: Settings,
    *,
    max_cycles: int | None = None,
    pool: BrowserPool | None = None,
    dispatcher: WebhookDispatcher | None = None,
    get_scraper: GetScraper | None = None,
) -> Snapshot:
    """
    Run the polling loop with SIGINT/SIGTERM wired to a graceful stop: the loop
    task is cancelled and the shared browser is force-closed before returning.
    """
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    pool = pool or BrowserPool(headless=settings.headless)
    dispatcher = dispatcher or WebhookDispatcher.from_settings(settings)

    poll = asyncio.ensure_future(
        poll_forever(
            settings,
            pool=pool,
            dispatcher=dispatcher,
            stop=stop,
            get_scraper=get_scraper,
            max_cycles=max_cycles,
        )
    )

    def _on_signal(signame: str) -> None:
        LOG.info("Received %s; shutting down gracefully...", signame)
        stop.set()
        poll.cancel()

    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig.name)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not on the main thread, or a platform without loop signal support.
            LOG.debug("Signal handler for %s not installed", sig.name)

    try:
        return await poll
    except asyncio.CancelledError:
        if not stop.is_set():
            raise
        log_activity({"component": "listing_watch.main", "op": "stopped"})
        return {}
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        # poll_forever force-closes on exit; repeat in case it never started.
        await pool.force_close()
        dispatcher.close()
