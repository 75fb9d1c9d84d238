"""
Shared headless browser with reference counting.

One Chromium instance serves every scraper task in a cycle. It is launched on
the first acquire(), closed when the last holder releases, and closed at once by
force_close() on cycle errors and shutdown.

acquire()/release() are the only transitions of the count and must be paired per
task; lease() does the pairing, including on the error path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Browser, Playwright, async_playwright

from . import logging_bridge

LOG = logging.getLogger(__name__)

Launcher = Callable[[], Awaitable[Any]]


class ResourceError(RuntimeError):
    """Raised when the browser cannot be started, or the pool is misused."""


class BrowserPool:
    def __init__(self, *, headless: bool = True, launcher: Launcher | None = None) -> None:
        self.headless = headless
        self._launcher: Launcher = launcher or self._launch_chromium
        self._playwright: Playwright | None = None
        self._browser: Any = None
        self._ref_count = 0
        self._generation = 0
        self._lock = asyncio.Lock()

    # ---- diagnostics ----
    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_live(self) -> bool:
        return self._browser is not None

    @property
    def generation(self) -> int:
        return self._generation

    # ---- lifecycle ----
    async def acquire(self) -> Browser:
        """Return the shared browser, launching it if needed. Increments the count."""
        async with self._lock:
            if self._browser is None:
                try:
                    self._browser = await self._launcher()
                except Exception as e:
                    self._browser = None
                    await self._stop_playwright()
                    logging_bridge.error({
                        "component": "listing_watch.browser",
                        "op": "launch",
                        "error": repr(e),
                    })
                    raise ResourceError(f"Failed to launch browser: {e}") from e
                LOG.debug("Browser launched")
            self._ref_count += 1
            return self._browser

    async def release(self) -> None:
        """Decrement the count; close the browser when it reaches zero."""
        async with self._lock:
            if self._ref_count <= 0:
                raise ResourceError("release() called without a matching acquire()")
            self._ref_count -= 1
            if self._ref_count == 0 and self._browser is not None:
                await self._teardown()

    async def force_close(self) -> None:
        """Close any live browser and reset the count, regardless of holders."""
        async with self._lock:
            self._generation += 1
            self._ref_count = 0
            if self._browser is not None or self._playwright is not None:
                LOG.info("Force-closing browser")
                await self._teardown()

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Browser]:
        """
        acquire() on enter, release() on exit. A lease taken before a force_close()
        does not release again, since that close already zeroed the count.
        """
        browser = await self.acquire()
        generation = self._generation
        try:
            yield browser
        finally:
            if generation == self._generation:
                await self.release()
            else:
                LOG.debug("Lease outlived a force_close(); skipping release")

    # ---- internals ----
    async def _teardown(self) -> None:
        browser, self._browser = self._browser, None
        try:
            if browser is not None:
                await browser.close()
        except Exception as e:
            logging_bridge.error({
                "component": "listing_watch.browser",
                "op": "close",
                "error": repr(e),
            })
        finally:
            await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is None:
            return
        try:
            await playwright.stop()
        except Exception as e:
            logging_bridge.error({
                "component": "listing_watch.browser",
                "op": "stop_playwright",
                "error": repr(e),
            })

    async def _launch_chromium(self) -> Browser:
        self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-dev-shm-usage"],
        )
