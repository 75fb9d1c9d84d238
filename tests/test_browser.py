# tests/test_browser.py
import asyncio

import pytest
from conftest import FakeBrowser, FakeLauncher, read_jsonl

from listing_watch import logging_utils
from listing_watch.lib.browser import BrowserPool, ResourceError


def test_concurrent_acquires_launch_once_and_last_release_closes():
    launcher = FakeLauncher()

    async def scenario():
        pool = BrowserPool(launcher=launcher)
        browsers = await asyncio.gather(pool.acquire(), pool.acquire(), pool.acquire())
        assert pool.ref_count == 3
        assert len({id(b) for b in browsers}) == 1

        await pool.release()
        await pool.release()
        assert pool.is_live
        await pool.release()
        return pool

    pool = asyncio.run(scenario())
    assert launcher.launches == 1
    assert launcher.browsers[0].closed == 1
    assert pool.ref_count == 0
    assert not pool.is_live


def test_release_without_acquire_raises():
    async def scenario():
        pool = BrowserPool(launcher=FakeLauncher())
        with pytest.raises(ResourceError):
            await pool.release()
        assert pool.ref_count == 0

    asyncio.run(scenario())


def test_launch_failure_raises_resource_error_and_next_acquire_retries():
    launcher = FakeLauncher(fail_times=1)

    async def scenario():
        pool = BrowserPool(launcher=launcher)
        with pytest.raises(ResourceError) as ei:
            await pool.acquire()
        assert isinstance(ei.value.__cause__, RuntimeError)
        assert pool.ref_count == 0
        assert not pool.is_live

        await pool.acquire()
        assert pool.ref_count == 1
        await pool.release()

    asyncio.run(scenario())
    assert launcher.launches == 2
    errors = read_jsonl(logging_utils.get_error_log_path())
    assert any(r.get("op") == "launch" for r in errors)


def test_lease_releases_on_error():
    async def scenario():
        pool = BrowserPool(launcher=FakeLauncher())
        with pytest.raises(KeyError):
            async with pool.lease():
                assert pool.ref_count == 1
                raise KeyError("boom")
        return pool

    pool = asyncio.run(scenario())
    assert pool.ref_count == 0
    assert not pool.is_live


def test_force_close_resets_and_stale_lease_does_not_release():
    launcher = FakeLauncher()

    async def scenario():
        pool = BrowserPool(launcher=launcher)
        async with pool.lease():
            await pool.acquire()
            assert pool.ref_count == 2
            await pool.force_close()
            assert pool.ref_count == 0
            assert not pool.is_live
        # Exiting the stale lease must not underflow the count.
        assert pool.ref_count == 0

        async with pool.lease():
            assert pool.ref_count == 1
        return pool

    pool = asyncio.run(scenario())
    assert launcher.launches == 2
    assert pool.generation == 1
    assert not pool.is_live


def test_force_close_on_idle_pool_is_noop():
    launcher = FakeLauncher()

    async def scenario():
        pool = BrowserPool(launcher=launcher)
        await pool.force_close()
        await pool.force_close()
        return pool

    pool = asyncio.run(scenario())
    assert launcher.launches == 0
    assert pool.ref_count == 0


def test_close_error_is_logged_and_pool_still_resets():
    launcher = FakeLauncher(browser_factory=lambda: FakeBrowser(close_error=RuntimeError("already gone")))

    async def scenario():
        pool = BrowserPool(launcher=launcher)
        await pool.acquire()
        await pool.release()
        return pool

    pool = asyncio.run(scenario())
    assert not pool.is_live
    errors = read_jsonl(logging_utils.get_error_log_path())
    assert any(r.get("op") == "close" and "already gone" in r.get("error", "") for r in errors)
