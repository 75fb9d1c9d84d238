# tests/conftest.py
import asyncio
import json
import os
import tempfile

import pytest
from freezegun import freeze_time

from listing_watch.lib import config as lw_config
from listing_watch.lib.browser import BrowserPool


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (real browser against live career sites).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
_SETTINGS_ENV = (
    "NOTIFICATION_WEBHOOK",
    "REFRESH_DURATION",
    "TZ",
    "SITES_PATH",
    "WEBHOOK_PACING_MS",
    "WEBHOOK_TIMEOUT",
    "BROWSER_HEADLESS",
    "INGEST_ONLY_FIRST_CYCLE",
    "CARRY_FORWARD_FAILED_SITES",
)


@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="lw-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Fakes: browser, HTTP, sleep
# ---------------------------------------------------------------------
class FakePage:
    def __init__(self, html="<html></html>", goto_error=None):
        self.html = html
        self.goto_error = goto_error
        self.gotos = []
        self.timeout = None
        self.closed = False

    def set_default_navigation_timeout(self, ms):
        self.timeout = ms

    async def goto(self, url, wait_until=None):
        self.gotos.append((url, wait_until))
        if self.goto_error is not None:
            raise self.goto_error

    async def content(self):
        return self.html

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page=None, close_error=None):
        self.page = page or FakePage()
        self.close_error = close_error
        self.closed = 0

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed += 1
        if self.close_error is not None:
            raise self.close_error


class FakeLauncher:
    """Counts launches; optionally fails the first `fail_times` attempts."""

    def __init__(self, fail_times=0, browser_factory=FakeBrowser):
        self.fail_times = fail_times
        self.browser_factory = browser_factory
        self.launches = 0
        self.browsers = []

    async def __call__(self):
        self.launches += 1
        # A real launch suspends; let other tasks queue on the pool lock meanwhile.
        await asyncio.sleep(0)
        if self.launches <= self.fail_times:
            raise RuntimeError("chromium failed to start")
        browser = self.browser_factory()
        self.browsers.append(browser)
        return browser


class FakeResponse:
    def __init__(self, status_code, body=None, headers=None, text=""):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeHttpClient:
    """Replays queued responses (or raises queued exceptions); default 204."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def post_json(self, url, payload, **kwargs):
        self.calls.append((url, payload))
        nxt = self.responses.pop(0) if self.responses else FakeResponse(204)
        if isinstance(nxt, BaseException):
            raise nxt
        return nxt

    def close(self):
        self.closed = True


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_pool_factory():
    """Pools around a fresh FakeLauncher; returns (pool, launcher)."""

    def _make(**launcher_kwargs):
        launcher = FakeLauncher(**launcher_kwargs)
        return BrowserPool(launcher=launcher), launcher

    return _make


# ---------------------------------------------------------------------
# Sites / settings
# ---------------------------------------------------------------------
def stub_site(company, items=None, **extra):
    site = {"company": company, "kind": "stub", "params": {"items": items or []}}
    site.update(extra)
    return site


@pytest.fixture
def stub_sites():
    return [
        stub_site("Google", [{"title": "Software Engineer", "location": "NYC", "url": "https://g.example/jobs/1"}]),
        stub_site("Discord", [{"title": "Software Engineer", "location": "Remote", "url": "https://d.example/jobs/2"}]),
        stub_site("Riot Games", [{"title": "Software Engineer", "location": "Los Angeles", "url": "https://r.example/jobs/3"}]),
    ]


@pytest.fixture
def sites_file(tmp_path, stub_sites):
    p = tmp_path / "sites.json"
    p.write_text(json.dumps({"sites": stub_sites}), encoding="utf-8")
    return p


@pytest.fixture
def make_settings():
    """Return a brand-new Settings per call; kwargs override the test defaults."""

    def _make(sites, **kwargs):
        kw = {"sites": sites, "refresh_minutes": 0.0005, "pacing_ms": 0}
        kw.update(kwargs)
        return lw_config.Settings.from_env_and_kwargs(kw)

    return _make


def read_jsonl(path):
    if not os.path.exists(path):
        return []
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
