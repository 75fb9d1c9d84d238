from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytz
import yaml

from .filters import FilterRules
from .identity import STRATEGIES
from .models import Company
from .utils import getenv_str, truthy

LOG = logging.getLogger(__name__)


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env/sites file cannot form a valid Settings."""


# Playwright load states; puppeteer-style names from older configs map onto them.
_WAIT_UNTIL = {"load", "domcontentloaded", "networkidle", "commit"}
_WAIT_UNTIL_ALIASES = {"networkidle0": "networkidle", "networkidle2": "networkidle"}


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class SelectorSpec:
    """
    CSS selectors for one career page.
    - list_container: matches one element per listing
    - title / location: looked up inside the container
    - url: looked up inside the container; the literal "href" means the container's own href
    - location_index: pick the n-th location match instead of the first
    """

    list_container: str
    title: str
    location: str | None = None
    url: str = "href"
    location_index: int | None = None


@dataclass(frozen=True)
class SiteConfig:
    """
    One site to scrape per cycle.
    - kind: scraper family ("selector", "stub")
    - id_pattern / id_strategy: how listing identities are derived from URLs
    - params: arbitrary dict passed through to the scraper
    """

    company: Company
    kind: str = "selector"
    url: str = ""
    wait_until: str = "load"
    selectors: SelectorSpec | None = None
    filters: FilterRules = field(default_factory=FilterRules)
    id_pattern: str | None = None
    id_strategy: str = "path"
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Settings:
    """
    Canonical configuration for a listing_watch process.

    Sites come from `sites_path` (JSON or YAML list) when given, else from the
    built-in DEFAULT_SITES.
    """

    webhook_url: str | None = None
    refresh_minutes: float = 60.0
    timezone: str = "UTC"
    sites_path: str | None = None
    pacing_ms: int = 20
    request_timeout: float = 15.0
    headless: bool = True
    ingest_only_first_cycle: bool = False
    carry_forward_failed_sites: bool = False
    sites: list[SiteConfig] = field(default_factory=list, repr=False)

    @property
    def refresh_seconds(self) -> float:
        return self.refresh_minutes * 60.0

    @property
    def pacing_seconds(self) -> float:
        return self.pacing_ms / 1000.0

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None = None) -> Settings:
        """
        Build Settings from kwargs, falling back to the environment, with validation.

            webhook_url: str | None        (NOTIFICATION_WEBHOOK)  absent -> delivery disabled
            refresh_minutes: float = 60    (REFRESH_DURATION)
            timezone: str = "UTC"          (TZ)
            sites_path: str | None         (SITES_PATH)
            pacing_ms: int = 20            (WEBHOOK_PACING_MS)
            request_timeout: float = 15    (WEBHOOK_TIMEOUT)
            headless: bool = true          (BROWSER_HEADLESS)
            ingest_only_first_cycle: bool  (INGEST_ONLY_FIRST_CYCLE)
            carry_forward_failed_sites: bool (CARRY_FORWARD_FAILED_SITES)
            sites: list[dict]              inline site objects (overrides sites_path)
        """
        kw = dict(kwargs or {})

        def pick(key: str, env: str, default: Any = None) -> Any:
            if kw.get(key) is not None:
                return kw[key]
            return getenv_str(env, default)

        webhook_url = str(pick("webhook_url", "NOTIFICATION_WEBHOOK") or "").strip() or None
        sites_path = str(pick("sites_path", "SITES_PATH") or "").strip() or None

        try:
            refresh_minutes = float(pick("refresh_minutes", "REFRESH_DURATION", 60))
            pacing_ms = int(pick("pacing_ms", "WEBHOOK_PACING_MS", 20))
            request_timeout = float(pick("request_timeout", "WEBHOOK_TIMEOUT", 15.0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        settings = cls(
            webhook_url=webhook_url,
            refresh_minutes=refresh_minutes,
            timezone=_normalize_timezone(pick("timezone", "TZ", "UTC")),
            sites_path=sites_path,
            pacing_ms=pacing_ms,
            request_timeout=request_timeout,
            headless=truthy(pick("headless", "BROWSER_HEADLESS", True)),
            ingest_only_first_cycle=truthy(pick("ingest_only_first_cycle", "INGEST_ONLY_FIRST_CYCLE", False)),
            carry_forward_failed_sites=truthy(
                pick("carry_forward_failed_sites", "CARRY_FORWARD_FAILED_SITES", False)
            ),
        )

        if kw.get("sites") is not None:
            settings.sites = parse_sites(kw["sites"])
        else:
            settings.sites = load_sites(sites_path)

        _validate_settings(settings)
        return settings


# -----------------------------
# Sites loading / parsing
# -----------------------------
def load_sites(path: str | None = None) -> list[SiteConfig]:
    """
    Load site configs from a JSON or YAML file; None -> built-in DEFAULT_SITES.
    """
    if not path:
        from .sites import DEFAULT_SITES

        return parse_sites(DEFAULT_SITES)

    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise ConfigError(f"sites file not found: {path}") from e

    try:
        if os.path.splitext(path)[1].lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"sites file is invalid: {path}: {e}") from e

    # Allow {"sites": [...]} as well as a bare list
    if isinstance(data, dict) and "sites" in data:
        data = data["sites"]
    sites = parse_sites(data)
    if not sites:
        raise ConfigError(f"No sites found in {path}")
    return sites


def parse_sites(value: Any) -> list[SiteConfig]:
    """
    Parse a flat list into SiteConfig objects.
    Accepts: [{"company": "...", "kind": "...", "url": "...", "selectors": {...}, ...}, ...]
    """
    if not value:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of site objects.")
    out: list[SiteConfig] = []
    seen: set[Company] = set()
    for i, item in enumerate(value):
        site = _parse_site(i, item)
        if site.company in seen:
            raise ConfigError(f"Item[{i}]: duplicate company {site.company.value!r}.")
        seen.add(site.company)
        out.append(site)
    return out


def _parse_site(i: int, item: Any) -> SiteConfig:
    if not isinstance(item, dict):
        raise ConfigError(f"Item[{i}] must be an object.")

    try:
        company = Company.parse(item.get("company"))
    except ValueError as e:
        raise ConfigError(f"Item[{i}]: {e}") from e

    kind = str(item.get("kind") or "selector").strip().lower()
    url = str(item.get("url") or "").strip()

    wait_until = str(item.get("wait_until") or "load").strip().lower()
    wait_until = _WAIT_UNTIL_ALIASES.get(wait_until, wait_until)
    if wait_until not in _WAIT_UNTIL:
        raise ConfigError(f"Item[{i}].wait_until must be one of {sorted(_WAIT_UNTIL)}, got {wait_until!r}.")

    selectors = _parse_selectors(i, item.get("selectors"))
    if kind == "selector":
        if not url:
            raise ConfigError(f"Item[{i}] ({company.value}) requires 'url' for kind 'selector'.")
        if selectors is None:
            raise ConfigError(f"Item[{i}] ({company.value}) requires 'selectors' for kind 'selector'.")

    try:
        filters = FilterRules.from_mapping(item.get("filters"))
    except ValueError as e:
        raise ConfigError(f"Item[{i}].filters: {e}") from e

    identity = item.get("identity") or {}
    if not isinstance(identity, dict):
        raise ConfigError(f"Item[{i}].identity must be an object.")
    id_pattern = identity.get("pattern") or None
    if id_pattern is not None:
        try:
            re.compile(id_pattern)
        except re.error as e:
            raise ConfigError(f"Item[{i}].identity.pattern is not a valid regex: {e}") from e
    id_strategy = str(identity.get("strategy") or "path")
    if id_strategy not in STRATEGIES:
        raise ConfigError(f"Item[{i}].identity.strategy must be one of {list(STRATEGIES)}.")

    params = item.get("params") or {}
    if not isinstance(params, dict):
        raise ConfigError(f"Item[{i}].params must be an object.")

    return SiteConfig(
        company=company,
        kind=kind,
        url=url,
        wait_until=wait_until,
        selectors=selectors,
        filters=filters,
        id_pattern=id_pattern,
        id_strategy=id_strategy,
        params=dict(params),
    )


def _parse_selectors(i: int, raw: Any) -> SelectorSpec | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError(f"Item[{i}].selectors must be an object.")
    list_container = str(raw.get("list_container") or "").strip()
    title = str(raw.get("title") or "").strip()
    if not list_container or not title:
        raise ConfigError(f"Item[{i}].selectors requires 'list_container' and 'title'.")
    location_index = raw.get("location_index")
    if location_index is not None:
        try:
            location_index = int(location_index)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Item[{i}].selectors.location_index must be an integer.") from e
        if location_index < 0:
            raise ConfigError(f"Item[{i}].selectors.location_index must be >= 0.")
    return SelectorSpec(
        list_container=list_container,
        title=title,
        location=str(raw.get("location") or "").strip() or None,
        url=str(raw.get("url") or "href").strip(),
        location_index=location_index,
    )


def _validate_settings(s: Settings) -> None:
    if s.refresh_minutes <= 0:
        raise ConfigError("'refresh_minutes' must be > 0.")
    if s.pacing_ms < 0:
        raise ConfigError("'pacing_ms' must be >= 0.")
    if s.request_timeout <= 0:
        raise ConfigError("'request_timeout' must be > 0.")
    if s.webhook_url and not s.webhook_url.lower().startswith(("https://", "http://")):
        raise ConfigError("'webhook_url' must be an http(s) URL.")
    try:
        pytz.timezone(s.timezone)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"Unknown timezone: {s.timezone!r}") from e
    if not s.sites:
        raise ConfigError("No sites to scrape.")


def _normalize_timezone(raw: Any) -> str:
    """
    Accept POSIX-style TZ values as containers set them: a leading ':' is dropped,
    and a zoneinfo file path maps to its zone name. A path with no zone name in it
    (e.g. ':/etc/localtime') cannot be resolved, so it falls back to UTC.
    """
    name = str(raw or "").strip().lstrip(":").strip()
    if not name:
        return "UTC"
    if "zoneinfo/" in name:
        name = name.split("zoneinfo/", 1)[1]
    if name.startswith("/"):
        LOG.warning("TZ=%r is a file path, not a zone name; using UTC", raw)
        return "UTC"
    return name
