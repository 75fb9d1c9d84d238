from __future__ import annotations

from collections.abc import Iterable

from ..config import SiteConfig
from .base import BaseScraper

# kind -> scraper class, filled by @register at import time
_REGISTRY: dict[str, type[BaseScraper]] = {}


def _key(kind: str) -> str:
    return (kind or "").strip().lower()


def register(cls: type[BaseScraper]) -> type[BaseScraper]:
    """
    Class decorator: make `cls` available under `cls.kind`.
    Re-registering the same class is a no-op; a different class for a taken kind is rejected.
    """
    key = _key(getattr(cls, "kind", "") or "")
    if not key:
        raise ValueError(f"Cannot register scraper {cls!r}: missing/empty 'kind'.")
    existing = _REGISTRY.get(key)
    if existing is not None and existing is not cls:
        raise ValueError(f"Scraper kind {key!r} already registered to {existing!r}.")
    _REGISTRY[key] = cls
    return cls


def get(kind: str) -> type[BaseScraper]:
    """Scraper class for `kind` (case-insensitive). Raises KeyError if unknown."""
    try:
        return _REGISTRY[_key(kind)]
    except KeyError:
        raise KeyError(f"No scraper registered for kind {kind!r}.") from None


def unknown_kinds(sites: Iterable[SiteConfig]) -> list[str]:
    """Kinds referenced by `sites` that nothing is registered for, in first-seen order."""
    out: list[str] = []
    for site in sites:
        key = _key(site.kind)
        if key not in _REGISTRY and key not in out:
            out.append(key)
    return out
