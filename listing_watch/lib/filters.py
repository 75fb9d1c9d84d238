from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .models import Listing


@dataclass(frozen=True)
class FilterRules:
    """
    Keyword gates for one site. None (or empty) on an axis means "no constraint".

    Matching is CASE-SENSITIVE substring containment: "software" does not match
    "Software Engineer". Gate order is fixed:
        title_include -> title_exclude -> location_include -> location_exclude
    """

    title_include: tuple[str, ...] | None = None
    title_exclude: tuple[str, ...] | None = None
    location_include: tuple[str, ...] | None = None
    location_exclude: tuple[str, ...] | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> FilterRules:
        raw = dict(raw or {})
        unknown = set(raw) - {"title_include", "title_exclude", "location_include", "location_exclude"}
        if unknown:
            raise ValueError(f"Unknown filter keys: {sorted(unknown)}")
        return cls(
            title_include=_terms(raw.get("title_include")),
            title_exclude=_terms(raw.get("title_exclude")),
            location_include=_terms(raw.get("location_include")),
            location_exclude=_terms(raw.get("location_exclude")),
        )


def _terms(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, Iterable):
        raise ValueError(f"Filter terms must be a list of strings, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def _any_in(terms: tuple[str, ...], text: str) -> bool:
    return any(term in text for term in terms)


def passes_filters(listing: Listing, rules: FilterRules | None) -> bool:
    """Return True if the listing survives all four gates."""
    if rules is None:
        return True
    title = listing.title
    location = listing.location

    if rules.title_include and not _any_in(rules.title_include, title):
        return False
    if rules.title_exclude and _any_in(rules.title_exclude, title):
        return False
    if rules.location_include and not _any_in(rules.location_include, location):
        return False
    if rules.location_exclude and _any_in(rules.location_exclude, location):
        return False
    return True
