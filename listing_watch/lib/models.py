from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Company(Enum):
    """
    Known employers. The value is the display name used in notifications;
    `tag` prefixes listing identities (e.g., "RIOT-12345").
    """

    GOOGLE = "Google"
    DISCORD = "Discord"
    RIOT_GAMES = "Riot Games"

    @property
    def tag(self) -> str:
        return _TAGS[self]

    @classmethod
    def parse(cls, value: Company | str) -> Company:
        """Accept a member, its display name, its member name, or its tag (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.name.lower(), member.tag.lower()):
                return member
        raise ValueError(f"Unknown company: {value!r}")


_TAGS = {
    Company.GOOGLE: "GOOGLE",
    Company.DISCORD: "DISCORD",
    Company.RIOT_GAMES: "RIOT",
}


@dataclass(frozen=True)
class Listing:
    """
    A single job listing as scraped from a career site (pre-filter, pre-diff).
    Identity is derived externally from (company, url); see identity.py.
    """

    title: str
    location: str
    url: str
    found_date: str  # formatted in the configured timezone
    company: Company


# identity -> listing, insertion-ordered
Snapshot = dict[str, Listing]


@dataclass
class ScrapeResult:
    """
    Result bundle produced by one site task in a cycle.
    - items: listings that passed the site's filters, keyed by identity.
    - errors: failures the task caught; a non-empty list means the site failed this cycle.
    """

    company: Company
    items: Snapshot = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    raw_count: int = 0
    duration_us: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors
