from __future__ import annotations

from typing import Any

from . import utils
from .models import Listing

CONTENT_LINE = "New job listing found:"


def build_payload(listing: Listing) -> dict[str, Any]:
    """
    Webhook body for one listing:

      {"content": "New job listing found:",
       "embeds": [{"title": ..., "url": ..., "description": "Company: ...\\nLocation: ...\\nFound Date: ..."}]}
    """
    description = (
        f"Company: {listing.company.value}\n"
        f"Location: {listing.location}\n"
        f"Found Date: {listing.found_date}"
    )
    return {
        "content": CONTENT_LINE,
        "embeds": [
            {
                "title": listing.title,
                "url": listing.url,
                "description": description,
            }
        ],
    }


def summary_line(listing: Listing) -> str:
    """One-line console summary; long fields are truncated."""
    return (
        f"New job listing found | Company: {listing.company.value}"
        f" | Title: {utils.truncate(listing.title, 50)}"
        f" | Location: {utils.truncate(listing.location, 25)}"
        f" | URL: {utils.truncate(listing.url, 70)}"
    )
