from __future__ import annotations

from collections.abc import Mapping

from .models import Listing, Snapshot


def new_entries(previous: Mapping[str, Listing], current: Mapping[str, Listing]) -> Snapshot:
    """
    Return the entries of `current` whose identity is absent from `previous`,
    in `current` order.

    Only appearance is detected: an identity present in both is never reported,
    even if its fields changed, and identities that disappeared are dropped.
    """
    return {key: listing for key, listing in current.items() if key not in previous}
