from __future__ import annotations

import re
from urllib.parse import urlsplit

from .models import Company

STRATEGIES = ("path", "last_segment")


def listing_identity(
    company: Company,
    url: str,
    *,
    pattern: str | re.Pattern[str] | None = None,
    strategy: str = "path",
) -> str:
    """
    Stable key for a listing: "<TAG>-<fragment>".

    Fragment resolution:
      1. `pattern` matches the full URL -> first group (or the whole match if the
         pattern has no groups). Used for numeric job ids, e.g. r"/jobs/results/(\\d+)-".
      2. strategy == "last_segment" -> last non-empty path segment.
      3. otherwise -> URL path without trailing "/" (whole URL if the path is empty).

    Query strings and fragments are ignored unless `pattern` reads them.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown identity strategy: {strategy!r}")

    url = (url or "").strip()
    fragment = ""

    if pattern:
        m = re.search(pattern, url)
        if m:
            fragment = m.group(1) if m.re.groups else m.group(0)

    if not fragment:
        path = urlsplit(url).path.rstrip("/")
        if strategy == "last_segment":
            segments = [s for s in path.split("/") if s]
            fragment = segments[-1] if segments else ""
        else:
            fragment = path
        if not fragment:
            fragment = url

    return f"{company.tag}-{fragment}"

