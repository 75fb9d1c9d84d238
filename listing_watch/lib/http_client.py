# listing_watch/lib/http_client.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

LOG = logging.getLogger(__name__)


class HttpClient:
    """
    Shared HTTP client for webhook delivery.

    Transport-level retries are disabled on purpose: 429 handling belongs to the
    dispatcher's state machine, and every other failure is reported, not retried.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = "ListingWatch/0.1 (+https://example.invalid)",
    ):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

        retry = Retry(total=0, raise_on_status=False, respect_retry_after_header=False)
        adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """
        POST a JSON body and return the raw response without raising on status.
        Transport errors surface as requests.RequestException.
        """
        return self.session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=timeout or self.timeout,
        )

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)
