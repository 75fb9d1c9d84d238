"""
Webhook delivery for new listings.

Each send is a two-state machine:

    SENDING --204--> done
    SENDING --429--> BACKOFF_WAIT --sleep(retry_after)--> SENDING   (unbounded)
    SENDING --other status / transport error--> DeliveryError        (no retry)

After every successful delivery a fixed pacing delay is applied before the next
listing. The delay is measured after completion, so it stays under the endpoint's
budget of 50 requests/second even at 20ms.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

import requests

from . import logging_bridge, render
from .config import Settings
from .http_client import HttpClient
from .models import Listing

LOG = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class DeliveryError(RuntimeError):
    """Raised when a webhook POST fails with a non-204/non-429 status or a transport error."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SendState(Enum):
    SENDING = "sending"
    BACKOFF_WAIT = "backoff_wait"


class WebhookDispatcher:
    """Sends one webhook message per new listing, in mapping order."""

    def __init__(
        self,
        webhook_url: str | None,
        *,
        client: HttpClient | None = None,
        pacing_seconds: float = 0.02,
        sleep: SleepFunc | None = None,
    ) -> None:
        self.webhook_url = webhook_url or None
        self._client = client or HttpClient()
        self.pacing_seconds = max(0.0, float(pacing_seconds))
        self._sleep: SleepFunc = sleep or asyncio.sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> WebhookDispatcher:
        kwargs.setdefault("client", HttpClient(timeout=settings.request_timeout))
        return cls(settings.webhook_url, pacing_seconds=settings.pacing_seconds, **kwargs)

    async def dispatch(self, new_listings: Mapping[str, Listing]) -> int:
        """
        Notify for every listing. Returns the number of webhook deliveries made.

        A missing webhook is not an error: listings are logged and 0 is returned.
        The first DeliveryError aborts the remaining deliveries and propagates.
        """
        if not new_listings:
            LOG.info("No new job listings found")
            logging_bridge.activity({"component": "listing_watch.notifier", "op": "no_new"})
            return 0

        if not self.webhook_url:
            logging_bridge.error({
                "component": "listing_watch.notifier",
                "op": "no_webhook",
                "pending": len(new_listings),
                "error": "Webhook URL is not defined; delivery skipped",
            })
            for listing in new_listings.values():
                LOG.info(render.summary_line(listing))
            return 0

        sent = 0
        for key, listing in new_listings.items():
            LOG.info(render.summary_line(listing))
            attempts = await self.deliver(render.build_payload(listing))
            sent += 1
            logging_bridge.activity({
                "component": "listing_watch.notifier",
                "op": "delivered",
                "id": key,
                "company": listing.company.value,
                "attempts": attempts,
            })
            if self.pacing_seconds:
                await self._sleep(self.pacing_seconds)
        return sent

    async def deliver(self, payload: dict[str, Any]) -> int:
        """
        POST one payload until it is accepted. Returns the number of attempts.
        Rate limits are retried indefinitely using the server-provided wait.
        """
        if not self.webhook_url:
            raise DeliveryError("No webhook URL configured")

        state = SendState.SENDING
        attempts = 0
        wait_s = 0.0
        while True:
            if state is SendState.BACKOFF_WAIT:
                await self._sleep(wait_s)
                state = SendState.SENDING
                continue

            attempts += 1
            resp = await self._post(payload)

            if resp.status_code == 204:
                return attempts

            if resp.status_code == 429:
                wait_s = _retry_after_seconds(resp)
                LOG.warning("Rate limited. Waiting %s seconds before retrying...", wait_s)
                logging_bridge.activity({
                    "component": "listing_watch.notifier",
                    "op": "rate_limited",
                    "retry_after": wait_s,
                    "attempt": attempts,
                })
                state = SendState.BACKOFF_WAIT
                continue

            preview = (resp.text or "")[:200].replace("\n", " ")
            logging_bridge.error({
                "component": "listing_watch.notifier",
                "op": "deliver",
                "status": resp.status_code,
                "body": preview,
            })
            raise DeliveryError(f"Failed to send webhook: HTTP {resp.status_code}", status=resp.status_code)

    async def _post(self, payload: dict[str, Any]) -> requests.Response:
        try:
            return await asyncio.to_thread(self._client.post_json, self.webhook_url, payload)
        except requests.RequestException as e:
            logging_bridge.error({
                "component": "listing_watch.notifier",
                "op": "deliver",
                "error": repr(e),
            })
            raise DeliveryError(f"Error sending webhook: {e}") from e

    def close(self) -> None:
        self._client.close()


def _retry_after_seconds(resp: requests.Response) -> float:
    """
    Wait from a 429: JSON body "retry_after" (seconds), else the Retry-After header.
    Anything unreadable is a DeliveryError.
    """
    value: Any = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        value = body.get("retry_after")
    if value is None:
        value = resp.headers.get("Retry-After")

    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise DeliveryError(f"Rate limited without a usable retry_after: {value!r}", status=429) from e
    if not math.isfinite(seconds) or seconds < 0:
        raise DeliveryError(f"Rate limited with unusable retry_after: {seconds}", status=429)
    return seconds
