"""Retry wrapper shared by the outbound httpx clients."""
from __future__ import annotations
import asyncio
import logging

import httpx

from .config import RetryPolicy

logger = logging.getLogger(__name__)

# POST (event insert, message send) is never repeated: a retry after a lost
# response would book or send twice.
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


async def request_with_retry(
    client: httpx.AsyncClient,
    retry: RetryPolicy,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """Send a request, re-attempting transport errors and 5xx replies.

    With the default policy (``max_retries=0``) this is a single call. The last
    response is returned even when it is a 5xx; the last transport error is
    re-raised. Only idempotent methods are retried.
    """
    max_retries = retry.max_retries if method.upper() in IDEMPOTENT_METHODS else 0
    delay = retry.backoff
    for attempt in range(max_retries + 1):
        last = attempt == max_retries
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            if last:
                raise
            logger.warning(f"{method} {url} failed ({e}), retrying in {delay:.1f}s")
        else:
            if resp.status_code < 500 or last:
                return resp
            logger.warning(f"{method} {url} returned {resp.status_code}, retrying in {delay:.1f}s")
        await asyncio.sleep(delay)
        delay *= 2
    raise RuntimeError("unreachable")  # pragma: no cover
