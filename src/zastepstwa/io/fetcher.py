"""Upstream retrieval of the daily substitution PDF."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import requests

from zastepstwa.results import (
    DateKey,
    FetchOutcome,
    NotYetPublished,
    Success,
    UpstreamError,
    UpstreamUnreachable,
)

logger = logging.getLogger(__name__)

BROWSER_HEADERS: Mapping[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "application/pdf,*/*;q=0.8",
    "Accept-Language": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
    "Connection": "keep-alive",
}


def upstream_url_for(key: DateKey, url_pattern: str) -> str:
    """Fill `url_pattern` from `key` (``{key}``, ``{day}``, ``{month}``, ``{year}``)."""

    day, month, year = key.value.split(".")
    return url_pattern.format(key=key.value, day=day, month=month, year=year)


class UpstreamFetcher:
    """Single-attempt downloader that classifies every response.

    Each call to :meth:`fetch` issues at most one upstream request.
    """

    def __init__(
        self,
        url_pattern: str,
        *,
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.url_pattern = url_pattern
        self.timeout_seconds = timeout_seconds
        merged_headers = dict(BROWSER_HEADERS)
        if headers:
            merged_headers.update(headers)
        self.headers = merged_headers

    def url_for(self, key: DateKey) -> str:
        return upstream_url_for(key, self.url_pattern)

    def fetch(self, key: DateKey) -> FetchOutcome:
        url = self.url_for(key)
        try:
            response = requests.get(url, timeout=self.timeout_seconds, headers=self.headers)
        except requests.RequestException as exc:
            logger.warning("Upstream unreachable for %s: %s", url, exc)
            return UpstreamUnreachable(str(exc))

        status = response.status_code
        if status == 404:
            logger.info("Upstream has not published %s yet", key)
            return NotYetPublished()
        if 200 <= status < 300:
            if not response.content:
                logger.warning("Upstream returned an empty body for %s (HTTP %s)", url, status)
                return UpstreamError(status)
            logger.info("Fetched %s (%d bytes)", url, len(response.content))
            return Success(response.content)

        logger.warning("Upstream returned HTTP %s for %s", status, url)
        return UpstreamError(status)


__all__ = ["BROWSER_HEADERS", "UpstreamFetcher", "upstream_url_for"]
