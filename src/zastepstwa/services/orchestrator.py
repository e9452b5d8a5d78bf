"""Fetch-through cache with stale fallback.

Every request funnels through :meth:`CacheOrchestrator.resolve_request`:

* ``Fresh`` artifact: served as is, upstream is not contacted.
* ``Absent`` or ``Stale``: one upstream fetch (per key at a time). A success
  replaces the artifact; any failure falls back to the stale copy when one
  exists and is reported as ``NotFound``/``ServiceUnavailable`` otherwise.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from zastepstwa.config.models import MirrorConfig
from zastepstwa.io.cache import Absent, CacheState, CacheStore, Fresh, Stale
from zastepstwa.io.fetcher import UpstreamFetcher
from zastepstwa.results import (
    DateKey,
    DateRejected,
    DateRequest,
    ErrorKind,
    FetchOutcome,
    NotYetPublished,
    Ready,
    Rejected,
    RequestResult,
    Success,
    UpstreamError,
)
from zastepstwa.services.calendar import Clock, DateResolver
from zastepstwa.util.locks import KeyedLocks
from zastepstwa.util.typing import SupportsFetch

logger = logging.getLogger(__name__)

MAINTENANCE_MESSAGE = "service temporarily unavailable, try again later"


@dataclass
class _Flight:
    """Outcome of the latest fetch for a key, shared with requests queued behind it."""

    generation: int = 0
    outcome: Optional[FetchOutcome] = None
    members: int = 0


class CacheOrchestrator:
    """Decide per request whether to serve, refresh or reject."""

    def __init__(
        self,
        resolver: DateResolver,
        store: CacheStore,
        fetcher: SupportsFetch,
        *,
        maintenance: bool = False,
        lock_timeout_seconds: float | None = 30.0,
    ) -> None:
        self.resolver = resolver
        self.store = store
        self.fetcher = fetcher
        self.maintenance = maintenance
        self.lock_timeout_seconds = lock_timeout_seconds
        self._inflight = KeyedLocks()
        self._flights: dict[DateKey, _Flight] = {}
        self._flights_guard = threading.Lock()

    @classmethod
    def from_config(cls, config: MirrorConfig, *, clock: Clock = datetime.now) -> "CacheOrchestrator":
        cache_dir = config.cache.directory
        resolver = DateResolver(clock=clock, blackouts=config.calendar.blackouts)
        store = CacheStore(
            cache_dir,
            ttl=timedelta(minutes=config.cache.ttl_minutes),
            clock=clock,
            archive_subdir=config.cache.archive_subdir if config.cache.archive else None,
        )
        fetcher = UpstreamFetcher(
            config.upstream.url_pattern,
            timeout_seconds=config.upstream.timeout_seconds,
            headers=config.upstream.headers,
        )
        return cls(
            resolver,
            store,
            fetcher,
            maintenance=config.runtime.maintenance,
            lock_timeout_seconds=config.runtime.lock_timeout_seconds,
        )

    def resolve_request(self, request: DateRequest) -> RequestResult:
        """Resolve `request` to a date and then to a servable artifact."""

        if self.maintenance:
            return Rejected(ErrorKind.SERVICE_UNAVAILABLE, MAINTENANCE_MESSAGE)

        try:
            key = self.resolver.resolve(request)
        except DateRejected as exc:
            logger.info("Rejected %s: %s", request, exc.message)
            return Rejected(exc.kind, exc.message)

        return self.resolve_key(key)

    def resolve_key(self, key: DateKey) -> RequestResult:
        """Serve, refresh or reject the artifact for an already validated key."""

        if self.maintenance:
            return Rejected(ErrorKind.SERVICE_UNAVAILABLE, MAINTENANCE_MESSAGE)

        state = self.store.probe(key)
        if isinstance(state, Fresh):
            return Ready(key, state.path)

        flight, seen = self._join(key)
        try:
            with self._inflight.hold(key, timeout=self.lock_timeout_seconds) as acquired:
                if not acquired:
                    logger.warning("Timed out waiting for in-flight fetch of %s", key)
                    return self._without_refresh(key, self.store.probe(key))

                # Another request may have refreshed the artifact while we waited.
                state = self.store.probe(key)
                if isinstance(state, Fresh):
                    return Ready(key, state.path)

                # A fetch finished while we were queued: use its outcome.
                if flight.generation != seen and flight.outcome is not None:
                    logger.debug("Reusing upstream outcome for %s", key)
                    return self._apply(key, state, flight.outcome)

                outcome = self.fetcher.fetch(key)
                flight.outcome = outcome
                flight.generation += 1
                return self._apply(key, state, outcome)
        finally:
            self._leave(key)

    def _join(self, key: DateKey) -> tuple[_Flight, int]:
        with self._flights_guard:
            flight = self._flights.setdefault(key, _Flight())
            flight.members += 1
            return flight, flight.generation

    def _leave(self, key: DateKey) -> None:
        with self._flights_guard:
            flight = self._flights[key]
            flight.members -= 1
            if flight.members == 0:
                del self._flights[key]

    def _apply(self, key: DateKey, state: CacheState, outcome: FetchOutcome) -> RequestResult:
        if isinstance(outcome, Success):
            path = self.store.commit(key, outcome.content)
            return Ready(key, path)

        if isinstance(state, Stale):
            logger.warning(
                "Serving stale %s (age %s) after upstream outcome %s", key, state.age, outcome
            )
            return Ready(key, state.path, stale=True)

        if isinstance(outcome, NotYetPublished):
            return Rejected(
                ErrorKind.NOT_FOUND,
                f"Substitutions for {key} have not been published yet, try again later",
            )
        if isinstance(outcome, UpstreamError):
            detail = f"HTTP {outcome.status_code}"
        else:
            detail = "unreachable"
        return Rejected(
            ErrorKind.SERVICE_UNAVAILABLE,
            f"Substitution service is unavailable ({detail}), try again later",
        )

    def _without_refresh(self, key: DateKey, state: CacheState) -> RequestResult:
        if isinstance(state, Absent):
            return Rejected(
                ErrorKind.SERVICE_UNAVAILABLE,
                f"Substitutions for {key} are still being fetched, try again later",
            )
        return Ready(key, state.path, stale=isinstance(state, Stale))


__all__ = ["CacheOrchestrator", "MAINTENANCE_MESSAGE"]
