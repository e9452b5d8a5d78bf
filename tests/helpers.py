from __future__ import annotations

import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable

import requests

from zastepstwa.io.cache import CacheStore
from zastepstwa.results import DateKey, FetchOutcome
from zastepstwa.services.calendar import DateResolver
from zastepstwa.services.orchestrator import CacheOrchestrator

PDF_V1 = b"%PDF-1.4 substitutions v1\n%%EOF"
PDF_V2 = b"%PDF-1.4 substitutions v2 with more rows\n%%EOF"

TUESDAY = datetime(2024, 3, 5, 7, 30)
FRIDAY = datetime(2024, 3, 8, 7, 30)
TTL = timedelta(minutes=30)


class FixedClock:
    """Manually advanced stand-in for ``datetime.now``."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class ScriptedFetcher:
    """Returns queued outcomes in order, repeating the last one."""

    def __init__(self, *outcomes: FetchOutcome, gate: threading.Event | None = None) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[DateKey] = []
        self.gate = gate
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def fetch(self, key: DateKey) -> FetchOutcome:
        with self._lock:
            self.calls.append(key)
            index = min(len(self.calls), len(self.outcomes)) - 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return self.outcomes[index]


class DummyResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


def build_orchestrator(
    root: Path,
    fetcher: ScriptedFetcher,
    *,
    clock: FixedClock | None = None,
    blackouts: Iterable = (),
    maintenance: bool = False,
    lock_timeout_seconds: float | None = 5.0,
    archive_subdir: str | None = "archive",
) -> CacheOrchestrator:
    clock = clock or FixedClock(TUESDAY)
    resolver = DateResolver(clock=clock, blackouts=list(blackouts))
    store = CacheStore(root, ttl=TTL, clock=clock, archive_subdir=archive_subdir)
    return CacheOrchestrator(
        resolver,
        store,
        fetcher,
        maintenance=maintenance,
        lock_timeout_seconds=lock_timeout_seconds,
    )
