"""Shared typing helpers for the mirror's collaborators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from zastepstwa.results import DateKey, FetchOutcome


@runtime_checkable
class SupportsFetch(Protocol):
    """Anything that can retrieve the upstream document for a key."""

    def fetch(self, key: DateKey) -> FetchOutcome:
        """Return the classified outcome of one upstream attempt."""
        ...


__all__ = ["SupportsFetch"]
