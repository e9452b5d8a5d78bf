"""Domain vocabulary shared by the resolver, cache, fetcher and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Union


class ErrorKind(str, Enum):
    """Reasons a request can be rejected, with their response codes."""

    INVALID_DATE = "invalid_date"
    WEEKEND = "weekend"
    BLACKOUT = "blackout"
    NOT_FOUND = "not_found"
    SERVICE_UNAVAILABLE = "service_unavailable"

    @property
    def code(self) -> int:
        return _ERROR_CODES[self]


_ERROR_CODES = {
    ErrorKind.INVALID_DATE: 422,
    ErrorKind.WEEKEND: 422,
    ErrorKind.BLACKOUT: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SERVICE_UNAVAILABLE: 500,
}


@dataclass(frozen=True, order=True)
class DateKey:
    """Canonical ``DD.MM.YYYY`` cache key for a calendar day."""

    value: str

    @classmethod
    def for_date(cls, day: date) -> "DateKey":
        return cls(f"{day.day:02d}.{day.month:02d}.{day.year:04d}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExplicitDate:
    """A request naming the day directly."""

    day: int
    month: int
    year: int


@dataclass(frozen=True)
class RelativeDate:
    """A request relative to the current local date (``today``/``tomorrow``)."""

    when: str


DateRequest = Union[ExplicitDate, RelativeDate]


class DateRejected(Exception):
    """Raised by the resolver when a request cannot become a valid key."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


# Upstream outcomes


@dataclass(frozen=True)
class Success:
    content: bytes


@dataclass(frozen=True)
class NotYetPublished:
    pass


@dataclass(frozen=True)
class UpstreamUnreachable:
    reason: str = ""


@dataclass(frozen=True)
class UpstreamError:
    status_code: int


FetchOutcome = Union[Success, NotYetPublished, UpstreamUnreachable, UpstreamError]


# Request results


@dataclass(frozen=True)
class Ready:
    """The artifact for ``key`` exists at ``path``; ``stale`` marks a fallback copy."""

    key: DateKey
    path: Path
    stale: bool = False

    @property
    def code(self) -> int:
        return 200


@dataclass(frozen=True)
class Rejected:
    kind: ErrorKind
    message: str

    @property
    def code(self) -> int:
        return self.kind.code


RequestResult = Union[Ready, Rejected]


__all__ = [
    "DateKey",
    "DateRejected",
    "DateRequest",
    "ErrorKind",
    "ExplicitDate",
    "FetchOutcome",
    "NotYetPublished",
    "Ready",
    "Rejected",
    "RelativeDate",
    "RequestResult",
    "Success",
    "UpstreamError",
    "UpstreamUnreachable",
]
