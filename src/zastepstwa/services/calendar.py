"""School calendar rules and request-to-key resolution."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta

from zastepstwa.config.models import BlackoutRange
from zastepstwa.results import (
    DateKey,
    DateRejected,
    DateRequest,
    ErrorKind,
    ExplicitDate,
    RelativeDate,
)

Clock = Callable[[], datetime]

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
RELATIVE_OFFSETS = {"today": 0, "tomorrow": 1}

# Per-keyword suffix for a weekend landing.
_WEEKEND_SUFFIX = {"today": "no lessons", "tomorrow": "no substitutions"}


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def blackout_for(day: date, blackouts: Sequence[BlackoutRange]) -> BlackoutRange | None:
    """Return the first configured blackout covering `day`, if any."""

    for blackout in blackouts:
        if blackout.covers(day):
            return blackout
    return None


class DateResolver:
    """Turn explicit or relative requests into validated cache keys.

    The clock is injected so resolution is a pure function of the request,
    the current local date and the configured blackouts.
    """

    def __init__(self, *, clock: Clock = datetime.now, blackouts: Sequence[BlackoutRange] = ()) -> None:
        self._clock = clock
        self._blackouts = tuple(blackouts)

    def today(self) -> date:
        return self._clock().date()

    def resolve(self, request: DateRequest) -> DateKey:
        """Return the key for `request` or raise :class:`DateRejected`."""

        if isinstance(request, ExplicitDate):
            day = self._explicit(request)
            keyword = None
        elif isinstance(request, RelativeDate):
            keyword = request.when.strip().lower()
            if keyword not in RELATIVE_OFFSETS:
                raise DateRejected(
                    ErrorKind.INVALID_DATE,
                    f"Unknown relative date {request.when!r}; use 'today' or 'tomorrow'.",
                )
            day = self.today() + timedelta(days=RELATIVE_OFFSETS[keyword])
        else:
            raise TypeError(f"Unsupported request type {type(request)!r}")

        self._check_policy(day, keyword)
        return DateKey.for_date(day)

    def _explicit(self, request: ExplicitDate) -> date:
        try:
            return date(request.year, request.month, request.day)
        except (TypeError, ValueError, OverflowError) as exc:
            raise DateRejected(
                ErrorKind.INVALID_DATE,
                f"{request.day}.{request.month}.{request.year} is not a valid date: {exc}",
            ) from exc

    def _check_policy(self, day: date, keyword: str | None) -> None:
        if is_weekend(day):
            weekday = WEEKDAY_NAMES[day.weekday()]
            if keyword is None:
                message = f"{DateKey.for_date(day)} is a {weekday}, no lessons"
            else:
                message = f"{keyword} is {weekday}, {_WEEKEND_SUFFIX[keyword]}"
            raise DateRejected(ErrorKind.WEEKEND, message)

        blackout = blackout_for(day, self._blackouts)
        if blackout is not None:
            raise DateRejected(
                ErrorKind.BLACKOUT,
                f"{DateKey.for_date(day)} falls within {blackout.reason} "
                f"({blackout.start:%d.%m.%Y} - {blackout.end:%d.%m.%Y}), no substitutions",
            )


__all__ = ["Clock", "DateResolver", "blackout_for", "is_weekend"]
