"""Pydantic models describing the mirror configuration."""

from __future__ import annotations

import string
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

URL_PLACEHOLDERS = frozenset({"key", "day", "month", "year"})


class UpstreamConfig(BaseModel):
    """Where the daily document is published and how politely to ask for it."""

    model_config = ConfigDict(extra="allow")

    url_pattern: str = "https://zastepstwa.zschie.pl/pliki/{key}.pdf"
    timeout_seconds: float = Field(default=10.0, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_pattern(self) -> "UpstreamConfig":
        """Allow only date placeholders, and require at least one."""

        try:
            fields = {
                name for _, name, _, _ in string.Formatter().parse(self.url_pattern) if name is not None
            }
        except ValueError as exc:
            raise ValueError(f"url_pattern is not a valid format string: {exc}") from exc

        unknown = sorted(fields - URL_PLACEHOLDERS)
        if unknown:
            raise ValueError(f"url_pattern has unknown placeholders: {', '.join(unknown)}")
        if not fields:
            raise ValueError("url_pattern must contain {key} or {day}/{month}/{year} placeholders.")
        return self


class CacheConfig(BaseModel):
    """Local artifact storage and freshness policy."""

    model_config = ConfigDict(extra="allow")

    directory: Path = Path("./files")
    ttl_minutes: float = Field(default=30, gt=0)
    archive: bool = True
    archive_subdir: str = "archive"


class BlackoutRange(BaseModel):
    """Inclusive date range during which no document is expected."""

    model_config = ConfigDict(extra="allow")

    start: date
    end: date
    reason: str = "school break"

    @model_validator(mode="after")
    def _validate_order(self) -> "BlackoutRange":
        if self.start > self.end:
            raise ValueError(f"Blackout start {self.start} is after end {self.end}.")
        return self

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


class CalendarConfig(BaseModel):
    """Static calendar rules on top of the always-on weekend exclusion."""

    model_config = ConfigDict(extra="allow")

    blackouts: List[BlackoutRange] = Field(default_factory=list)


class RuntimeConfig(BaseModel):
    """Execution-time settings such as maintenance mode and server binding."""

    model_config = ConfigDict(extra="allow")

    maintenance: bool = False
    public_base_url: str = ""
    lock_timeout_seconds: float = Field(default=30.0, gt=0)
    log_path: Optional[Path] = None
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)


class MirrorConfig(BaseModel):
    """Root configuration object for the mirror service."""

    model_config = ConfigDict(extra="allow")

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)


__all__ = [
    "BlackoutRange",
    "CacheConfig",
    "CalendarConfig",
    "MirrorConfig",
    "RuntimeConfig",
    "UpstreamConfig",
]
