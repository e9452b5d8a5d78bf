"""Local artifact store for downloaded substitution PDFs."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Union

from zastepstwa.results import DateKey
from zastepstwa.services.calendar import Clock
from zastepstwa.util.hashing import sha256_bytes, sha256sum
from zastepstwa.util.locks import KeyedLocks
from zastepstwa.util.paths import data_root_from_config, is_within

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".pdf"
TEMP_SUFFIX = ".download"
ARTIFACT_MODE = 0o644


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Fresh:
    path: Path
    age: timedelta


@dataclass(frozen=True)
class Stale:
    path: Path
    age: timedelta


CacheState = Union[Absent, Fresh, Stale]


def cache_path_for(key: DateKey, *, root: Path) -> Path:
    """Return the path where the artifact for `key` is stored."""
    return root / f"{key}{ARTIFACT_SUFFIX}"


class CacheStore:
    """Own the on-disk artifacts, one file per :class:`DateKey`.

    Callers receive paths only. Writes go through a temporary file in the same
    directory followed by ``os.replace`` so readers see either the previous
    artifact or the new one, never a partial file.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        ttl: timedelta = timedelta(minutes=30),
        clock: Clock = datetime.now,
        archive_subdir: str | None = "archive",
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self.root = data_root_from_config(root)
        self.ttl = ttl
        self._clock = clock
        self.archive_dir = self.root / archive_subdir if archive_subdir else None
        self._write_locks = KeyedLocks()

    def path_for(self, key: DateKey) -> Path:
        path = cache_path_for(key, root=self.root)
        if not is_within(path, self.root):
            raise ValueError(f"Artifact path for {key} escapes the cache directory")
        return path

    def probe(self, key: DateKey) -> CacheState:
        """Report whether the artifact for `key` is absent, fresh or stale."""

        path = self.path_for(key)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return Absent()

        age = self._clock() - datetime.fromtimestamp(mtime)
        if age < self.ttl:
            return Fresh(path, age)
        return Stale(path, age)

    def commit(self, key: DateKey, content: bytes) -> Path:
        """Atomically replace the artifact for `key` with `content`."""

        dest = self.path_for(key)
        with self._write_locks.hold(key):
            self.root.mkdir(parents=True, exist_ok=True)
            if self.archive_dir is not None and dest.exists():
                self._archive(key, dest, content)

            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=TEMP_SUFFIX, dir=self.root)
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(content)
                    handle.flush()
                    os.fsync(handle.fileno())
                stamp = self._clock().timestamp()
                os.utime(tmp_path, (stamp, stamp))
                # mkstemp creates 0600 files; artifacts are served to other users.
                os.chmod(tmp_path, ARTIFACT_MODE)
                os.replace(tmp_path, dest)
            except BaseException:
                tmp_path.unlink(missing_ok=True)
                raise

        logger.info("Committed %s (%d bytes)", dest.name, len(content))
        return dest

    def invalidate(self, key: DateKey) -> bool:
        """Remove the artifact for `key`; return whether one existed."""

        path = self.path_for(key)
        with self._write_locks.hold(key):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
        logger.info("Invalidated %s", path.name)
        return True

    def _archive(self, key: DateKey, current: Path, incoming: bytes) -> Path | None:
        if self.archive_dir is None:
            return None
        if sha256sum(current) == sha256_bytes(incoming):
            logger.debug("Skipping archive for %s; content unchanged", key)
            return None

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        stamp = self._clock().strftime("%Y%m%dT%H%M%S%f")
        dest = self.archive_dir / f"{stamp}_{key}{ARTIFACT_SUFFIX}"
        dest.write_bytes(current.read_bytes())
        logger.info("Archived previous %s as %s", current.name, dest.name)
        return dest


__all__ = [
    "Absent",
    "CacheState",
    "CacheStore",
    "Fresh",
    "Stale",
    "cache_path_for",
]
