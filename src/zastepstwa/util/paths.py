"""Path utilities centralising the on-disk layout."""

from __future__ import annotations

from pathlib import Path


def data_root_from_config(storage_root: str | Path) -> Path:
    """Return the resolved data root."""
    return Path(storage_root).expanduser().resolve()


def is_within(path: Path, root: Path) -> bool:
    """Return True when `path` resolves to a location under `root`."""
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


__all__ = ["data_root_from_config", "is_within"]
