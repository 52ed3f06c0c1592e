"""
Lightweight local fallback store.

Holds one JSON string per key, the same shape a browser's localStorage would.
Without a directory it lives in memory only; with one, each key is mirrored to
``<directory>/<key>.json`` so snapshots survive restarts.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, directory: Optional[Union[str, Path]] = None) -> None:
        # Simple in-memory store: key -> serialized value
        self._items: Dict[str, str] = {}
        self._directory = Path(directory) if directory else None
        if self._directory is not None:
            self._directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"  # type: ignore[operator]

    # --- Key/value helpers used by the entity caches --------------------------

    def get_item(self, key: str) -> Optional[str]:
        if key in self._items:
            return self._items[key]
        if self._directory is None:
            return None
        path = self._path(key)
        if not path.exists():
            return None
        value = path.read_text(encoding="utf-8")
        self._items[key] = value
        return value

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        if self._directory is None:
            return
        # Write-then-rename so a crash never leaves half a snapshot behind.
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)
        logger.debug("Persisted local snapshot %s (%d bytes)", key, len(value))

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)
        if self._directory is not None:
            self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        for key in list(self._items):
            self.remove_item(key)
        if self._directory is not None:
            for path in self._directory.glob("*.json"):
                path.unlink(missing_ok=True)

    # --- Misc -----------------------------------------------------------------

    def ping(self) -> bool:
        """Health check hook; a local store is always reachable."""
        return True
