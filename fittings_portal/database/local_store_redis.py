"""
Redis-backed local fallback store for deployments where REDIS_URL is set.
Implements the same interface as fittings_portal.database.local_store.
"""

from __future__ import annotations

from typing import Optional

import redis


class RedisLocalStore:
    """
    Shares fallback snapshots between worker processes. Keys never expire:
    a snapshot is only replaced or removed by a cache write.
    """

    def __init__(self, url: str, prefix: str = "portal:", client=None) -> None:
        self._client = client or redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_item(self, key: str) -> Optional[str]:
        return self._client.get(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self._client.set(self._key(key), value)

    def remove_item(self, key: str) -> None:
        self._client.delete(self._key(key))

    def clear(self) -> None:
        for key in self._client.scan_iter(match=f"{self._prefix}*"):
            self._client.delete(key)

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
