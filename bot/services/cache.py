from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol

from core.config import RedisConfig

try:
    import redis.asyncio as redis
except ImportError:  # pragma: no cover - optional dependency at runtime
    redis = None


class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str, ttl: int | None = None) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def keys(self, prefix: str) -> list[str]: ...
    async def close(self) -> None: ...


@dataclass(slots=True)
class _MemoryValue:
    value: str
    expires_at: float | None


class MemoryCache(CacheBackend):
    def __init__(self) -> None:
        self._store: dict[str, _MemoryValue] = {}
        self._lock = asyncio.Lock()

    def _is_expired(self, entry: _MemoryValue) -> bool:
        if entry.expires_at is None:
            return False
        return time.time() >= entry.expires_at

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            if self._is_expired(entry):
                self._store.pop(key, None)
                return None
            return entry.value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        async with self._lock:
            expires_at = time.time() + ttl if ttl else None
            self._store[key] = _MemoryValue(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)

    async def keys(self, prefix: str) -> list[str]:
        async with self._lock:
            return sorted(
                key for key, entry in self._store.items() if key.startswith(prefix) and not self._is_expired(entry)
            )

    async def close(self) -> None:
        self._store.clear()


class RedisCache(CacheBackend):
    def __init__(self, url: str, key_prefix: str = "") -> None:
        if redis is None:
            raise RuntimeError("Redis dependency not installed. Add redis package.")
        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = f"{key_prefix}:" if key_prefix else ""

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        return await self._client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        if ttl:
            await self._client.set(self._key(key), value, ex=ttl)
        else:
            await self._client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def keys(self, prefix: str) -> list[str]:
        found = [key async for key in self._client.scan_iter(match=f"{self._key(prefix)}*")]
        return sorted(key[len(self._prefix) :] for key in found)

    async def close(self) -> None:
        await self._client.aclose()


async def build_cache(config: RedisConfig) -> CacheBackend:
    if config.enabled:
        return RedisCache(config.url, key_prefix=config.key_prefix)
    return MemoryCache()
