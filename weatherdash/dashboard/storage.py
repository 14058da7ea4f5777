from typing import Dict, Optional, Protocol

import redis

SAVED_LOCATIONS_KEY = "savedLocations"
UNIT_KEY = "unit"
SAVED_WEATHER_KEY = "savedLocationsWeather"


class Storage(Protocol):
    """String key/value persistence, the shape of a browser's localStorage."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStorage:
    """
    Durable storage in Redis. Keys are namespaced per user:
      <prefix>:<key> -> <string value>
    """

    def __init__(self, redis_url: str, prefix: str = "weatherdash"):
        self.client = redis.from_url(redis_url, decode_responses=True)
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self.client.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.client.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self.client.delete(self._key(key))


def open_storage(redis_url: Optional[str] = None, prefix: str = "weatherdash") -> Storage:
    """Redis-backed storage when a URL is given, otherwise an in-process store."""
    if redis_url:
        return RedisStorage(redis_url, prefix=prefix)
    return MemoryStorage()
