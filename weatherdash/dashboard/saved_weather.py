"""
Weather for the saved-locations list, cached per location for an hour.

Entries past the TTL are still served until a refetch replaces them
(stale-while-revalidate). All stale locations are refreshed with a single
batched proxy call.
"""
import asyncio
import json
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from pydantic import TypeAdapter, ValidationError

from weatherdash.dashboard.api import DashboardApi
from weatherdash.dashboard.storage import SAVED_WEATHER_KEY, Storage
from weatherdash.errors import ClientFetchError
from weatherdash.models import CacheEntry, Location

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 60 * 60 * 1000
REFRESH_INTERVAL_SECONDS = 60 * 60

_entries = TypeAdapter(Dict[str, CacheEntry])


def _now_ms() -> int:
    return int(time.time() * 1000)


class SavedLocationWeatherCache:
    def __init__(
        self,
        api: DashboardApi,
        storage: Storage,
        ttl_ms: int = CACHE_TTL_MS,
        refresh_interval: float = REFRESH_INTERVAL_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ):
        self.api = api
        self.storage = storage
        self.ttl_ms = ttl_ms
        self.refresh_interval = refresh_interval
        self.clock = clock

        self.entries: Dict[str, CacheEntry] = {}
        self.loading = False
        self._task: Optional[asyncio.Task] = None
        self._wake: Optional[asyncio.Event] = None

    def load(self) -> Dict[str, CacheEntry]:
        raw = self.storage.get(SAVED_WEATHER_KEY)
        if not raw:
            self.entries = {}
            return self.entries
        try:
            self.entries = _entries.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable saved-location weather cache: %s", exc)
            self.entries = {}
        return self.entries

    def _persist(self) -> None:
        self.storage.set(SAVED_WEATHER_KEY, json.dumps({k: v.model_dump() for k, v in self.entries.items()}))

    def get(self, location: Location) -> Optional[CacheEntry]:
        return self.entries.get(location.key)

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and self.clock() - entry.timestamp <= self.ttl_ms

    def stale_locations(self, locations: Iterable[Location]) -> List[Location]:
        return [loc for loc in locations if not self.is_fresh(self.entries.get(loc.key))]

    async def reconcile(self, locations: Iterable[Location]) -> Set[str]:
        """Refetch absent or stale entries; returns the keys that were updated."""
        to_update = self.stale_locations(locations)
        if not to_update:
            return set()

        self.loading = True
        try:
            fetched = await self.api.fetch_saved_location_weather(to_update)
        except ClientFetchError as exc:
            logger.error("Error fetching saved-location weather: %s", exc)
            return set()
        finally:
            self.loading = False

        self.entries = {**self.entries, **fetched}
        self._persist()
        return set(fetched)

    def prune(self, locations: Iterable[Location]) -> None:
        keep = {loc.key for loc in locations}
        dropped = [key for key in self.entries if key not in keep]
        if not dropped:
            return
        for key in dropped:
            del self.entries[key]
        self._persist()

    # ── Scheduling ───────────────────────────────────────────────────────────

    def start(self, locations: Callable[[], List[Location]]) -> asyncio.Task:
        """Reconcile now, then on every interval or ``request_refresh()`` until ``stop()``."""
        if self._task is not None and not self._task.done():
            return self._task
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._run(locations))
        return self._task

    def request_refresh(self) -> None:
        if self._wake is not None:
            self._wake.set()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, locations: Callable[[], List[Location]]) -> None:
        while True:
            try:
                current = locations()
                if current:
                    await self.reconcile(current)
            except Exception:
                logger.exception("Saved-location weather refresh failed; retrying on next schedule")
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.refresh_interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
