"""Weather service - cache-aside aggregation over a weather provider."""
import logging
import threading
from collections import Counter
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Tuple

from cache_store import CacheStoreBase, InMemoryCacheStore
from weather_data import ForecastEntry, HistoricalRecord, Payload, WeatherAlert, WeatherSnapshot
from weather_errors import WeatherProviderError
from weather_normalizer import to_alerts, to_forecast, to_historical, to_snapshot
from weather_provider import WeatherProviderBase
from weather_request import DEFAULT_HISTORY_DAYS, DEFAULT_TTLS, RequestKind, WeatherRequest


class ServiceStats:
    """Thread-safe usage counters for a WeatherService."""

    COUNTERS = (
        "requests",
        "cache_hits",
        "cache_misses",
        "upstream_calls",
        "upstream_failures",
        "cache_errors",
    )

    def __init__(self):
        self.requests = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.upstream_calls = 0
        self.upstream_failures = 0
        self.cache_errors = 0
        self.locations: Counter = Counter()
        self._lock = threading.Lock()

    def increment(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)

    def record_request(self, location: str) -> None:
        with self._lock:
            self.requests += 1
            self.locations[location] += 1

    @property
    def unique_locations(self) -> int:
        with self._lock:
            return len(self.locations)

    def top_locations(self, n: int = 5) -> List[Tuple[str, int]]:
        """Most requested locations, most frequent first."""
        with self._lock:
            return self.locations.most_common(n)

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            summary: Dict[str, Any] = {name: getattr(self, name) for name in self.COUNTERS}
            summary["unique_locations"] = len(self.locations)
            summary["top_locations"] = self.locations.most_common(5)
        return summary


class WeatherService:
    """
    Service that wraps a weather provider with caching.

    Each lookup computes a cache key, returns the cached payload when it is
    still fresh, and otherwise calls the provider, normalizes the answer and
    stores it with the TTL for its kind. Alerts have a TTL of 0 and are
    always fetched live.

    The cache is an optimization only: if it raises, the lookup carries on as
    a miss. Upstream failures are never cached and never retried here; the
    provider owns its retry policy.

    By default concurrent misses on the same key each call upstream. Pass
    coalesce_misses=True to let them share a single in-flight call.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        cache: Optional[CacheStoreBase] = None,
        ttl_policy: Optional[Dict[RequestKind, int]] = None,
        coalesce_misses: bool = False
    ):
        """
        Initialize weather service.

        Args:
            provider: Weather provider to use
            cache: Cache backend; a fresh InMemoryCacheStore when omitted
            ttl_policy: Per-kind TTL overrides in seconds
            coalesce_misses: Share one upstream call between concurrent misses
        """
        self.provider = provider
        self.cache = cache if cache is not None else InMemoryCacheStore()
        self.ttl_policy = dict(DEFAULT_TTLS)
        if ttl_policy:
            self.ttl_policy.update(ttl_policy)
        self.coalesce_misses = coalesce_misses
        self.stats = ServiceStats()

        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    def get_current(self, location: str) -> WeatherSnapshot:
        request = WeatherRequest.current(location)
        return self._lookup(request, lambda: to_snapshot(self.provider.get_current(request.location)))

    def get_current_by_coords(self, lat: float, lon: float) -> WeatherSnapshot:
        request = WeatherRequest.current_by_coords(lat, lon)
        return self._lookup(request, lambda: to_snapshot(self.provider.get_current(request.location)))

    def get_forecast(self, location: str) -> ForecastEntry:
        request = WeatherRequest.forecast(location)
        return self._lookup(request, lambda: to_forecast(self.provider.get_forecast(request.location)))

    def get_forecast_by_coords(self, lat: float, lon: float) -> ForecastEntry:
        request = WeatherRequest.forecast_by_coords(lat, lon)
        return self._lookup(request, lambda: to_forecast(self.provider.get_forecast(request.location)))

    def get_historical(self, location: str, days: int = DEFAULT_HISTORY_DAYS) -> Tuple[HistoricalRecord, ...]:
        request = WeatherRequest.historical(location, days)
        return self._lookup(
            request,
            lambda: to_historical(self.provider.get_historical(request.location, request.days)),
        )

    def get_alerts(self, location: str) -> Tuple[WeatherAlert, ...]:
        request = WeatherRequest.alerts(location)
        return self._lookup(
            request,
            lambda: to_alerts(self.provider.get_alerts(request.location), area=request.location),
        )

    def _lookup(self, request: WeatherRequest, fetch: Callable[[], Payload]) -> Payload:
        key = request.cache_key
        ttl = self.ttl_policy.get(request.kind, 0)
        self.stats.record_request(request.label)

        if ttl <= 0:
            logging.debug(f"Caching disabled for {request.kind.value} requests, fetching {key} live")
            return self._fetch_and_store(key, ttl, fetch)

        cached = self._cache_get(key)
        if cached is not None:
            self.stats.increment("cache_hits")
            logging.debug(f"Cache hit: {key}")
            return cached

        self.stats.increment("cache_misses")
        logging.info(f"Cache miss: {key}, fetching from provider")
        if self.coalesce_misses:
            return self._fetch_shared(key, ttl, fetch)
        return self._fetch_and_store(key, ttl, fetch)

    def _fetch_and_store(self, key: str, ttl: int, fetch: Callable[[], Payload]) -> Payload:
        self.stats.increment("upstream_calls")
        try:
            payload = fetch()
        except WeatherProviderError as e:
            self.stats.increment("upstream_failures")
            logging.error(f"Weather fetch failed for {key}: {e}")
            raise

        if ttl > 0:
            self._cache_set(key, payload, ttl)
        return payload

    def _fetch_shared(self, key: str, ttl: int, fetch: Callable[[], Payload]) -> Payload:
        """Fetch through an in-flight registry so concurrent misses share one call."""
        with self._inflight_lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                # a fetch may have finished and cached between our miss and this lock
                cached = self._cache_get(key)
                if cached is not None:
                    logging.debug(f"Cache filled by a concurrent fetch: {key}")
                    return cached
                future = Future()
                self._inflight[key] = future

        if not leader:
            logging.debug(f"Joining in-flight fetch for {key}")
            return future.result()

        try:
            payload = self._fetch_and_store(key, ttl, fetch)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(payload)
            return payload
        finally:
            with self._inflight_lock:
                del self._inflight[key]

    def _cache_get(self, key: str) -> Optional[Payload]:
        try:
            return self.cache.get(key)
        except Exception:
            self.stats.increment("cache_errors")
            logging.warning(f"Cache read failed for {key}, treating as miss", exc_info=True)
            return None

    def _cache_set(self, key: str, payload: Payload, ttl: int) -> None:
        try:
            self.cache.set(key, payload, ttl)
            logging.debug(f"Cached {key} (TTL: {ttl}s)")
        except Exception:
            self.stats.increment("cache_errors")
            logging.warning(f"Cache write failed for {key}, returning uncached result", exc_info=True)
