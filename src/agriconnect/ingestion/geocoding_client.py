"""
Geocoding client (Nominatim).

- reverse: coordinates -> short place name (village, town, city, ...)
- forward: free-text place -> coordinates

Both are best-effort. Geocoding never decides whether a signup or a job post
succeeds: on any failure `reverse` returns the literal "lat, lng" label and
`forward` returns None, and the caller substitutes its configured default.
Responses are cached on disk and requests are throttled to Nominatim's
one-per-second policy.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from agriconnect.config.settings import Settings
from agriconnect.core.cache import FileCache
from agriconnect.core.errors import CollaboratorUnavailable, InvariantViolation
from agriconnect.core.geo import GeoPoint, format_coordinate
from agriconnect.core.http import get_json
from agriconnect.core.rate_limit import TokenBucketRateLimiter

logger = logging.getLogger(__name__)

# Most specific first.
_PLACE_KEYS = ("village", "town", "city", "suburb", "county", "state_district")


def place_name(payload: Any) -> str | None:
    """Pick the most specific place name from a Nominatim reverse response."""
    if not isinstance(payload, dict):
        return None
    address = payload.get("address") or {}
    if not isinstance(address, dict):
        return None
    for key in _PLACE_KEYS:
        value = address.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class GeocodingClient:
    """Fetches and caches Nominatim lookups."""

    def __init__(
        self,
        settings: Settings,
        cache: FileCache,
        rate_limiter: TokenBucketRateLimiter | None = None,
    ):
        self._settings = settings
        self._cache = cache
        self._limiter = rate_limiter or TokenBucketRateLimiter(
            max_per_minute=settings.geocoding.max_requests_per_minute
        )

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        self._limiter.acquire()
        return get_json(
            f"{self._settings.geocoding.base_url.rstrip('/')}/{path}",
            params={"format": "json", **params},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def _lookup(self, cache_key: str, builder: Callable[[], Any]) -> Any:
        if not self._settings.geocoding.enabled:
            raise CollaboratorUnavailable("geocoding", "disabled by configuration")
        try:
            return self._cache.get_or_set(
                "geocode",
                cache_key,
                builder,
                ttl_seconds=self._settings.geocoding.cache_ttl_seconds,
                stale_if_error=True,
                stale_predicate=lambda exc: isinstance(exc, httpx.HTTPError),
            )
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorUnavailable("geocoding", str(e)) from e

    def reverse(self, lat: float, lng: float) -> str:
        """Return a place name for the coordinate, or the literal coordinate label."""
        fallback = format_coordinate(lat, lng)
        try:
            payload = self._lookup(
                f"reverse:{lat:.4f}:{lng:.4f}",
                lambda: self._get("reverse", {"lat": lat, "lon": lng}),
            )
        except CollaboratorUnavailable as e:
            logger.warning("Reverse geocoding failed for %s: %s", fallback, e)
            return fallback
        return place_name(payload) or fallback

    def forward(self, query: str) -> GeoPoint | None:
        """Return coordinates for a free-text place, or None when it cannot be resolved."""
        q = (query or "").strip()
        if not q:
            return None
        try:
            payload = self._lookup(f"search:{q.lower()}", lambda: self._get("search", {"q": q, "limit": 1}))
        except CollaboratorUnavailable as e:
            logger.warning("Forward geocoding failed for %r: %s", q, e)
            return None
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            return None
        try:
            return GeoPoint(lat=float(payload[0]["lat"]), lng=float(payload[0]["lon"]))
        except (KeyError, TypeError, ValueError, InvariantViolation):
            logger.warning("Ignoring malformed geocoding result for %r", q)
            return None
