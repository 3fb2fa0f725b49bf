"""
Routing Service.

Resolves driving distance and duration between two points using the
Mapbox Directions API. Results are cached in Redis. When the provider is
unavailable (not configured, failing, or circuit open) the route is
estimated from the great-circle distance at 2 minutes per km.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx
from fastapi import Depends
from redis.exceptions import RedisError

from transfer_backend.app.core.config import settings
from transfer_backend.app.core.exceptions import UpstreamError
from transfer_backend.app.core.redis_client import get_redis
from transfer_backend.app.core.reliability import CircuitBreaker, CircuitOpenError, routing_circuit_breaker
from transfer_backend.app.schemas.routing import Coordinates, RouteQuote
from transfer_backend.app.services.geo import fallback_route_estimate

logger = logging.getLogger("transfers.routing")

ROUTE_CACHE_PREFIX = "route:driving:"
# ~11 m; close enough to share a cached route
CACHE_COORDINATE_PRECISION = 4


class RoutingProviderError(UpstreamError):
    """Routing provider returned an error or an unusable response."""

    def __init__(self, message: str = "Routing provider unavailable"):
        super().__init__(message=message)


def route_cache_key(pickup: Coordinates, destination: Coordinates) -> str:
    p = CACHE_COORDINATE_PRECISION
    return (
        f"{ROUTE_CACHE_PREFIX}"
        f"{round(pickup.latitude, p)},{round(pickup.longitude, p)};"
        f"{round(destination.latitude, p)},{round(destination.longitude, p)}"
    )


def parse_directions(payload) -> tuple[Decimal, Decimal]:
    """Distance (km) and duration (minutes) of the first route in a Directions response."""
    try:
        routes = payload.get("routes") or []
        if not routes:
            raise RoutingProviderError(f"No route found ({payload.get('code', 'unknown')})")

        route = routes[0]
        distance_km = Decimal(str(route["distance"])) / 1000
        duration_minutes = Decimal(str(route["duration"])) / 60
        if not (distance_km.is_finite() and duration_minutes.is_finite()):
            raise RoutingProviderError("Directions response has non-finite distance or duration")
        if distance_km < 0 or duration_minutes < 0:
            raise RoutingProviderError("Directions response has negative distance or duration")
        return distance_km.quantize(Decimal("0.01")), duration_minutes.quantize(Decimal("0.01"))
    except (KeyError, IndexError, TypeError, AttributeError, InvalidOperation) as e:
        raise RoutingProviderError(f"Malformed directions response: {e!r}") from e


class RoutingService:

    def __init__(
        self,
        redis=None,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        breaker: CircuitBreaker = routing_circuit_breaker,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.redis = redis
        self.access_token = access_token if access_token is not None else settings.mapbox_access_token
        self.base_url = (base_url or settings.mapbox_base_url).rstrip("/")
        self.breaker = breaker
        self.transport = transport

    async def get_route(self, pickup: Coordinates, destination: Coordinates) -> RouteQuote:
        """
        Resolve a route, falling back to a great-circle estimate.

        Fallback estimates are never cached so the provider is retried
        on the next request.
        """
        key = route_cache_key(pickup, destination)
        cached = await self._cache_get(key)
        if cached:
            return cached

        try:
            distance_km, duration_minutes = await self.fetch_directions(pickup, destination)
        except (UpstreamError, CircuitOpenError) as e:
            logger.warning("Routing provider unavailable, using great-circle estimate: %s", e)
            distance_km, duration_minutes = fallback_route_estimate(
                pickup.latitude, pickup.longitude, destination.latitude, destination.longitude
            )
            return RouteQuote(
                pickup=pickup,
                destination=destination,
                distance_km=distance_km,
                duration_minutes=duration_minutes,
                is_fallback=True
            )

        quote = RouteQuote(
            pickup=pickup,
            destination=destination,
            distance_km=distance_km,
            duration_minutes=duration_minutes
        )
        await self._cache_set(key, quote)
        return quote

    async def resolve(
        self,
        pickup: Coordinates,
        destination: Coordinates,
        distance_km: Optional[Decimal] = None,
        duration_minutes: Optional[Decimal] = None
    ) -> RouteQuote:
        """Use a distance the client already resolved, otherwise look the route up."""
        if distance_km is not None:
            return RouteQuote(
                pickup=pickup,
                destination=destination,
                distance_km=distance_km,
                duration_minutes=duration_minutes if duration_minutes is not None else Decimal("0")
            )
        return await self.get_route(pickup, destination)

    async def fetch_directions(self,pickup: Coordinates, destination: Coordinates) -> tuple[Decimal, Decimal]:
        """
        Call the provider through the circuit breaker.

        Returns:
            (distance_km, duration_minutes), rounded to 2 decimals

        Raises:
            RoutingProviderError: Provider not configured or failed
            CircuitOpenError: Too many recent failures
        """
        if not self.access_token:
            raise RoutingProviderError("Routing provider not configured")

        return await self.breaker.call(self._request_directions, pickup, destination)

    async def _request_directions(self, pickup: Coordinates, destination: Coordinates) -> tuple[Decimal, Decimal]:
        url = (
            f"{self.base_url}/directions/v5/mapbox/driving/"
            f"{pickup.longitude},{pickup.latitude};{destination.longitude},{destination.latitude}"
        )
        params = {
            "access_token": self.access_token,
            "geometries": "geojson",
            "overview": "simplified",
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.routing_timeout_seconds, transport=self.transport
            ) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RoutingProviderError(f"Directions request failed: {e}") from e

        return parse_directions(payload)

    async def _cache_get(self, key: str) -> Optional[RouteQuote]:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning("Route cache read failed: %s", e)
            return None
        if not raw:
            return None
        return RouteQuote.model_validate(json.loads(raw))

    async def _cache_set(self, key: str, quote: RouteQuote) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, quote.model_dump_json(), ex=settings.route_cache_ttl_seconds)
        except RedisError as e:
            logger.warning("Route cache write failed: %s", e)


async def get_routing_service(redis=Depends(get_redis)) -> RoutingService:
    """FastAPI dependency."""
    return RoutingService(redis=redis)
