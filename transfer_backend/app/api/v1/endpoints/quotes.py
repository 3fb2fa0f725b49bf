"""
Quote and Directions API Endpoints.

Price a route before booking. The same pricing path is used when the
booking is submitted, so the quoted and booked totals match.
"""

from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.config import settings
from transfer_backend.app.core.dependencies import get_current_user
from transfer_backend.app.db.session import get_db
from transfer_backend.app.domain.booking.booking_service import BookingService
from transfer_backend.app.domain.pricing.country_detection import detect_route_countries
from transfer_backend.app.domain.pricing.pricing_engine import price_breakdown, round_currency
from transfer_backend.app.schemas.pricing import QuoteRequest, QuoteResponse, SurchargeResponse
from transfer_backend.app.schemas.routing import RouteRequest, RouteQuote, to_coordinates
from transfer_backend.app.services.routing import RoutingService, get_routing_service

router = APIRouter(tags=["Quotes"])


@router.post("/directions", response_model=RouteQuote)
async def get_directions(
    request: RouteRequest,
    current_user: dict = Depends(get_current_user),
    routing: RoutingService = Depends(get_routing_service)
):
    """
    Resolve driving distance and duration between two points.

    Falls back to a great-circle estimate (``is_fallback``) when the
    routing provider is unavailable.
    """
    return await routing.get_route(request.pickup, request.destination)


@router.post("/quotes", response_model=QuoteResponse)
async def create_quote(
    quote: QuoteRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    routing: RoutingService = Depends(get_routing_service)
):
    """
    Quote a transfer price with its surcharges.

    ``total_price`` is rounded to cents; surcharges compound in order.
    """
    tariff = await BookingService.get_active_tariff(db, quote.vehicle_tariff_id)

    route = await routing.resolve(
        to_coordinates(quote.pickup),
        to_coordinates(quote.destination),
        quote.distance_km,
        quote.duration_minutes
    )
    pickup_country, destination_country = detect_route_countries(
        quote.pickup.address, quote.destination.address
    )
    breakdown = price_breakdown(
        tariff,
        route.distance_km,
        quote.departure_time,
        pickup_country,
        destination_country,
        tz=ZoneInfo(settings.business_timezone),
    )

    return QuoteResponse(
        vehicle_tariff_id=tariff.id,
        distance_km=route.distance_km,
        duration_minutes=route.duration_minutes,
        pickup_country=pickup_country,
        destination_country=destination_country,
        base_price=round_currency(breakdown.base),
        surcharges=[
            SurchargeResponse(name=s.name, multiplier=s.multiplier) for s in breakdown.surcharges
        ],
        total_price=round_currency(breakdown.total),
        route_fallback=route.is_fallback
    )
