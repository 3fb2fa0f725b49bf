"""
Notification Dispatcher.

Sends booking confirmation SMS to admins. Sending is fire-and-forget:
it runs as a background task after the response, and failures are
logged, never propagated to the booking or assignment that triggered it.

Which admins get a message is decided by explicit ``NotificationSettings``
values loaded by the caller, not by reading settings here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.config import settings
from transfer_backend.app.models.admin_setting import AdminSetting
from transfer_backend.app.models.booking import Booking

logger = logging.getLogger("transfers.notifications")

NOTIFICATION_PHONE_KEY = "notification_phone"
SMS_ENABLED_KEY = "sms_notifications_enabled"
NOTIFICATION_KEYS = (NOTIFICATION_PHONE_KEY, SMS_ENABLED_KEY)

# Default value shipped in the settings form; never a real recipient
PLACEHOLDER_PHONE = "+1234567890"


@dataclass(frozen=True)
class NotificationSettings:
    admin_id: int
    phone: Optional[str] = None
    sms_enabled: bool = False

    @property
    def can_receive_sms(self) -> bool:
        return self.sms_enabled and bool(self.phone) and self.phone != PLACEHOLDER_PHONE


@dataclass(frozen=True)
class BookingConfirmedEvent:
    booking_id: int
    customer_name: str
    pickup_address: str
    destination_address: str
    departure_time: datetime
    total_price: Decimal
    payment_method: str
    vehicle_name: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking, vehicle_name: Optional[str] = None) -> "BookingConfirmedEvent":
        return cls(
            booking_id=booking.id,
            customer_name=booking.customer_name,
            pickup_address=booking.pickup_address,
            destination_address=booking.destination_address,
            departure_time=booking.departure_time,
            total_price=booking.total_price,
            payment_method=booking.payment_method.value,
            vehicle_name=vehicle_name,
        )


def format_booking_sms(event: BookingConfirmedEvent) -> str:
    lines = [
        f"New booking #{event.booking_id}",
        f"Customer: {event.customer_name}",
        f"From: {event.pickup_address}",
        f"To: {event.destination_address}",
        f"Departure: {event.departure_time:%Y-%m-%d %H:%M} UTC",
    ]
    if event.vehicle_name:
        lines.append(f"Vehicle: {event.vehicle_name}")
    lines.append(f"Total: EUR {event.total_price:.2f} ({event.payment_method})")
    return "\n".join(lines)


class SmsGateway:
    """HTTP SMS gateway client."""

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url if url is not None else settings.sms_gateway_url
        self.token = token if token is not None else settings.sms_gateway_token
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    async def send(self, to: str, body: str) -> None:
        """
        Raises:
            httpx.HTTPError: Gateway unreachable or rejected the message
        """
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        async with httpx.AsyncClient(timeout=settings.sms_timeout_seconds, transport=self.transport) as client:
            response = await client.post(self.url, json={"to": to, "body": body}, headers=headers)
            response.raise_for_status()


async def load_notification_settings(db: AsyncSession) -> List[NotificationSettings]:
    """Notification settings of every admin that has any."""
    result = await db.execute(
        select(AdminSetting).where(AdminSetting.setting_key.in_(NOTIFICATION_KEYS))
    )

    grouped: Dict[int, Dict[str, Optional[str]]] = {}
    for row in result.scalars().all():
        grouped.setdefault(row.admin_id, {})[row.setting_key] = row.setting_value

    return [
        NotificationSettings(
            admin_id=admin_id,
            phone=values.get(NOTIFICATION_PHONE_KEY),
            sms_enabled=values.get(SMS_ENABLED_KEY) == "true",
        )
        for admin_id, values in sorted(grouped.items())
    ]


async def dispatch_booking_confirmation(
    event: BookingConfirmedEvent,
    recipients: List[NotificationSettings],
    gateway: Optional[SmsGateway] = None
) -> int:
    """
    Send the confirmation SMS to every recipient that can receive it.

    Returns:
        Number of messages sent successfully
    """
    gateway = gateway or SmsGateway()
    if not gateway.is_configured:
        logger.info("SMS gateway not configured, skipping notification for booking %s", event.booking_id)
        return 0

    body = format_booking_sms(event)
    sent = 0
    for recipient in recipients:
        if not recipient.can_receive_sms:
            logger.info("Skipping SMS for admin %s: notifications disabled or phone not configured",
                        recipient.admin_id)
            continue
        try:
            await gateway.send(recipient.phone, body)
        except Exception:
            logger.exception("SMS notification failed for admin %s (booking %s)",
                             recipient.admin_id, event.booking_id)
            continue
        sent += 1

    logger.info("Booking %s confirmation sent to %d admin(s)", event.booking_id, sent)
    return sent
