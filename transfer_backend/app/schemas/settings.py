"""
Admin notification settings schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional


class NotificationSettingsUpdate(BaseModel):
    """Phone must be E.164 (e.g. +37120000000)."""
    notification_phone: Optional[str] = Field(None, pattern=r"^\+[1-9]\d{1,14}$")
    sms_notifications_enabled: Optional[bool] = None


class NotificationSettingsResponse(BaseModel):
    admin_id: int
    notification_phone: Optional[str]
    sms_notifications_enabled: bool
