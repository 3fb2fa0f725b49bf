"""
Admin Notification Settings API Endpoints.

Each admin chooses whether they get an SMS for confirmed bookings and
which phone number it goes to.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.exceptions import UpstreamError
from transfer_backend.app.core.guards import require_admin
from transfer_backend.app.db.session import get_db
from transfer_backend.app.models.admin_setting import AdminSetting
from transfer_backend.app.schemas.settings import NotificationSettingsResponse, NotificationSettingsUpdate
from transfer_backend.app.services.audit import log_admin_action, AuditAction
from transfer_backend.app.services.notifications import (
    NOTIFICATION_KEYS, NOTIFICATION_PHONE_KEY, SMS_ENABLED_KEY
)

router = APIRouter(prefix="/admin/settings", tags=["Admin - Settings"])


async def _load_settings(db: AsyncSession, admin_id: int) -> dict:
    result = await db.execute(
        select(AdminSetting).where(
            AdminSetting.admin_id == admin_id,
            AdminSetting.setting_key.in_(NOTIFICATION_KEYS)
        )
    )
    return {row.setting_key: row for row in result.scalars().all()}


def _to_response(admin_id: int, rows: dict) -> NotificationSettingsResponse:
    phone = rows.get(NOTIFICATION_PHONE_KEY)
    enabled = rows.get(SMS_ENABLED_KEY)
    return NotificationSettingsResponse(
        admin_id=admin_id,
        notification_phone=phone.setting_value if phone else None,
        sms_notifications_enabled=bool(enabled and enabled.setting_value == "true")
    )


@router.get("/notifications", response_model=NotificationSettingsResponse)
async def get_notification_settings(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's notification settings (Admin only)."""
    admin_id = current_user["user_id"]
    return _to_response(admin_id, await _load_settings(db, admin_id))


@router.put("/notifications", response_model=NotificationSettingsResponse)
async def update_notification_settings(
    update: NotificationSettingsUpdate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the caller's notification settings (Admin only).

    Only the fields sent are changed. The phone must be E.164.
    """
    admin_id = current_user["user_id"]
    rows = await _load_settings(db, admin_id)

    changes = {}
    if "notification_phone" in update.model_fields_set:
        changes[NOTIFICATION_PHONE_KEY] = update.notification_phone
    if update.sms_notifications_enabled is not None:
        changes[SMS_ENABLED_KEY] = "true" if update.sms_notifications_enabled else "false"

    for key, value in changes.items():
        row = rows.get(key)
        if row:
            row.setting_value = value
        else:
            row = AdminSetting(admin_id=admin_id, setting_key=key, setting_value=value)
            db.add(row)
            rows[key] = row

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamError("Failed to save notification settings") from e

    if changes:
        await log_admin_action(
            db, current_user, AuditAction.NOTIFICATION_SETTINGS_UPDATED,
            metadata={"fields": sorted(changes)}
        )

    return _to_response(admin_id, rows)
