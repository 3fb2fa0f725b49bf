"""
Audit logging service for tracking admin actions.

Provides centralized logging of who changed which booking, driver,
tariff or setting.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from transfer_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Driver assignment
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    DRIVER_UNASSIGNED = "DRIVER_UNASSIGNED"
    DRIVER_CREATED = "DRIVER_CREATED"

    # Booking lifecycle
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_COMPLETED = "BOOKING_COMPLETED"
    BOOKING_DELETED = "BOOKING_DELETED"
    PAYMENT_STATUS_CHANGED = "PAYMENT_STATUS_CHANGED"

    # Tariffs and settings
    TARIFF_CREATED = "TARIFF_CREATED"
    TARIFF_UPDATED = "TARIFF_UPDATED"
    NOTIFICATION_SETTINGS_UPDATED = "NOTIFICATION_SETTINGS_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    booking_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an admin event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_email: Email of actor
        booking_id: Booking the action concerns (if applicable)
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        booking_id=booking_id,
        meta_data=metadata
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    current_user: dict,
    action: str,
    booking_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log an action taken by the authenticated admin."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("sub"),
        booking_id=booking_id,
        metadata=metadata
    )


async def get_booking_audit_trail(
    db: AsyncSession,
    booking_id: int,
    limit: int = 50
) -> list[AuditLog]:
    """
    Audit history of a booking, most recent first.
    """
    query = select(AuditLog).where(
        AuditLog.booking_id == booking_id
    ).order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
