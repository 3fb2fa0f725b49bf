"""
Vehicle Tariff API Endpoints.

Public tariff listing and admin tariff management.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.exceptions import ResourceNotFoundError, UpstreamError
from transfer_backend.app.core.guards import require_admin
from transfer_backend.app.db.session import get_db
from transfer_backend.app.models.vehicle_tariff import VehicleTariff
from transfer_backend.app.schemas.pricing import (
    VehicleTariffCreate, VehicleTariffUpdate, VehicleTariffResponse
)
from transfer_backend.app.services.audit import log_admin_action, AuditAction

router = APIRouter(tags=["Vehicles"])


@router.get("/vehicles", response_model=List[VehicleTariffResponse])
async def list_vehicles(db: AsyncSession = Depends(get_db)):
    """List active vehicle tariffs, cheapest base fare first."""
    result = await db.execute(
        select(VehicleTariff)
        .where(VehicleTariff.is_active == True)
        .order_by(VehicleTariff.base_fare, VehicleTariff.id)
    )
    return result.scalars().all()


@router.post("/admin/vehicles", response_model=VehicleTariffResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle_tariff(
    tariff: VehicleTariffCreate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a vehicle tariff (Admin only)."""
    new_tariff = VehicleTariff(**tariff.model_dump(), is_active=True)
    db.add(new_tariff)
    try:
        await db.commit()
        await db.refresh(new_tariff)
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamError("Failed to create vehicle tariff") from e

    await log_admin_action(
        db, current_user, AuditAction.TARIFF_CREATED,
        metadata={"tariff_id": new_tariff.id, "name": new_tariff.name}
    )
    return new_tariff


@router.patch("/admin/vehicles/{tariff_id}", response_model=VehicleTariffResponse)
async def update_vehicle_tariff(
    tariff_id: int = Path(..., description="Vehicle tariff ID"),
    update: VehicleTariffUpdate = ...,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a vehicle tariff (Admin only).

    Existing bookings keep the price they were booked at.
    """
    tariff = await db.scalar(select(VehicleTariff).where(VehicleTariff.id == tariff_id))
    if not tariff:
        raise ResourceNotFoundError("Vehicle tariff", tariff_id)

    changes = update.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(tariff, field, value)

    try:
        await db.commit()
        await db.refresh(tariff)
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamError("Failed to update vehicle tariff") from e

    await log_admin_action(
        db, current_user, AuditAction.TARIFF_UPDATED,
        metadata={"tariff_id": tariff.id, "fields": sorted(changes)}
    )
    return tariff
