"""
Driver and Driver Assignment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from transfer_backend.app.models.booking_enums import AssignmentStatus


class DriverCreate(BaseModel):
    """Schema for registering a driver."""
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    license_number: Optional[str] = Field(None, max_length=64)
    vehicle_info: Optional[str] = Field(None, max_length=255)


class DriverResponse(BaseModel):
    """Schema for driver response."""
    id: int
    full_name: str
    phone: Optional[str]
    email: Optional[str]
    license_number: Optional[str]
    vehicle_info: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AvailableDriversResponse(BaseModel):
    """Free drivers around a departure time."""
    drivers: List[DriverResponse]
    requested_time: Optional[datetime] = None
    total_drivers: int
    available_drivers: int


class DriverAssignmentCreate(BaseModel):
    """Schema for assigning a driver to a booking."""
    driver_id: int
    notes: Optional[str] = Field(None, max_length=1000)


class DriverAssignmentResponse(BaseModel):
    """Response after driver assignment."""
    id: int
    booking_id: int
    driver_id: int
    assigned_by: Optional[int]
    assigned_at: datetime
    status: AssignmentStatus
    notes: Optional[str]
    driver: Optional[DriverResponse] = None

    class Config:
        from_attributes = True


def assignment_response(assignment, driver=None) -> DriverAssignmentResponse:
    """Assignment view with the driver embedded (there is no ORM relationship)."""
    response = DriverAssignmentResponse.model_validate(assignment)
    if driver is not None:
        response.driver = DriverResponse.model_validate(driver)
    return response
