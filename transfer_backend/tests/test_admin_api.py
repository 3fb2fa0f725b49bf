"""
Integration tests for the admin API.

Booking management, driver availability and assignment, tariffs,
notification settings and the audit trail.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.jwt import create_access_token
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentMethod
from transfer_backend.app.models.enums import UserRole
from transfer_backend.app.models.profile import Profile

# 13:00 in Riga
T = datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)


# --- Access control ---

@pytest.mark.asyncio
@pytest.mark.parametrize("method,path", [
    ("get", "/v1/admin/bookings"),
    ("get", "/v1/admin/drivers"),
    ("get", "/v1/admin/drivers/available"),
    ("get", "/v1/admin/settings/notifications"),
])
async def test_customer_cannot_use_admin_endpoints(client, customer_headers, method, path):
    response = await getattr(client, method)(path, headers=customer_headers)

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(client):
    response = await client.get("/v1/admin/bookings", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_token_for_unknown_profile_is_unauthenticated(client):
    token = create_access_token(data={"sub": "gone@test.com", "user_id": 9999})

    response = await client.get("/v1/bookings", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_inactive_admin_is_forbidden(client, db_session):
    profile = Profile(email="former@test.com", full_name="Former Admin", role=UserRole.ADMIN, is_active=False)
    db_session.add(profile)
    await db_session.commit()
    token = create_access_token(data={"sub": profile.email, "user_id": profile.id})

    response = await client.get("/v1/admin/bookings", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_health_reports_cache(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"


# --- Booking listing ---

@pytest.mark.asyncio
async def test_list_bookings_with_filters(client, admin_headers, make_booking):
    await make_booking(status=BookingStatus.PENDING, customer_name="Anna Liepa", departure_time=T)
    await make_booking(status=BookingStatus.CONFIRMED, customer_name="Peteris Kalns",
                       departure_time=T + timedelta(days=2))
    await make_booking(status=BookingStatus.CANCELLED, destination_address="Tallinn, Estonia",
                       departure_time=T + timedelta(days=5))

    response = await client.get("/v1/admin/bookings", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 1
    assert data["page_size"] == 10

    response = await client.get("/v1/admin/bookings", params={"status": "confirmed"}, headers=admin_headers)
    assert [b["customer_name"] for b in response.json()["bookings"]] == ["Peteris Kalns"]

    response = await client.get("/v1/admin/bookings", params={"search": "TALLINN"}, headers=admin_headers)
    assert [b["status"] for b in response.json()["bookings"]] == ["cancelled"]

    response = await client.get("/v1/admin/bookings", params={
        "sort_by": "departure_time", "sort_order": "asc", "page": 2, "page_size": 2
    }, headers=admin_headers)
    data = response.json()
    assert data["total"] == 3
    assert len(data["bookings"]) == 1
    assert data["bookings"][0]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_list_bookings_rejects_unknown_sort(client, admin_headers):
    response = await client.get("/v1/admin/bookings", params={"sort_by": "customer_phone"}, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_booking_detail_not_found(client, admin_headers):
    response = await client.get("/v1/admin/bookings/9999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


# --- Drivers and availability ---

@pytest.mark.asyncio
async def test_create_and_list_drivers(client, admin_headers):
    response = await client.post("/v1/admin/drivers", json={
        "full_name": "Zane Liepina", "phone": "+37120000200", "vehicle_info": "Skoda Superb"
    }, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["is_active"] is True

    response = await client.get("/v1/admin/drivers", headers=admin_headers)
    assert [d["full_name"] for d in response.json()] == ["Zane Liepina"]


@pytest.mark.asyncio
@pytest.mark.parametrize("method,path,body", [
    ("post", "/v1/admin/drivers", {"full_name": "Zane Liepina", "phone": "+37120000200"}),
    ("post", "/v1/admin/vehicles", {
        "name": "Business", "base_fare": "30.00", "per_kilometer": "2.10", "max_passengers": 3, "max_luggage": 2
    }),
    ("put", "/v1/admin/settings/notifications", {"sms_notifications_enabled": True}),
])
async def test_admin_write_storage_failure_is_upstream_error(client, admin_headers, mocker, method, path, body):
    mocker.patch.object(
        AsyncSession, "commit", side_effect=OperationalError("INSERT", {}, Exception("database is locked"))
    )

    response = await getattr(client, method)(path, json=body, headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_UPSTREAM"


@pytest.mark.asyncio
async def test_driver_not_created_when_commit_fails(client, admin_headers, mocker):
    mocker.patch.object(
        AsyncSession, "commit", side_effect=OperationalError("INSERT", {}, Exception("database is locked"))
    )
    response = await client.post("/v1/admin/drivers", json={
        "full_name": "Zane Liepina", "phone": "+37120000200"
    }, headers=admin_headers)
    assert response.status_code == 503

    mocker.stopall()
    response = await client.get("/v1/admin/drivers", headers=admin_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_available_drivers_without_time_returns_all(client, admin_headers, drivers):
    response = await client.get("/v1/admin/drivers/available", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_drivers"] == 3
    assert data["available_drivers"] == 3
    assert data["requested_time"] is None


@pytest.mark.asyncio
async def test_available_drivers_excludes_busy_driver(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    response = await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver",
        json={"driver_id": drivers[0].id}, headers=admin_headers
    )
    assert response.status_code == 201

    response = await client.get(
        "/v1/admin/drivers/available",
        params={"datetime": (T + timedelta(hours=1)).isoformat()}, headers=admin_headers
    )
    data = response.json()
    assert [d["full_name"] for d in data["drivers"]] == ["Boris Petrov", "Clara Ozola"]
    assert data["total_drivers"] == 3
    assert data["available_drivers"] == 2

    # Re-checking the booking that holds the assignment
    response = await client.get(
        "/v1/admin/drivers/available",
        params={"datetime": T.isoformat(), "booking_id": booking.id}, headers=admin_headers
    )
    assert response.json()["available_drivers"] == 3

    # Outside the 2 hour window
    response = await client.get(
        "/v1/admin/drivers/available",
        params={"datetime": (T + timedelta(hours=2, minutes=1)).isoformat()}, headers=admin_headers
    )
    assert response.json()["available_drivers"] == 3


# --- Assignment ---

@pytest.mark.asyncio
async def test_assign_driver_confirms_and_shows_in_detail(client, admin_headers, admin_profile, drivers, make_booking):
    booking = await make_booking(departure_time=T)

    response = await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver",
        json={"driver_id": drivers[1].id, "notes": "Meet at arrivals"}, headers=admin_headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["booking_id"] == booking.id
    assert data["status"] == "assigned"
    assert data["assigned_by"] == admin_profile.id
    assert data["driver"]["full_name"] == "Boris Petrov"

    response = await client.get(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)
    detail = response.json()
    assert detail["status"] == "confirmed"
    assert detail["assignment"]["driver"]["full_name"] == "Boris Petrov"
    assert detail["assignment"]["notes"] == "Meet at arrivals"


@pytest.mark.asyncio
async def test_reassign_replaces_previous_driver(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    url = f"/v1/admin/bookings/{booking.id}/assign-driver"

    await client.post(url, json={"driver_id": drivers[0].id}, headers=admin_headers)
    response = await client.post(url, json={"driver_id": drivers[1].id}, headers=admin_headers)
    assert response.status_code == 201

    detail = (await client.get(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)).json()
    assert detail["assignment"]["driver_id"] == drivers[1].id

    # The first driver is free again
    response = await client.get(
        "/v1/admin/drivers/available", params={"datetime": T.isoformat()}, headers=admin_headers
    )
    assert drivers[0].id in [d["id"] for d in response.json()["drivers"]]


@pytest.mark.asyncio
async def test_assign_busy_driver_conflicts(client, admin_headers, drivers, make_booking):
    first = await make_booking(departure_time=T)
    second = await make_booking(departure_time=T + timedelta(hours=1, minutes=59))

    response = await client.post(
        f"/v1/admin/bookings/{first.id}/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )
    assert response.status_code == 201

    response = await client.post(
        f"/v1/admin/bookings/{second.id}/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT"

    detail = (await client.get(f"/v1/admin/bookings/{second.id}", headers=admin_headers)).json()
    assert detail["status"] == "pending"
    assert detail["assignment"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
async def test_assign_to_terminal_booking_rejected(client, admin_headers, drivers, make_booking, status):
    booking = await make_booking(status=status)

    response = await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_STATE"


@pytest.mark.asyncio
async def test_assign_missing_booking_or_driver(client, admin_headers, drivers, make_booking):
    response = await client.post(
        "/v1/admin/bookings/9999/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )
    assert response.status_code == 404

    booking = await make_booking()
    response = await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver", json={"driver_id": 9999}, headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unassign_driver(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    url = f"/v1/admin/bookings/{booking.id}/assign-driver"
    await client.post(url, json={"driver_id": drivers[0].id}, headers=admin_headers)

    response = await client.delete(url, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    detail = (await client.get(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)).json()
    assert detail["status"] == "pending"
    assert detail["assignment"] is None

    # Nothing left to remove
    response = await client.delete(url, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Booking had no driver assigned"


# --- Lifecycle ---

@pytest.mark.asyncio
async def test_cancel_releases_driver(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )

    response = await client.post(f"/v1/admin/bookings/{booking.id}/cancel", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.get(
        "/v1/admin/drivers/available", params={"datetime": T.isoformat()}, headers=admin_headers
    )
    assert response.json()["available_drivers"] == 3

    # Cancelling twice is an invalid transition
    response = await client.post(f"/v1/admin/bookings/{booking.id}/cancel", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_STATE"


@pytest.mark.asyncio
async def test_complete_booking(client, admin_headers, make_booking):
    booking = await make_booking(status=BookingStatus.IN_PROGRESS)

    response = await client.post(f"/v1/admin/bookings/{booking.id}/complete", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.post(f"/v1/admin/bookings/{booking.id}/cancel", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_payment_success_confirms_and_notifies(client, admin_headers, make_booking, sms_dispatch):
    booking = await make_booking(status=BookingStatus.PENDING, payment_method=PaymentMethod.CARD)

    response = await client.put(
        f"/v1/admin/bookings/{booking.id}/payment", json={"processor_status": "succeeded"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["payment_status"] == "paid"
    sms_dispatch.assert_called_once()
    assert sms_dispatch.call_args.args[0].booking_id == booking.id

    # Repeated webhook: no second notification
    response = await client.put(
        f"/v1/admin/bookings/{booking.id}/payment", json={"processor_status": "succeeded"}, headers=admin_headers
    )
    assert response.status_code == 200
    sms_dispatch.assert_called_once()


@pytest.mark.asyncio
async def test_payment_success_survives_notification_settings_failure(
    client, admin_headers, make_booking, sms_dispatch, mocker
):
    booking = await make_booking(status=BookingStatus.PENDING, payment_method=PaymentMethod.CARD)
    mocker.patch(
        "transfer_backend.app.api.v1.endpoints.bookings.load_notification_settings",
        side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
    )

    response = await client.put(
        f"/v1/admin/bookings/{booking.id}/payment", json={"processor_status": "succeeded"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    sms_dispatch.assert_not_called()

    detail = await client.get(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)
    assert detail.json()["payment_status"] == "paid"


@pytest.mark.asyncio
async def test_payment_failure_keeps_booking_pending(client, admin_headers, make_booking, sms_dispatch):
    booking = await make_booking(status=BookingStatus.PENDING)

    response = await client.put(
        f"/v1/admin/bookings/{booking.id}/payment", json={"processor_status": "failed"}, headers=admin_headers
    )
    data = response.json()
    assert data["status"] == "pending"
    assert data["payment_status"] == "failed"
    sms_dispatch.assert_not_called()


@pytest.mark.asyncio
async def test_delete_booking(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver", json={"driver_id": drivers[0].id}, headers=admin_headers
    )

    response = await client.delete(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["action"] == "BOOKING_DELETED"

    response = await client.get(f"/v1/admin/bookings/{booking.id}", headers=admin_headers)
    assert response.status_code == 404

    response = await client.get(
        "/v1/admin/drivers/available", params={"datetime": T.isoformat()}, headers=admin_headers
    )
    assert response.json()["available_drivers"] == 3


# --- Audit trail ---

@pytest.mark.asyncio
async def test_audit_trail_records_admin_actions(client, admin_headers, drivers, make_booking):
    booking = await make_booking(departure_time=T)
    await client.post(
        f"/v1/admin/bookings/{booking.id}/assign-driver", json={"driver_id": drivers[2].id}, headers=admin_headers
    )
    await client.put(
        f"/v1/admin/bookings/{booking.id}/payment", json={"processor_status": "refunded"}, headers=admin_headers
    )
    await client.post(f"/v1/admin/bookings/{booking.id}/cancel", headers=admin_headers)

    response = await client.get(f"/v1/admin/bookings/{booking.id}/audit", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [log["action"] for log in data["logs"]] == [
        "BOOKING_CANCELLED", "PAYMENT_STATUS_CHANGED", "DRIVER_ASSIGNED"
    ]
    assert all(log["actor_email"] == "admin@test.com" for log in data["logs"])

    payment = data["logs"][1]["meta_data"]
    assert payment == {"processor_status": "refunded", "from": "pending", "to": "refunded"}
    assert data["logs"][2]["meta_data"]["driver_name"] == "Clara Ozola"


# --- Tariffs ---

@pytest.mark.asyncio
async def test_create_and_update_tariff(client, admin_headers):
    response = await client.post("/v1/admin/vehicles", json={
        "name": "Business", "description": "Mercedes E-Class",
        "base_fare": "30.00", "per_kilometer": "2.10", "max_passengers": 3, "max_luggage": 2
    }, headers=admin_headers)
    assert response.status_code == 201
    tariff_id = response.json()["id"]

    response = await client.patch(
        f"/v1/admin/vehicles/{tariff_id}", json={"per_kilometer": "2.25"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["per_kilometer"]) == Decimal("2.25")
    assert Decimal(data["base_fare"]) == Decimal("30.00")
    assert data["description"] == "Mercedes E-Class"


@pytest.mark.asyncio
async def test_update_missing_tariff(client, admin_headers):
    response = await client.patch("/v1/admin/vehicles/9999", json={"name": "Ghost"}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_tariff_requires_admin(client, customer_headers):
    response = await client.post("/v1/admin/vehicles", json={
        "name": "Business", "base_fare": "30.00", "per_kilometer": "2.10", "max_passengers": 3, "max_luggage": 2
    }, headers=customer_headers)
    assert response.status_code == 403


# --- Notification settings ---

@pytest.mark.asyncio
async def test_notification_settings_defaults(client, admin_headers, admin_profile):
    response = await client.get("/v1/admin/settings/notifications", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {
        "admin_id": admin_profile.id,
        "notification_phone": None,
        "sms_notifications_enabled": False,
    }


@pytest.mark.asyncio
async def test_notification_settings_partial_updates(client, admin_headers):
    url = "/v1/admin/settings/notifications"

    response = await client.put(url, json={
        "notification_phone": "+37129999999", "sms_notifications_enabled": True
    }, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["notification_phone"] == "+37129999999"
    assert response.json()["sms_notifications_enabled"] is True

    # Phone not sent: left unchanged
    response = await client.put(url, json={"sms_notifications_enabled": False}, headers=admin_headers)
    assert response.json()["notification_phone"] == "+37129999999"
    assert response.json()["sms_notifications_enabled"] is False

    response = await client.get(url, headers=admin_headers)
    assert response.json()["notification_phone"] == "+37129999999"
    assert response.json()["sms_notifications_enabled"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("phone", ["29999999", "+0123", "+371 2999 9999"])
async def test_notification_phone_must_be_e164(client, admin_headers, phone):
    response = await client.put(
        "/v1/admin/settings/notifications", json={"notification_phone": phone}, headers=admin_headers
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"
