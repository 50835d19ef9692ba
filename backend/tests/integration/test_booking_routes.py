"""
Integration tests for booking, quote and tracking routes.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from hellofixo.api.app import app
from hellofixo.api.dependencies import get_booking_service, get_profile_service
from hellofixo.lib.jwt import create_access_token
from hellofixo.models.bookings import Booking, TrackedStatus
from hellofixo.services.booking_service import (
    BookingConflict,
    BookingNotFound,
    BookingOutcome,
    BookingState,
    BookingValidationError,
)
from hellofixo.services.location_service import BookingNotAllowed

FORM = {
    "category_slug": "mobile-repair",
    "problem_ids": "p1, p2",
    "pincode": "411001",
    "user_name": "Asha Patil",
    "mobile": "9876543210",
    "address": "12 FC Road, Shivajinagar",
    "time_slot": "10:00 AM - 12:00 PM",
    "service_date": "2026-10-21",
}


def _auth(phone: str = "919876543210") -> dict:
    return {"Authorization": f"Bearer {create_access_token('user-1', phone=phone)}"}


def _photo() -> dict:
    return {"media": ("screen.jpg", b"\xff\xd8\xff jpeg bytes", "image/jpeg")}


@pytest.fixture
def bookings():
    service = MagicMock()
    service.book = AsyncMock(
        return_value=BookingOutcome(state=BookingState.SUCCEEDED, booking_id="HF-1001", referral_code="ASHA10")
    )
    service.history = AsyncMock(return_value=[])
    service.track = AsyncMock(return_value=[])
    service.cancel = AsyncMock(return_value=None)
    service.accept_quote = AsyncMock(
        return_value={"booking_id": "b-1", "status": "quotation_approved", "final_amount_to_be_paid": 2100.0}
    )
    service.reject_quote = AsyncMock(return_value={"booking_id": "b-1", "status": "cancelled"})
    return service


@pytest.fixture
def profiles():
    service = MagicMock()
    service.is_restricted = AsyncMock(return_value=False)
    return service


@pytest.fixture
def client(bookings, profiles):
    app.dependency_overrides[get_booking_service] = lambda: bookings
    app.dependency_overrides[get_profile_service] = lambda: profiles
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===== POST /bookings =====

@pytest.mark.integration
def test_create_booking_success(client, bookings):
    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 201
    data = response.json()
    assert data["state"] == "succeeded"
    assert data["booking_id"] == "HF-1001"

    request, media, user = bookings.book.await_args.args
    assert request.problem_ids == ["p1", "p2"]
    assert request.service_date.isoformat() == "2026-10-21"
    assert media.filename == "screen.jpg"
    assert media.content_type == "image/jpeg"
    assert user.id == "user-1"
    assert bookings.book.await_args.kwargs["secondary_media"] is None


@pytest.mark.integration
def test_create_booking_requires_auth(client, bookings):
    response = client.post("/bookings", data=FORM, files=_photo())

    assert response.status_code in (401, 403)
    bookings.book.assert_not_awaited()


@pytest.mark.integration
def test_create_booking_restricted_role(client, bookings, profiles):
    profiles.is_restricted.return_value = True

    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 403
    bookings.book.assert_not_awaited()


@pytest.mark.integration
def test_create_booking_unserviceable_location(client, bookings):
    bookings.book.side_effect = BookingNotAllowed("800001", city="Patna", reason="Sorry, we do not serve Patna yet.")

    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "Sorry, we do not serve Patna yet."
    assert data["details"] == {"action": "show_location_dialog", "pincode": "800001", "city": "Patna"}


@pytest.mark.integration
def test_create_booking_invalid_fields(client, bookings):
    bookings.book.side_effect = BookingValidationError({"media": ["Please upload a photo of the issue."]})

    response = client.post("/bookings", data=FORM, headers=_auth())

    assert response.status_code == 422
    assert response.json()["details"]["errors"]["media"] == ["Please upload a photo of the issue."]


@pytest.mark.integration
def test_create_booking_unknown_category(client, bookings):
    bookings.book.side_effect = BookingNotFound("Category 'x' not found")

    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 404


@pytest.mark.integration
def test_create_booking_refused_by_function(client, bookings):
    bookings.book.return_value = BookingOutcome(
        state=BookingState.FAILED, error="Time slot is no longer available", error_status=400
    )

    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 400
    assert response.json()["error"] == "Time slot is no longer available"


@pytest.mark.integration
def test_create_booking_function_unreachable(client, bookings):
    bookings.book.return_value = BookingOutcome(state=BookingState.FAILED, error="bookings: timed out")

    response = client.post("/bookings", data=FORM, files=_photo(), headers=_auth())

    assert response.status_code == 502
    assert response.json()["details"]["service"] == "bookings"


@pytest.mark.integration
def test_create_booking_missing_form_field(client, bookings):
    form = {k: v for k, v in FORM.items() if k != "category_slug"}

    response = client.post("/bookings", data=form, files=_photo(), headers=_auth())

    assert response.status_code == 422
    bookings.book.assert_not_awaited()


# ===== History / tracking / cancel =====

@pytest.mark.integration
def test_booking_history(client, bookings):
    bookings.history.return_value = [
        Booking(
            id="b-1",
            order_id="HF-1001",
            status="pending",
            created_at=datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc),
        )
    ]

    response = client.get("/bookings/history", headers=_auth())

    assert response.status_code == 200
    data = response.json()
    assert data[0]["order_id"] == "HF-1001"
    assert bookings.history.await_args.args[0].phone == "919876543210"


@pytest.mark.integration
def test_track_booking_is_public(client, bookings):
    bookings.track.return_value = [
        TrackedStatus(status="Booking Confirmed", date="Oct 19, 2026 at 3:00 PM"),
        TrackedStatus(status="Technician Assigned", date="Oct 19, 2026 at 4:15 PM", note="Ravi"),
    ]

    response = client.post("/bookings/track", json={"order_id": "HF-1001"})

    assert response.status_code == 200
    assert [s["status"] for s in response.json()] == ["Booking Confirmed", "Technician Assigned"]


@pytest.mark.integration
def test_track_empty_order_id(client, bookings):
    bookings.track.side_effect = BookingValidationError({"order_id": ["Please enter an order ID."]})

    response = client.post("/bookings/track", json={"order_id": ""})

    assert response.status_code == 422


@pytest.mark.integration
def test_track_unknown_order(client, bookings):
    bookings.track.side_effect = BookingNotFound("Order not found")

    response = client.post("/bookings/track", json={"order_id": "HF-0000"})

    assert response.status_code == 404
    assert response.json()["error"] == "Order not found"


@pytest.mark.integration
def test_cancel_booking(client, bookings):
    response = client.post(
        "/bookings/b-1/cancel",
        json={"reason": "other", "other_reason": "Fixed it myself"},
        headers=_auth(),
    )

    assert response.status_code == 200
    assert response.json() == {"booking_id": "b-1", "status": "cancelled"}
    args = bookings.cancel.await_args.args
    assert args[0] == "b-1"
    assert args[2:4] == ("other", "Fixed it myself")


@pytest.mark.integration
def test_cancel_someone_elses_booking(client, bookings):
    bookings.cancel.side_effect = BookingNotFound("Booking with id 'b-9' not found")

    response = client.post("/bookings/b-9/cancel", json={"reason": "Booked by mistake"}, headers=_auth())

    assert response.status_code == 404


@pytest.mark.integration
def test_cancel_completed_booking(client, bookings):
    bookings.cancel.side_effect = BookingConflict("This booking can no longer be cancelled.")

    response = client.post("/bookings/b-1/cancel", json={"reason": "Booked by mistake"}, headers=_auth())

    assert response.status_code == 409
    assert response.json()["error"] == "This booking can no longer be cancelled."


@pytest.mark.integration
def test_cancel_without_reason(client, bookings):
    bookings.cancel.side_effect = BookingValidationError({"reason": ["Please select a reason."]})

    response = client.post("/bookings/b-1/cancel", json={}, headers=_auth())

    assert response.status_code == 422
    assert "reason" in response.json()["details"]["errors"]


# ===== Quotes =====

@pytest.mark.integration
def test_accept_quote(client, bookings):
    response = client.post("/quotes/q-1/accept", headers=_auth())

    assert response.status_code == 200
    assert response.json() == {
        "booking_id": "b-1",
        "status": "quotation_approved",
        "final_amount_to_be_paid": 2100.0,
    }


@pytest.mark.integration
def test_reject_quote(client, bookings):
    response = client.post("/quotes/q-1/reject", headers=_auth())

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


@pytest.mark.integration
def test_quote_not_found(client, bookings):
    bookings.accept_quote.side_effect = BookingNotFound("Quote with id 'q-9' not found")

    response = client.post("/quotes/q-9/accept", headers=_auth())

    assert response.status_code == 404
    assert response.json()["details"]["resource"] == "Quote"


@pytest.mark.integration
@pytest.mark.parametrize("decision", ["accept", "reject"])
def test_quote_already_decided(client, bookings, decision):
    conflict = BookingConflict("This quote is no longer awaiting your decision.")
    bookings.accept_quote.side_effect = conflict
    bookings.reject_quote.side_effect = conflict

    response = client.post(f"/quotes/q-1/{decision}", headers=_auth())

    assert response.status_code == 409
    assert response.json()["error"] == "This quote is no longer awaiting your decision."
