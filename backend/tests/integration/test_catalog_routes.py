"""
Integration tests for catalog and estimate routes.

Services are replaced through dependency overrides; pricing runs for real.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from hellofixo.api.app import app
from hellofixo.api.dependencies import get_booking_service, get_catalog_service, get_location_service
from hellofixo.lib.jwt import create_access_token
from hellofixo.models.catalog import Problem, ServiceCategory
from hellofixo.models.location import Location, ServiceabilityResult
from hellofixo.services.booking_service import BookingService
from hellofixo.services.referral_service import ReferralResult


def _category() -> ServiceCategory:
    return ServiceCategory(
        id="cat-1",
        slug="mobile-repair",
        name="Mobile Repair",
        base_inspection_fee=150,
        problems=[
            Problem(id="p1", name="Screen broken", estimated_price=1500, base_min_fee=1200),
            Problem(id="p2", name="Battery drain", estimated_price=800, base_min_fee=600),
            Problem(id="p3", name="Charging port", estimated_price=500, base_min_fee=400),
            Problem(id="p4", name="Speaker issue", estimated_price=400, base_min_fee=300),
            Problem(id="p5", name="Other", estimated_price=0),
        ],
    )


def _pune() -> Location:
    return Location(
        pincode="411001",
        city="Pune",
        inspection_multiplier=1.2,
        repair_multiplier=1.1,
        is_serviceable=True,
    )


@pytest.fixture
def catalog():
    service = MagicMock()
    service.list_categories = AsyncMock(return_value=[_category()])
    service.get_category = AsyncMock(side_effect=lambda slug: _category() if slug == "mobile-repair" else None)
    return service


@pytest.fixture
def locations():
    service = MagicMock()
    service.resolve_pincode = AsyncMock(
        return_value=ServiceabilityResult(pincode="411001", is_serviceable=True, district="Pune", location=_pune())
    )
    service.refresh = AsyncMock(side_effect=lambda location: location)
    return service


@pytest.fixture
def referrals():
    service = MagicMock()
    service.verify = AsyncMock(
        return_value=ReferralResult(code="FRIEND50", status="success", discount=50, message="Referral code applied")
    )
    return service


@pytest.fixture
def wallet():
    service = MagicMock()
    service.get_balance = AsyncMock(return_value=100.0)
    return service


@pytest.fixture
def client(catalog, locations, referrals, wallet):
    bookings = BookingService(MagicMock(), catalog, locations, referrals, wallet)
    app.dependency_overrides[get_catalog_service] = lambda: catalog
    app.dependency_overrides[get_location_service] = lambda: locations
    app.dependency_overrides[get_booking_service] = lambda: bookings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.integration
def test_list_categories(client):
    response = client.get("/categories")

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["slug"] == "mobile-repair"


@pytest.mark.integration
def test_get_category_shows_three_problems_and_other(client):
    response = client.get("/categories/mobile-repair")

    assert response.status_code == 200
    names = [p["name"] for p in response.json()["problems"]]
    assert names == ["Screen broken", "Battery drain", "Charging port", "Other"]


@pytest.mark.integration
def test_get_unknown_category_returns_404(client):
    response = client.get("/categories/time-machine-repair")

    assert response.status_code == 404
    assert response.json()["details"]["resource"] == "Category"


@pytest.mark.integration
def test_estimate_applies_city_multiplier_and_gst(client):
    response = client.post(
        "/categories/mobile-repair/estimate",
        json={"problem_ids": ["p1"], "pincode": "411001"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["estimate"]["inspection_fee"] == 180
    assert data["estimate"]["gst_amount"] == 7
    assert data["estimate"]["grand_total"] == 187
    assert data["estimate"]["final_payable"] == 187
    assert data["estimate"]["problems"][0]["estimated_min"] == 1200
    assert data["estimate"]["problems"][0]["estimated_max"] == 1800
    assert data["location"]["city"] == "Pune"
    assert data["referral"] is None


@pytest.mark.integration
def test_estimate_with_referral_and_wallet(client, referrals, wallet):
    token = create_access_token("user-1", phone="919876543210")

    response = client.post(
        "/categories/mobile-repair/estimate",
        json={"problem_ids": ["p1"], "pincode": "411001", "referral_code": "FRIEND50", "use_wallet": True},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["estimate"]["discount"] == 50
    assert data["estimate"]["wallet_deduction"] == 100
    assert data["estimate"]["final_payable"] == 37
    assert data["referral"]["status"] == "success"
    # Mobile falls back to the token's phone claim
    assert referrals.verify.await_args.args[1] == "919876543210"
    wallet.get_balance.assert_awaited_once_with("user-1")


@pytest.mark.integration
def test_estimate_wallet_ignored_for_guests(client, wallet):
    response = client.post(
        "/categories/mobile-repair/estimate",
        json={"pincode": "411001", "use_wallet": True},
    )

    assert response.status_code == 200
    assert response.json()["estimate"]["wallet_deduction"] == 0
    wallet.get_balance.assert_not_awaited()


@pytest.mark.integration
def test_estimate_unserviceable_pincode_asks_for_location(client, locations):
    locations.resolve_pincode.return_value = ServiceabilityResult(
        pincode="800001",
        is_serviceable=False,
        district="Patna",
        error="Sorry, we do not serve Patna yet.",
    )

    response = client.post(
        "/categories/mobile-repair/estimate",
        json={"problem_ids": ["p1"], "pincode": "800001"},
    )

    assert response.status_code == 409
    data = response.json()
    assert data["details"]["action"] == "show_location_dialog"
    assert data["details"]["pincode"] == "800001"


@pytest.mark.integration
def test_estimate_without_pincode_uses_default_location(client, locations):
    response = client.post("/categories/mobile-repair/estimate", json={"problem_ids": ["p1"]})

    assert response.status_code == 200
    locations.refresh.assert_awaited_once()
    locations.resolve_pincode.assert_not_awaited()
    assert response.json()["location"]["is_serviceable"] is True


@pytest.mark.integration
def test_estimate_default_location_no_longer_served(client, locations):
    locations.refresh = AsyncMock(
        side_effect=lambda location: location.model_copy(update={"is_serviceable": False})
    )

    response = client.post("/categories/mobile-repair/estimate", json={})

    assert response.status_code == 409
    assert response.json()["details"]["action"] == "show_location_dialog"


@pytest.mark.integration
def test_estimate_unknown_category_returns_404(client):
    response = client.post("/categories/nope/estimate", json={"pincode": "411001"})

    assert response.status_code == 404
