"""
Integration tests for wallet, profile, address and referral routes.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from hellofixo.api.app import app
from hellofixo.api.dependencies import (
    get_booking_service,
    get_profile_service,
    get_referral_service,
    get_wallet_service,
)
from hellofixo.lib.jwt import create_access_token
from hellofixo.models.users import SavedAddress, UserProfile, WalletSummary, WalletTransaction
from hellofixo.services.booking_service import BookingValidationError
from hellofixo.services.referral_service import ReferralResult


def _auth() -> dict:
    token = create_access_token("user-1", phone="919876543210", email="asha@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def wallet():
    credit = WalletTransaction(
        type="credit",
        source="referral",
        note="Referral bonus",
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        amount=50,
    )
    service = MagicMock()
    service.get_summary = AsyncMock(
        return_value=WalletSummary(
            balance=50,
            referral_code="ASHA10",
            transactions=[credit],
            recent_transaction=credit,
        )
    )
    return service


@pytest.fixture
def profiles():
    service = MagicMock()
    service.get_profile = AsyncMock(
        return_value=UserProfile(id="user-1", full_name="Asha Patil", email="asha@example.com", role="customer")
    )
    service.update_profile = AsyncMock(
        return_value=UserProfile(id="user-1", full_name="Asha P", email="asha@example.com")
    )
    return service


@pytest.fixture
def bookings():
    service = MagicMock()
    service.saved_addresses = AsyncMock(
        return_value=[SavedAddress(id="a-1", full_address="12 FC Road, Pune", is_default=True)]
    )
    service.save_address = AsyncMock(
        return_value=SavedAddress(id="a-2", full_address="Flat 4, Baner, Pune", is_default=False)
    )
    return service


@pytest.fixture
def referrals():
    service = MagicMock()
    service.verify = AsyncMock(
        return_value=ReferralResult(code="FRIEND50", status="success", discount=50, message="Referral code applied")
    )
    return service


@pytest.fixture
def client(wallet, profiles, bookings, referrals):
    app.dependency_overrides[get_wallet_service] = lambda: wallet
    app.dependency_overrides[get_profile_service] = lambda: profiles
    app.dependency_overrides[get_booking_service] = lambda: bookings
    app.dependency_overrides[get_referral_service] = lambda: referrals
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===== Wallet =====

@pytest.mark.integration
def test_wallet_summary(client, wallet):
    response = client.get("/wallet", headers=_auth())

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == 50
    assert data["referral_code"] == "ASHA10"
    assert data["recent_transaction"]["type"] == "credit"
    wallet.get_summary.assert_awaited_once_with("user-1")


@pytest.mark.integration
def test_wallet_requires_auth(client):
    response = client.get("/wallet")

    assert response.status_code in (401, 403)


# ===== Profile =====

@pytest.mark.integration
def test_get_profile(client):
    response = client.get("/profile", headers=_auth())

    assert response.status_code == 200
    assert response.json()["full_name"] == "Asha Patil"


@pytest.mark.integration
def test_get_missing_profile(client, profiles):
    profiles.get_profile.return_value = None

    response = client.get("/profile", headers=_auth())

    assert response.status_code == 404


@pytest.mark.integration
def test_update_profile(client, profiles):
    response = client.patch("/profile", json={"full_name": "Asha P"}, headers=_auth())

    assert response.status_code == 200
    assert response.json()["full_name"] == "Asha P"
    profiles.update_profile.assert_awaited_once_with("user-1", full_name="Asha P", email=None)


@pytest.mark.integration
def test_update_profile_rejects_bad_email(client, profiles):
    response = client.patch("/profile", json={"email": "not-an-email"}, headers=_auth())

    assert response.status_code == 422
    profiles.update_profile.assert_not_awaited()


# ===== Addresses =====

@pytest.mark.integration
def test_list_addresses(client):
    response = client.get("/profile/addresses", headers=_auth())

    assert response.status_code == 200
    assert response.json()[0]["is_default"] is True


@pytest.mark.integration
def test_save_address(client, bookings):
    response = client.post(
        "/profile/addresses",
        json={"full_address": "Flat 4, Baner, Pune"},
        headers=_auth(),
    )

    assert response.status_code == 201
    assert response.json()["id"] == "a-2"
    args = bookings.save_address.await_args.args
    assert args[1:] == ("Flat 4, Baner, Pune", False)


@pytest.mark.integration
def test_save_short_address(client, bookings):
    bookings.save_address.side_effect = BookingValidationError({"full_address": ["Please enter a valid address."]})

    response = client.post("/profile/addresses", json={"full_address": "abc"}, headers=_auth())

    assert response.status_code == 422
    assert "full_address" in response.json()["details"]["errors"]


# ===== Referrals =====

@pytest.mark.integration
def test_verify_referral_as_guest(client, referrals):
    response = client.post("/referrals/verify", json={"code": "FRIEND50", "mobile_number": "9123456780"})

    assert response.status_code == 200
    assert response.json()["discount"] == 50
    referrals.verify.assert_awaited_once_with("FRIEND50", "9123456780", "en")


@pytest.mark.integration
def test_verify_referral_uses_token_phone(client, referrals):
    response = client.post("/referrals/verify", json={"code": "FRIEND50"}, headers=_auth())

    assert response.status_code == 200
    referrals.verify.assert_awaited_once_with("FRIEND50", "919876543210", "en")


@pytest.mark.integration
def test_rejected_referral_still_200(client, referrals):
    referrals.verify.return_value = ReferralResult(
        code="OWN10", status="error", discount=0, message="You cannot use your own referral code"
    )

    response = client.post("/referrals/verify", json={"code": "OWN10"}, headers=_auth())

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["discount"] == 0
