"""
Integration tests for partner (technician) registration.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from hellofixo.api.app import app
from hellofixo.api.dependencies import get_partner_service
from hellofixo.clients.http import UpstreamError
from hellofixo.clients.supabase import SupabaseError

FORM = {
    "full_name": "Ravi Kumar",
    "mobile_number": "9876543210",
    "current_address": "22 MG Road, Pune",
    "aadhar_number": "1234 5678 9012",
    "primary_skill": "Mobile Repair",
    "total_experience": "3-5 years",
}


def _documents() -> dict:
    return {
        "aadhar_front": ("front.jpg", b"front", "image/jpeg"),
        "aadhar_back": ("back.jpg", b"back", "image/jpeg"),
        "selfie": ("selfie.jpg", b"selfie", "image/jpeg"),
    }


@pytest.fixture
def partners():
    service = MagicMock()
    service.submit = AsyncMock(return_value={"success": True})
    return service


@pytest.fixture
def client(partners):
    app.dependency_overrides[get_partner_service] = lambda: partners
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.integration
def test_register_partner(client, partners):
    response = client.post("/partners/register", data=FORM, files=_documents())

    assert response.status_code == 201
    assert response.json()["status"] == "submitted"

    registration = partners.submit.await_args.args[0]
    assert registration.is_complete
    fields = registration.form_fields()
    assert fields["aadharNumber"] == "123456789012"
    assert fields["fullName"] == "Ravi Kumar"
    assert registration.form_files()["selfie"][0] == "selfie.jpg"


@pytest.mark.integration
def test_register_partner_invalid_mobile_reports_first_step(client, partners):
    form = dict(FORM, mobile_number="12345")

    response = client.post("/partners/register", data=form, files=_documents())

    assert response.status_code == 422
    details = response.json()["details"]
    assert details["step"] == 1
    assert details["errors"]["mobile_number"] == ["Please enter a valid 10-digit mobile number."]
    partners.submit.assert_not_awaited()


@pytest.mark.integration
def test_register_partner_missing_documents(client, partners):
    files = _documents()
    del files["selfie"]

    response = client.post("/partners/register", data=FORM, files=files)

    assert response.status_code == 422
    details = response.json()["details"]
    assert details["step"] == 2
    assert "selfie" in details["errors"]


@pytest.mark.integration
def test_register_partner_collects_errors_from_all_steps(client):
    form = dict(FORM, full_name="R", primary_skill="")

    response = client.post("/partners/register", data=form, files=_documents())

    assert response.status_code == 422
    details = response.json()["details"]
    assert details["step"] == 1
    assert set(details["errors"]) == {"full_name", "primary_skill"}


@pytest.mark.integration
def test_register_partner_refused(client, partners):
    partners.submit.side_effect = SupabaseError("Mobile number already registered", status_code=409)

    response = client.post("/partners/register", data=FORM, files=_documents())

    assert response.status_code == 400
    assert response.json()["error"] == "Mobile number already registered"


@pytest.mark.integration
def test_register_partner_function_unreachable(client, partners):
    partners.submit.side_effect = UpstreamError("create-technician", "connection refused")

    response = client.post("/partners/register", data=FORM, files=_documents())

    assert response.status_code == 502
    assert response.json()["details"]["service"] == "create-technician"
