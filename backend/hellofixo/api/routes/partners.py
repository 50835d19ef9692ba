"""
Partner (technician) onboarding API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel

from hellofixo.api.dependencies import get_partner_service, read_upload
from hellofixo.api.middleware.error_handler import ValidationException
from hellofixo.services.partner_service import PartnerRegistration, PartnerService, PartnerValidationError


class PartnerRegistrationResponse(BaseModel):
    status: str = "submitted"
    message: str = "Registration submitted. Our team will verify your documents and contact you."


router = APIRouter(prefix="/partners", tags=["partners"])


@router.post("/register", response_model=PartnerRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_partner(
    full_name: str = Form(""),
    mobile_number: str = Form(""),
    current_address: str = Form(""),
    aadhar_number: str = Form(""),
    primary_skill: str = Form(""),
    total_experience: str = Form(""),
    aadhar_front: Optional[UploadFile] = File(None),
    aadhar_back: Optional[UploadFile] = File(None),
    selfie: Optional[UploadFile] = File(None),
    partners: PartnerService = Depends(get_partner_service),
) -> PartnerRegistrationResponse:
    """
    Register as a technician.

    All three steps arrive in one request and are validated in order;
    errors name the first failing step.

    Raises:
        422: Invalid fields, with per-field messages and the step number
        400: The registration function refused the application
        502: The registration function could not be reached
    """
    registration = PartnerRegistration()
    try:
        registration.complete(
            personal={
                "full_name": full_name,
                "mobile_number": mobile_number,
                "current_address": current_address,
            },
            documents={
                "aadhar_number": aadhar_number,
                "aadhar_front": await read_upload(aadhar_front),
                "aadhar_back": await read_upload(aadhar_back),
                "selfie": await read_upload(selfie),
            },
            experience={
                "primary_skill": primary_skill,
                "total_experience": total_experience,
            },
        )
    except PartnerValidationError as e:
        exc = ValidationException(str(e), errors=e.errors)
        exc.details["step"] = e.step
        raise exc

    await partners.submit(registration)
    return PartnerRegistrationResponse()
