"""
Technician (partner) onboarding.

Registration is three linear steps, each validated before moving on:

1. Personal info - full name, mobile, current address
2. Documents     - Aadhar number, Aadhar front/back scans, selfie with Aadhar
3. Experience    - primary skill, total experience

The completed form is sent to the ``create-technician`` function.
"""
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.logging import get_logger, log_with_context
from hellofixo.models.uploads import MediaFile

logger = get_logger(__name__)

TOTAL_STEPS = 3


class PartnerValidationError(ValueError):
    """Step validation failure; ``errors`` maps field name to messages."""

    def __init__(self, step: int, errors: Dict[str, List[str]]):
        self.step = step
        self.errors = errors
        super().__init__(f"Step {step} has invalid fields: {', '.join(sorted(errors))}")


class PersonalInfo(BaseModel):
    full_name: str = Field(..., min_length=2, description="Full name")
    mobile_number: str = Field(..., pattern=r"^[6-9]\d{9}$", description="10-digit Indian mobile number")
    current_address: str = Field(..., min_length=5, description="Current address")

    @field_validator("full_name", "mobile_number", "current_address", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class Documents(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    aadhar_number: str = Field(..., pattern=r"^\d{12}$", description="12-digit Aadhar number")
    aadhar_front: MediaFile
    aadhar_back: MediaFile
    selfie: MediaFile

    @field_validator("aadhar_number", mode="before")
    @classmethod
    def _strip_spaces(cls, value):
        return value.replace(" ", "") if isinstance(value, str) else value

    @field_validator("aadhar_front", "aadhar_back", "selfie")
    @classmethod
    def _not_empty(cls, value: MediaFile):
        if value.is_empty:
            raise ValueError("File is empty")
        return value


class Experience(BaseModel):
    primary_skill: str = Field(..., min_length=1, description="Main repair skill")
    total_experience: str = Field(..., min_length=1, description="Experience bracket, e.g. '3-5 years'")


STEP_SCHEMAS: Dict[int, Type[BaseModel]] = {
    1: PersonalInfo,
    2: Documents,
    3: Experience,
}

# Friendly messages for the fields the form shows
FIELD_MESSAGES = {
    "full_name": "Full name must be at least 2 characters.",
    "mobile_number": "Please enter a valid 10-digit mobile number.",
    "current_address": "Please enter a valid address.",
    "aadhar_number": "Please enter a valid 12-digit Aadhar number.",
    "aadhar_front": "Aadhar front picture is required.",
    "aadhar_back": "Aadhar back picture is required.",
    "selfie": "Selfie with Aadhar is required.",
    "primary_skill": "Please select your primary skill.",
    "total_experience": "Please select your total experience.",
}


def _field_errors(error: ValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for item in error.errors():
        name = str(item["loc"][0]) if item["loc"] else "_form"
        message = FIELD_MESSAGES.get(name, item["msg"])
        if message not in errors.get(name, []):
            errors.setdefault(name, []).append(message)
    return errors


class PartnerRegistration:
    """
    Multi-step registration form.

    ``next`` validates the current step's data and advances; ``back`` returns
    to the previous step without losing what was entered.
    """

    def __init__(self):
        self.step = 1
        self.data: Dict[int, BaseModel] = {}

    @property
    def progress(self) -> float:
        return self.step / TOTAL_STEPS * 100

    @property
    def is_complete(self) -> bool:
        return len(self.data) == TOTAL_STEPS

    def validate_step(self, step: int, values: Dict[str, Any]) -> BaseModel:
        """
        Validate one step's values.

        Raises:
            PartnerValidationError: With per-field messages
        """
        try:
            return STEP_SCHEMAS[step].model_validate(values)
        except ValidationError as e:
            raise PartnerValidationError(step, _field_errors(e)) from e

    def next(self, values: Dict[str, Any]) -> int:
        """Validate and store the current step, then advance. Returns the new step."""
        self.data[self.step] = self.validate_step(self.step, values)
        if self.step < TOTAL_STEPS:
            self.step += 1
        return self.step

    def back(self) -> int:
        if self.step > 1:
            self.step -= 1
        return self.step

    def complete(self, personal: Dict[str, Any], documents: Dict[str, Any], experience: Dict[str, Any]) -> None:
        """Run all three steps in order (used when the whole form arrives in one request)."""
        errors: Dict[str, List[str]] = {}
        first_failed: Optional[int] = None
        for step, values in ((1, personal), (2, documents), (3, experience)):
            try:
                self.data[step] = self.validate_step(step, values)
            except PartnerValidationError as e:
                errors.update(e.errors)
                first_failed = first_failed or step
        if errors:
            self.step = first_failed
            raise PartnerValidationError(first_failed, errors)
        self.step = TOTAL_STEPS

    def form_fields(self) -> Dict[str, str]:
        personal: PersonalInfo = self.data[1]
        documents: Documents = self.data[2]
        experience: Experience = self.data[3]
        return {
            "fullName": personal.full_name,
            "mobileNumber": personal.mobile_number,
            "currentAddress": personal.current_address,
            "aadharNumber": documents.aadhar_number,
            "primarySkill": experience.primary_skill,
            "totalExperience": experience.total_experience,
        }

    def form_files(self) -> Dict[str, tuple]:
        documents: Documents = self.data[2]
        return {
            "aadharFront": documents.aadhar_front.as_part(),
            "aadharBack": documents.aadhar_back.as_part(),
            "selfie": documents.selfie.as_part(),
        }


class PartnerService:
    """Submits completed registrations."""

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway

    async def submit(self, registration: PartnerRegistration) -> Any:
        """
        Send the registration to ``create-technician``.

        Raises:
            ValueError: If not every step has been completed
            SupabaseError: With the function's message when it refuses
            UpstreamError: When the function can't be reached
        """
        if not registration.is_complete:
            raise ValueError("Registration is incomplete")
        result = await self.gateway.invoke(
            "create-technician",
            data=registration.form_fields(),
            files=registration.form_files(),
        )
        log_with_context(logger, "info", "Partner registration submitted", primary_skill=registration.data[3].primary_skill)
        return result
