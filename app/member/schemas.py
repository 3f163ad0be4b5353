"""Member domain schemas.

Request and response schemas for registration and account linking.

The registration survey arrives as a free-form object and is validated by
the orchestrator (not by FastAPI) so that survey problems surface as a
400 ``validation_error`` listing every failing field.
"""

import re
from datetime import date
from typing import Any

from pydantic import EmailStr, Field, field_validator

from app.core.clock import utc_now
from app.core.schemas import CamelModel

MIN_AGE = 13
MAX_AGE = 100
MIN_PHONE_LENGTH = 10
_PHONE_PATTERN = re.compile(r"^[0-9\-+().\s]+$")


class RegistrationSurvey(CamelModel):
    """Onboarding questionnaire submitted with registration."""

    email: EmailStr
    phone: str | None = None
    gender: str | None = None
    birth_date: date

    # Profile
    industry: str = Field(min_length=1, max_length=100)
    job_type: str = Field(min_length=1, max_length=100)
    experience_years: str = Field(min_length=1, max_length=50)

    # Survey
    interest_in_side_job: str = Field(min_length=1, max_length=100)
    side_job_time: str | None = None
    side_job_fields: list[str] = Field(default_factory=list)
    side_job_fields_other: str | None = None
    side_job_purpose: str | None = None
    side_job_challenge: str | None = None
    side_job_challenge_other: str | None = None
    meet_people: list[str] = Field(default_factory=list)
    service_benefit: str = Field(min_length=1, max_length=255)
    service_benefit_other: str | None = None
    service_priority: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone", "gender")
    @classmethod
    def blank_as_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not _PHONE_PATTERN.match(value) or len(value) < MIN_PHONE_LENGTH:
            raise ValueError("Enter a valid phone number")
        return value

    @field_validator("birth_date")
    @classmethod
    def validate_age(cls, value: date) -> date:
        # Age by calendar year, as shown on the registration form.
        age = utc_now().year - value.year
        if age < MIN_AGE or age > MAX_AGE:
            raise ValueError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
        return value


class RegisterRequest(CamelModel):
    id_token: str = Field(min_length=1)
    survey_data: dict[str, Any]


class RegisterResponse(CamelModel):
    payment_customer_id: str


class LinkAccountRequest(CamelModel):
    email: str = Field(min_length=1, max_length=255)
    line_user_id: str = Field(min_length=1, max_length=64)


class LinkAccountResponse(CamelModel):
    user_id: str
