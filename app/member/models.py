"""Member domain models.

SQLModel table definitions for User, UserProfile and Survey.

Profile and survey rows are written once at registration and never updated.
"""

import uuid
from datetime import date

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from app.core.mixins import CreatedAtMixin, TimestampMixin
from app.db.types import string_list_column


class User(TimestampMixin, SQLModel, table=True):
    """Member account.

    Note: external_identity_id is the messaging-platform user id (LINE
    ``sub``). It is set once and must never be moved to another account;
    the unique index is the authority for that.
    """

    __tablename__: str = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: EmailStr = Field(index=True, unique=True, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    gender: str | None = Field(default=None, max_length=32)
    birth_date: date
    external_identity_id: str | None = Field(
        default=None, index=True, unique=True, max_length=64
    )
    payment_customer_id: str | None = Field(default=None, index=True, max_length=255)


class UserProfile(TimestampMixin, SQLModel, table=True):
    __tablename__: str = "user_profiles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="users.id", unique=True, index=True, ondelete="CASCADE"
    )
    industry: str = Field(max_length=100)
    job_type: str = Field(max_length=100)
    experience_years: str = Field(max_length=50)


class Survey(CreatedAtMixin, SQLModel, table=True):
    """Onboarding questionnaire answers (side-job interest and meeting preferences)."""

    __tablename__: str = "surveys"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="users.id", unique=True, index=True, ondelete="CASCADE"
    )
    interest_in_side_job: str = Field(max_length=100)
    side_job_time: str | None = Field(default=None, max_length=100)
    side_job_fields: list[str] = Field(
        default_factory=list, sa_column=string_list_column()
    )
    side_job_fields_other: str | None = Field(default=None, max_length=255)
    side_job_purpose: str | None = Field(default=None, max_length=255)
    side_job_challenge: str | None = Field(default=None, max_length=255)
    side_job_challenge_other: str | None = Field(default=None, max_length=255)
    meet_people: list[str] = Field(default_factory=list, sa_column=string_list_column())
    service_benefit: str = Field(max_length=255)
    service_benefit_other: str | None = Field(default=None, max_length=255)
    service_priority: str = Field(max_length=255)
