"""Visit domain models.

A visit is a small state machine:

    (none) --check_in--> checked_in --submit_survey--> surveyed
                                                         |  ^
                                                         +--+  (re-submission overwrites)

The survey columns are only meaningful in the ``surveyed`` state. The
``ck_visits_status_visit_type`` constraint keeps the table from holding a
half-written survey (companion data without a visit type).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, SQLModel

from app.core.clock import as_utc, utc_now
from app.core.mixins import CreatedAtMixin
from app.db.types import string_list_column


class VisitStatus(str, Enum):
    checked_in = "checked_in"
    surveyed = "surveyed"


class VisitType(str, Enum):
    single = "single"
    group = "group"


def _clean_labels(labels: list[str] | None) -> tuple[str, ...]:
    """Trimmed labels, blanks dropped."""
    return tuple(label.strip() for label in labels or () if label and label.strip())


@dataclass(frozen=True)
class VisitSurvey:
    """Answers collected after a check-in.

    Build with ``VisitSurvey.create`` so a single visit never carries
    companion attributes.
    """

    visit_type: VisitType
    visit_purpose: str | None = None
    companion_industries: tuple[str, ...] = field(default_factory=tuple)
    companion_job_types: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        visit_type: VisitType,
        visit_purpose: str | None,
        companion_industries: list[str] | None,
        companion_job_types: list[str] | None,
    ) -> "VisitSurvey":
        if visit_type is VisitType.single:
            companion_industries = []
            companion_job_types = []
        purpose = visit_purpose.strip() if visit_purpose else None
        return cls(
            visit_type=visit_type,
            visit_purpose=purpose or None,
            companion_industries=_clean_labels(companion_industries),
            companion_job_types=_clean_labels(companion_job_types),
        )


class Visit(CreatedAtMixin, SQLModel, table=True):
    __tablename__: str = "visits"
    __table_args__ = (
        CheckConstraint(
            "(status = 'checked_in' AND visit_type IS NULL)"
            " OR (status = 'surveyed' AND visit_type IS NOT NULL)",
            name="ck_visits_status_visit_type",
        ),
        Index("ix_visits_user_store_check_in", "user_id", "store_id", "check_in_at"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    store_id: str = Field(foreign_key="stores.id", index=True, max_length=64)
    check_in_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True)
    )
    status: VisitStatus = Field(default=VisitStatus.checked_in, max_length=20)
    visit_type: VisitType | None = Field(default=None, max_length=10)
    visit_purpose: str | None = Field(default=None, max_length=255)
    companion_industries: list[str] = Field(
        default_factory=list, sa_column=string_list_column()
    )
    companion_job_types: list[str] = Field(
        default_factory=list, sa_column=string_list_column()
    )

    @property
    def survey(self) -> VisitSurvey | None:
        """Survey answers, or None while the visit is only checked in."""
        if self.status != VisitStatus.surveyed or self.visit_type is None:
            return None
        return VisitSurvey(
            visit_type=VisitType(self.visit_type),
            visit_purpose=self.visit_purpose,
            companion_industries=tuple(self.companion_industries or ()),
            companion_job_types=tuple(self.companion_job_types or ()),
        )

    def record_survey(self, survey: VisitSurvey) -> None:
        """Move to ``surveyed``, replacing any earlier answers."""
        self.status = VisitStatus.surveyed
        self.visit_type = survey.visit_type
        self.visit_purpose = survey.visit_purpose
        self.companion_industries = list(survey.companion_industries)
        self.companion_job_types = list(survey.companion_job_types)


@dataclass(frozen=True)
class VisitRecord:
    """Read model for a visit joined with its store name."""

    id: uuid.UUID
    store_id: str
    store_name: str
    check_in_at: datetime
    status: VisitStatus
    survey: VisitSurvey | None = None

    @classmethod
    def from_visit(cls, visit: Visit, store_name: str) -> "VisitRecord":
        return cls(
            id=visit.id,
            store_id=visit.store_id,
            store_name=store_name,
            check_in_at=as_utc(visit.check_in_at),
            status=VisitStatus(visit.status),
            survey=visit.survey,
        )
