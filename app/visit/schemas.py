"""Visit domain schemas.

Request and response schemas for check-in, visit surveys, visit history
and the membership card. Timestamps are serialized as ISO 8601 UTC with a
Z suffix (e.g. 2026-01-19T12:34:56Z).
"""

import uuid
from datetime import datetime

from pydantic import Field, field_serializer

from app.core.clock import isoformat_z
from app.core.schemas import CamelModel
from app.visit.analytics import MembershipCard
from app.visit.models import VisitRecord, VisitStatus, VisitType


class CheckInRequest(CamelModel):
    line_user_id: str = Field(min_length=1, max_length=64)
    store_id: str = Field(min_length=1, max_length=64)


class CheckInResponse(CamelModel):
    visit_id: uuid.UUID
    store_name: str
    check_in_at: datetime

    @field_serializer("check_in_at")
    def serialize_check_in_at(self, value: datetime) -> str:
        return isoformat_z(value)


class SubmitVisitSurveyRequest(CamelModel):
    visit_id: uuid.UUID
    visit_type: VisitType
    visit_purpose: str | None = Field(default=None, max_length=255)
    companion_industries: list[str] = Field(default_factory=list)
    companion_job_types: list[str] = Field(default_factory=list)


class SubmitVisitSurveyResponse(CamelModel):
    visit_id: uuid.UUID


class VisitSurveyView(CamelModel):
    visit_type: VisitType
    visit_purpose: str | None
    companion_industries: list[str]
    companion_job_types: list[str]


class VisitView(CamelModel):
    """One visit in the history list.

    ``survey`` is null while the visit is only checked in.
    """

    id: uuid.UUID
    store_id: str
    store_name: str
    check_in_at: datetime
    state: VisitStatus
    survey: VisitSurveyView | None = None

    @field_serializer("check_in_at")
    def serialize_check_in_at(self, value: datetime) -> str:
        return isoformat_z(value)

    @classmethod
    def from_record(cls, record: VisitRecord) -> "VisitView":
        survey = None
        if record.survey is not None:
            survey = VisitSurveyView(
                visit_type=record.survey.visit_type,
                visit_purpose=record.survey.visit_purpose,
                companion_industries=list(record.survey.companion_industries),
                companion_job_types=list(record.survey.companion_job_types),
            )
        return cls(
            id=record.id,
            store_id=record.store_id,
            store_name=record.store_name,
            check_in_at=record.check_in_at,
            state=record.status,
            survey=survey,
        )


class VisitHistoryResponse(CamelModel):
    visits: list[VisitView]


class ProfileView(CamelModel):
    name: str
    avatar_url: str


class RecentVisitView(CamelModel):
    date: datetime
    store_name: str

    @field_serializer("date")
    def serialize_date(self, value: datetime) -> str:
        return isoformat_z(value)


class StatsView(CamelModel):
    total_visits: int
    favorite_store: str | None
    favorite_store_name: str | None
    visits_by_store: dict[str, int]
    recent_visits: list[RecentVisitView]


class ChartsView(CamelModel):
    companion_industry: dict[str, int]
    companion_job_type: dict[str, int]
    visit_purpose: dict[str, int]


class MembershipCardResponse(CamelModel):
    profile: ProfileView
    stats: StatsView
    charts: ChartsView

    @classmethod
    def from_card(cls, card: MembershipCard) -> "MembershipCardResponse":
        return cls(
            profile=ProfileView(
                name=card.profile.name, avatar_url=card.profile.avatar_url
            ),
            stats=StatsView(
                total_visits=card.stats.total_visits,
                favorite_store=card.stats.favorite_store_id,
                favorite_store_name=card.stats.favorite_store_name,
                visits_by_store=card.stats.visits_by_store,
                recent_visits=[
                    RecentVisitView(date=v.date, store_name=v.store_name)
                    for v in card.stats.recent_visits
                ],
            ),
            charts=ChartsView(
                companion_industry=card.charts.companion_industry,
                companion_job_type=card.charts.companion_job_type,
                visit_purpose=card.charts.visit_purpose,
            ),
        )
