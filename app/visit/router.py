"""Visit domain router.

Check-in, visit survey, visit history and membership card routes. Members
are addressed by their linked messaging identity (``lineUserId``).
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.core.constants import CommonResponses, Routes
from app.visit.dependencies import CheckInWorkflowDep, MembershipCardServiceDep
from app.visit.schemas import (
    CheckInRequest,
    CheckInResponse,
    MembershipCardResponse,
    SubmitVisitSurveyRequest,
    SubmitVisitSurveyResponse,
    VisitHistoryResponse,
    VisitView,
)

router = APIRouter(
    prefix=Routes.VISIT.prefix,
    tags=[Routes.VISIT.tag],
    responses={**CommonResponses.NOT_FOUND, **CommonResponses.INTERNAL_ERROR},
)

LineUserIdQuery = Annotated[
    str, Query(alias="lineUserId", min_length=1, max_length=64)
]


@router.post(
    "/check-in",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**CommonResponses.CONFLICT},
)
async def check_in(data: CheckInRequest, workflow: CheckInWorkflowDep):
    """Check in to a store."""
    result = await workflow.check_in(data.line_user_id, data.store_id)
    return CheckInResponse(
        visit_id=result.visit_id,
        store_name=result.store_name,
        check_in_at=result.check_in_at,
    )


@router.post("/submit-visit-survey", response_model=SubmitVisitSurveyResponse)
async def submit_visit_survey(
    data: SubmitVisitSurveyRequest, workflow: CheckInWorkflowDep
):
    """Attach survey answers to a visit. Re-submission replaces earlier answers."""
    visit = workflow.submit_visit_survey(
        visit_id=data.visit_id,
        visit_type=data.visit_type,
        visit_purpose=data.visit_purpose,
        companion_industries=data.companion_industries,
        companion_job_types=data.companion_job_types,
    )
    return SubmitVisitSurveyResponse(visit_id=visit.id)


@router.get("/membership-card", response_model=MembershipCardResponse)
async def get_membership_card(
    line_user_id: LineUserIdQuery, service: MembershipCardServiceDep
):
    """Membership card: profile, visit stats and companion charts."""
    card = await service.get_membership_card(line_user_id)
    return MembershipCardResponse.from_card(card)


@router.get("/visit-history", response_model=VisitHistoryResponse)
async def get_visit_history(
    line_user_id: LineUserIdQuery, workflow: CheckInWorkflowDep
):
    """Most recent visits first."""
    records = workflow.get_visit_history(line_user_id)
    return VisitHistoryResponse(visits=[VisitView.from_record(r) for r in records])
