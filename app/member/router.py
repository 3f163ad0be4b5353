"""Member domain router.

Thin HTTP handlers for registration and account linking. Business rules
live in the orchestrators.
"""

from fastapi import APIRouter, status

from app.core.constants import CommonResponses, Routes
from app.member.dependencies import LinkingOrchestratorDep, RegistrationOrchestratorDep
from app.member.schemas import (
    LinkAccountRequest,
    LinkAccountResponse,
    RegisterRequest,
    RegisterResponse,
)

router = APIRouter(
    prefix=Routes.MEMBER.prefix,
    tags=[Routes.MEMBER.tag],
    responses={**CommonResponses.BAD_REQUEST, **CommonResponses.INTERNAL_ERROR},
)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**CommonResponses.UNAUTHORIZED, **CommonResponses.CONFLICT},
)
async def register(data: RegisterRequest, orchestrator: RegistrationOrchestratorDep):
    """Register a new member from an identity token and the onboarding survey."""
    result = await orchestrator.register(data.id_token, data.survey_data)
    return RegisterResponse(payment_customer_id=result.payment_customer_id)


@router.post(
    "/link-line-account",
    response_model=LinkAccountResponse,
    responses={**CommonResponses.NOT_FOUND, **CommonResponses.CONFLICT},
)
async def link_line_account(
    data: LinkAccountRequest, orchestrator: LinkingOrchestratorDep
):
    """Link a messaging identity to the member registered with the email."""
    result = await orchestrator.link_account(data.email, data.line_user_id)
    return LinkAccountResponse(user_id=str(result.user_id))
