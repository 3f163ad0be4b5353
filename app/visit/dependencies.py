"""Visit domain dependencies."""

from typing import Annotated

from fastapi import Depends

from app.core.deps import NotificationDispatcherDep, SettingsDep, UserStoreDep
from app.visit.service import CheckInWorkflow, MembershipCardService


def get_check_in_workflow(
    store: UserStoreDep,
    notifications: NotificationDispatcherDep,
    settings: SettingsDep,
) -> CheckInWorkflow:
    return CheckInWorkflow(store=store, notifications=notifications, settings=settings)


def get_membership_card_service(
    store: UserStoreDep,
    notifications: NotificationDispatcherDep,
    settings: SettingsDep,
) -> MembershipCardService:
    return MembershipCardService(
        store=store, notifications=notifications, settings=settings
    )


CheckInWorkflowDep = Annotated[CheckInWorkflow, Depends(get_check_in_workflow)]
MembershipCardServiceDep = Annotated[
    MembershipCardService, Depends(get_membership_card_service)
]
