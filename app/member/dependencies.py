"""Member domain dependencies."""

from typing import Annotated

from fastapi import Depends

from app.core.deps import (
    IdentityVerifierDep,
    NotificationDispatcherDep,
    PaymentProvisionerDep,
    SettingsDep,
    UserStoreDep,
)
from app.member.service import LinkingOrchestrator, RegistrationOrchestrator


def get_registration_orchestrator(
    store: UserStoreDep,
    identity: IdentityVerifierDep,
    payments: PaymentProvisionerDep,
    notifications: NotificationDispatcherDep,
    settings: SettingsDep,
) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(
        store=store,
        identity=identity,
        payments=payments,
        notifications=notifications,
        settings=settings,
    )


def get_linking_orchestrator(
    store: UserStoreDep,
    notifications: NotificationDispatcherDep,
    settings: SettingsDep,
) -> LinkingOrchestrator:
    return LinkingOrchestrator(
        store=store, notifications=notifications, settings=settings
    )


RegistrationOrchestratorDep = Annotated[
    RegistrationOrchestrator, Depends(get_registration_orchestrator)
]
LinkingOrchestratorDep = Annotated[
    LinkingOrchestrator, Depends(get_linking_orchestrator)
]
