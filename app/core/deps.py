"""Centralized dependency type aliases for FastAPI routes.

Import all dependencies from this single module:
    from app.core.deps import SessionDep, SettingsDep, UserStoreDep
"""

from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from app.core.settings import Settings, get_settings
from app.db.engine import get_session
from app.db.repository import UserStore
from app.identity.service import IdentityVerifier, get_identity_verifier
from app.notification.service import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from app.payment.service import PaymentProvisioner, get_payment_provisioner

# Database session
SessionDep = Annotated[Session, Depends(get_session)]

# Application settings
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_user_store(session: SessionDep) -> UserStore:
    """Request-scoped store bound to the request's session."""
    return UserStore(session)


UserStoreDep = Annotated[UserStore, Depends(get_user_store)]

# External collaborators (process-wide, cached)
IdentityVerifierDep = Annotated[IdentityVerifier, Depends(get_identity_verifier)]
PaymentProvisionerDep = Annotated[PaymentProvisioner, Depends(get_payment_provisioner)]
NotificationDispatcherDep = Annotated[
    NotificationDispatcher, Depends(get_notification_dispatcher)
]
