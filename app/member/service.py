"""Member onboarding and account linking.

Registration touches three systems that share no transaction: the identity
provider, the payment provider and the database. Steps are ordered so every
check that can fail without side effects runs first:

    verify token -> validate survey -> email/identity gate
        -> create payment customer -> persist user, profile, survey
        -> best-effort "complete linking" message

Once the payment customer exists there is no automatic rollback. A later
persistence failure is logged with the customer id for out-of-band
reconciliation and reported to the caller as one internal error.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

import anyio
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ConflictError, StorageError, ValidationError
from app.core.settings import Settings
from app.db.repository import UserStore
from app.identity.service import IdentityClaims, IdentityVerifier
from app.member.exceptions import (
    EmailExistsError,
    IdentityAlreadyLinkedError,
    UserNotFoundError,
)
from app.member.models import Survey, User, UserProfile
from app.member.schemas import RegistrationSurvey
from app.notification.messages import complete_linking_message, welcome_message
from app.notification.service import NotificationDispatcher, deliver_best_effort
from app.payment.exceptions import PaymentConflictError
from app.payment.service import PaymentProvisioner, registration_idempotency_key

logger = logging.getLogger(__name__)

REGISTRATION_SOURCE = "membership_registration"


@dataclass(frozen=True)
class RegistrationResult:
    user_id: uuid.UUID
    payment_customer_id: str


@dataclass(frozen=True)
class LinkResult:
    user_id: uuid.UUID
    already_linked: bool = False


def parse_registration_survey(payload: dict[str, Any]) -> RegistrationSurvey:
    """Validate the raw survey payload.

    Raises:
        ValidationError: Listing every failing field
    """
    try:
        return RegistrationSurvey.model_validate(payload)
    except PydanticValidationError as e:
        errors = []
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}" if field else error["msg"])
        raise ValidationError("Invalid registration data", errors=errors) from e


class RegistrationOrchestrator:
    """Turns a verified guest into a member with a payment customer."""

    def __init__(
        self,
        store: UserStore,
        identity: IdentityVerifier,
        payments: PaymentProvisioner,
        notifications: NotificationDispatcher,
        settings: Settings,
    ):
        self._store = store
        self._identity = identity
        self._payments = payments
        self._notifications = notifications
        self._settings = settings

    async def register(
        self, identity_token: str, survey_payload: dict[str, Any]
    ) -> RegistrationResult:
        """Register a new member.

        Raises:
            InvalidTokenError: If the identity token is rejected
            ValidationError: If the survey payload is invalid
            EmailExistsError: If the email is already registered, or another
                registration for it is in flight
            IdentityAlreadyLinkedError: If the identity belongs to another member
            PaymentError: If the payment customer cannot be created
            StorageError: If persisting the member fails
        """
        claims = await self._identity.verify(identity_token)
        survey = parse_registration_survey(survey_payload)

        if self._store.get_user_by_email(survey.email) is not None:
            raise EmailExistsError()
        if self._store.get_user_by_external_id(claims.subject_id) is not None:
            raise IdentityAlreadyLinkedError()

        # Runs to completion even if the caller disconnects.
        with anyio.CancelScope(shield=True):
            try:
                payment_customer_id = await self._payments.create_customer(
                    email=survey.email,
                    name=claims.name,
                    metadata={
                        "line_user_id": claims.subject_id,
                        "source": REGISTRATION_SOURCE,
                    },
                    idempotency_key=registration_idempotency_key(survey.email),
                )
            except PaymentConflictError as e:
                # Another registration for this email holds the key.
                logger.info(
                    "Concurrent registration for the same email",
                    extra={"operation": "register", "error_type": e.error_type},
                )
                raise EmailExistsError() from e
            user = self._persist(claims, survey, payment_customer_id)

        logger.info(
            "Member registered",
            extra={
                "operation": "register",
                "identifiers": {
                    "user_id": str(user.id),
                    "payment_customer_id": payment_customer_id,
                },
            },
        )

        await deliver_best_effort(
            "complete_linking_message",
            lambda: self._notifications.send(
                claims.subject_id,
                complete_linking_message(claims.name, self._settings.liff_linking_url),
            ),
            timeout=self._settings.notification_timeout_seconds,
            user_id=str(user.id),
        )
        return RegistrationResult(user_id=user.id, payment_customer_id=payment_customer_id)

    def _persist(
        self,
        claims: IdentityClaims,
        survey: RegistrationSurvey,
        payment_customer_id: str,
    ) -> User:
        try:
            user = self._store.create_user(
                User(
                    email=survey.email,
                    phone=survey.phone,
                    gender=survey.gender,
                    birth_date=survey.birth_date,
                    external_identity_id=claims.subject_id,
                    payment_customer_id=payment_customer_id,
                )
            )
            self._store.create_profile_and_survey(
                UserProfile(
                    user_id=user.id,
                    industry=survey.industry,
                    job_type=survey.job_type,
                    experience_years=survey.experience_years,
                ),
                Survey(
                    user_id=user.id,
                    interest_in_side_job=survey.interest_in_side_job,
                    side_job_time=survey.side_job_time,
                    side_job_fields=survey.side_job_fields,
                    side_job_fields_other=survey.side_job_fields_other,
                    side_job_purpose=survey.side_job_purpose,
                    side_job_challenge=survey.side_job_challenge,
                    side_job_challenge_other=survey.side_job_challenge_other,
                    meet_people=survey.meet_people,
                    service_benefit=survey.service_benefit,
                    service_benefit_other=survey.service_benefit_other,
                    service_priority=survey.service_priority,
                ),
            )
        except (StorageError, ConflictError) as e:
            if isinstance(e, StorageError):
                e.identifiers.setdefault("payment_customer_id", payment_customer_id)
            logger.error(
                "Registration persistence failed after payment customer creation",
                extra={
                    "operation": "register",
                    "error_type": e.error_type,
                    "identifiers": {
                        "payment_customer_id": payment_customer_id,
                        "email": survey.email,
                    },
                },
            )
            raise
        return user


class LinkingOrchestrator:
    """Binds a messaging identity to an existing member."""

    def __init__(
        self,
        store: UserStore,
        notifications: NotificationDispatcher,
        settings: Settings,
    ):
        self._store = store
        self._notifications = notifications
        self._settings = settings

    async def link_account(self, email: str, external_identity_id: str) -> LinkResult:
        """Link ``external_identity_id`` to the member registered with ``email``.

        Linking the identity the member already holds is a no-op success.

        Raises:
            UserNotFoundError: If no member has this email
            IdentityAlreadyLinkedError: If either side is bound elsewhere
        """
        user = self._store.get_user_by_email(email.strip().lower())
        if user is None:
            raise UserNotFoundError("No member is registered with this email")

        if user.external_identity_id not in (None, external_identity_id):
            raise IdentityAlreadyLinkedError(
                "This account is already linked to a different identity"
            )
        holder = self._store.get_user_by_external_id(external_identity_id)
        if holder is not None and holder.id != user.id:
            raise IdentityAlreadyLinkedError()

        already_linked = user.external_identity_id == external_identity_id
        if not already_linked:
            user = self._store.bind_external_identity(user.id, external_identity_id)
            logger.info(
                "Identity linked",
                extra={"operation": "link_account", "identifiers": {"user_id": str(user.id)}},
            )

        await self._after_link(external_identity_id, user.id)
        return LinkResult(user_id=user.id, already_linked=already_linked)

    async def _after_link(self, external_identity_id: str, user_id: uuid.UUID) -> None:
        timeout = self._settings.notification_timeout_seconds
        menu_id = self._settings.line_rich_menu_id_member
        if menu_id:
            await deliver_best_effort(
                "link_member_menu",
                lambda: self._notifications.set_channel_menu(external_identity_id, menu_id),
                timeout=timeout,
                user_id=str(user_id),
            )
        await deliver_best_effort(
            "welcome_message",
            lambda: self._notifications.send(external_identity_id, welcome_message()),
            timeout=timeout,
            user_id=str(user_id),
        )
