"""Visit workflows: check-in, visit survey, history and membership card."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from app.core.clock import Clock, utc_now
from app.core.settings import Settings
from app.db.repository import UserStore
from app.member.exceptions import UserNotFoundError
from app.member.models import User
from app.notification.messages import check_in_message
from app.notification.service import NotificationDispatcher, deliver_best_effort
from app.store.exceptions import StoreNotFoundError
from app.visit.analytics import AnalyticsAggregator, MembershipCard, MembershipProfile
from app.visit.exceptions import DuplicateCheckInError, VisitNotFoundError
from app.visit.models import Visit, VisitRecord, VisitSurvey, VisitType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    visit_id: uuid.UUID
    store_name: str
    check_in_at: datetime


def resolve_member(store: UserStore, external_identity_id: str) -> User:
    """Member bound to the messaging identity, or UserNotFoundError."""
    user = store.get_user_by_external_id(external_identity_id)
    if user is None:
        raise UserNotFoundError("Member not found. Complete account linking first.")
    return user


class CheckInWorkflow:
    """Visit state machine: (none) -> checked_in -> surveyed.

    A survey may be re-submitted; the latest answers replace earlier ones.
    """

    def __init__(
        self,
        store: UserStore,
        notifications: NotificationDispatcher,
        settings: Settings,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._notifications = notifications
        self._settings = settings
        self._clock = clock

    async def check_in(self, external_identity_id: str, store_id: str) -> CheckInResult:
        """Record a visit.

        Raises:
            UserNotFoundError: If the identity is not linked to a member
            StoreNotFoundError: If the store does not exist
            DuplicateCheckInError: If the member checked in at the store
                within the duplicate window
        """
        user = resolve_member(self._store, external_identity_id)
        store_row = self._store.get_store_by_id(store_id)
        if store_row is None:
            raise StoreNotFoundError()

        now = self._clock()
        since = now - self._settings.checkin_duplicate_window
        if self._store.find_recent_visit(user.id, store_id, since) is not None:
            raise DuplicateCheckInError()

        visit = self._store.create_visit(user.id, store_id, now, not_before=since)
        logger.info(
            "Checked in",
            extra={
                "operation": "check_in",
                "identifiers": {"visit_id": str(visit.id), "store_id": store_id},
            },
        )

        await deliver_best_effort(
            "check_in_message",
            lambda: self._notifications.send(
                external_identity_id, check_in_message(store_row.name, now)
            ),
            timeout=self._settings.notification_timeout_seconds,
            visit_id=str(visit.id),
        )
        return CheckInResult(visit_id=visit.id, store_name=store_row.name, check_in_at=now)

    def submit_visit_survey(
        self,
        visit_id: uuid.UUID,
        visit_type: VisitType,
        visit_purpose: str | None,
        companion_industries: list[str] | None = None,
        companion_job_types: list[str] | None = None,
    ) -> Visit:
        """Attach survey answers to a visit, moving it to ``surveyed``.

        Companion lists are dropped for single visits whatever the caller sent.
        """
        visit = self._store.get_visit_by_id(visit_id)
        if visit is None:
            raise VisitNotFoundError()

        survey = VisitSurvey.create(
            visit_type=visit_type,
            visit_purpose=visit_purpose,
            companion_industries=companion_industries,
            companion_job_types=companion_job_types,
        )
        visit.record_survey(survey)
        return self._store.update_visit(visit)

    def get_visit_history(self, external_identity_id: str) -> list[VisitRecord]:
        """Most recent visits first, capped at the configured history limit."""
        user = resolve_member(self._store, external_identity_id)
        return self._store.get_visits_by_user(
            user.id, limit=self._settings.visit_history_limit
        )


class MembershipCardService:
    """Assembles the membership card from visit history and channel profile."""

    def __init__(
        self,
        store: UserStore,
        notifications: NotificationDispatcher,
        settings: Settings,
        aggregator: AnalyticsAggregator | None = None,
    ):
        self._store = store
        self._notifications = notifications
        self._settings = settings
        self._aggregator = aggregator or AnalyticsAggregator()

    async def get_membership_card(self, external_identity_id: str) -> MembershipCard:
        user = resolve_member(self._store, external_identity_id)
        visits = self._store.get_visits_by_user(user.id)

        profile = MembershipProfile()
        channel_profile = await deliver_best_effort(
            "get_profile",
            lambda: self._notifications.get_profile(external_identity_id),
            timeout=self._settings.notification_timeout_seconds,
            user_id=str(user.id),
        )
        if channel_profile is not None:
            profile = MembershipProfile(
                name=channel_profile.display_name or profile.name,
                avatar_url=channel_profile.picture_url or profile.avatar_url,
            )
        return self._aggregator.build_membership_card(visits, profile)
