"""Relational store for members, stores and visits.

The database is the source of truth for uniqueness: email and identity
bindings are unique indexes, and duplicate check-ins are re-checked inside
the insert transaction while holding a row lock on the member. Callers may
pre-check for friendlier errors, but only the outcome here is authoritative.

Getters return ``None`` for missing rows. Writes raise:
- ``ConflictError`` subclasses for recognised unique/duplicate violations
- ``NotFoundError`` subclasses when the row to change does not exist
- ``StorageError`` for every other database failure
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from app.core.exceptions import AppException, ConflictError, StorageError
from app.member.exceptions import (
    EmailExistsError,
    IdentityAlreadyLinkedError,
    UserNotFoundError,
)
from app.member.models import Survey, User, UserProfile
from app.store.models import Store
from app.visit.exceptions import DuplicateCheckInError
from app.visit.models import Visit, VisitRecord

logger = logging.getLogger(__name__)

# Substrings identifying the unique index behind an IntegrityError, per dialect:
#   SQLite:     "UNIQUE constraint failed: users.email"
#   PostgreSQL: 'duplicate key value violates unique constraint "ix_users_email"'
_UNIQUE_CONFLICTS: tuple[tuple[tuple[str, ...], type[ConflictError]], ...] = (
    (("users.external_identity_id", "ix_users_external_identity_id"),
     IdentityAlreadyLinkedError),
    (("users.email", "ix_users_email"), EmailExistsError),
)


def _classify_conflict(error: IntegrityError) -> ConflictError | None:
    detail = str(error.orig)
    for markers, exc_class in _UNIQUE_CONFLICTS:
        if any(marker in detail for marker in markers):
            return exc_class()
    return None


def _upstream_code(error: SQLAlchemyError) -> str | None:
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "sqlite_errorname", None)
    return str(code) if code else type(error).__name__


class UserStore:
    """Session-scoped persistence gateway used by the orchestrators."""

    def __init__(self, session: Session):
        self._session = session

    @contextmanager
    def _guard(self, operation: str, **identifiers: Any) -> Iterator[None]:
        """Roll back and translate database errors raised inside the block."""
        try:
            yield
        except IntegrityError as e:
            self._session.rollback()
            conflict = _classify_conflict(e)
            if conflict is not None:
                raise conflict from e
            raise StorageError(
                "Constraint violation",
                operation=operation,
                upstream_code=_upstream_code(e),
                identifiers=identifiers,
            ) from e
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(
                "Database error during %s: %s",
                operation,
                type(e).__name__,
                extra={"operation": operation, "identifiers": identifiers},
            )
            raise StorageError(
                "Database operation failed",
                operation=operation,
                upstream_code=_upstream_code(e),
                identifiers=identifiers,
            ) from e
        except AppException:
            self._session.rollback()
            raise

    # Users

    def get_user_by_email(self, email: str) -> User | None:
        with self._guard("get_user_by_email"):
            return self._session.exec(select(User).where(User.email == email)).first()

    def get_user_by_external_id(self, external_identity_id: str) -> User | None:
        with self._guard("get_user_by_external_id"):
            return self._session.exec(
                select(User).where(User.external_identity_id == external_identity_id)
            ).first()

    def get_user_by_payment_customer_id(self, payment_customer_id: str) -> User | None:
        with self._guard("get_user_by_payment_customer_id"):
            return self._session.exec(
                select(User).where(User.payment_customer_id == payment_customer_id)
            ).first()

    def create_user(self, user: User) -> User:
        with self._guard("create_user", email=user.email):
            self._session.add(user)
            self._session.commit()
            self._session.refresh(user)
        return user

    def bind_external_identity(
        self, user_id: uuid.UUID, external_identity_id: str
    ) -> User:
        """Set the member's identity binding unless it already points elsewhere."""
        with self._guard(
            "bind_external_identity",
            user_id=str(user_id),
            external_identity_id=external_identity_id,
        ):
            user = self._session.exec(
                select(User)
                .where(User.id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).first()
            if user is None:
                raise UserNotFoundError()
            if user.external_identity_id not in (None, external_identity_id):
                raise IdentityAlreadyLinkedError(
                    "This account is already linked to a different identity"
                )
            user.external_identity_id = external_identity_id
            self._session.add(user)
            self._session.commit()
            self._session.refresh(user)
        return user

    def create_profile_and_survey(
        self, profile: UserProfile, survey: Survey
    ) -> tuple[UserProfile, Survey]:
        """Persist the onboarding rows for one member in a single transaction."""
        with self._guard("create_profile_and_survey", user_id=str(profile.user_id)):
            self._session.add(profile)
            self._session.add(survey)
            self._session.commit()
            self._session.refresh(profile)
            self._session.refresh(survey)
        return profile, survey

    # Stores

    def get_store_by_id(self, store_id: str) -> Store | None:
        with self._guard("get_store_by_id", store_id=store_id):
            return self._session.get(Store, store_id)

    def list_stores(self) -> list[Store]:
        with self._guard("list_stores"):
            return list(self._session.exec(select(Store).order_by(col(Store.name))))

    # Visits

    def _recent_visit(
        self, user_id: uuid.UUID, store_id: str, since: datetime
    ) -> Visit | None:
        return self._session.exec(
            select(Visit)
            .where(
                Visit.user_id == user_id,
                Visit.store_id == store_id,
                col(Visit.check_in_at) > since,
            )
            .order_by(col(Visit.check_in_at).desc())
        ).first()

    def find_recent_visit(
        self, user_id: uuid.UUID, store_id: str, since: datetime
    ) -> Visit | None:
        """Latest visit by the member at the store strictly after ``since``."""
        with self._guard("find_recent_visit", user_id=str(user_id), store_id=store_id):
            return self._recent_visit(user_id, store_id, since)

    def create_visit(
        self,
        user_id: uuid.UUID,
        store_id: str,
        check_in_at: datetime,
        not_before: datetime | None = None,
    ) -> Visit:
        """Insert a checked-in visit.

        When ``not_before`` is given, the duplicate check is repeated under a
        lock on the member row so concurrent check-ins cannot both pass.
        """
        with self._guard("create_visit", user_id=str(user_id), store_id=store_id):
            if not_before is not None:
                self._session.exec(
                    select(User.id).where(User.id == user_id).with_for_update()
                ).first()
                if self._recent_visit(user_id, store_id, not_before) is not None:
                    raise DuplicateCheckInError()
            visit = Visit(user_id=user_id, store_id=store_id, check_in_at=check_in_at)
            self._session.add(visit)
            self._session.commit()
            self._session.refresh(visit)
        return visit

    def get_visit_by_id(self, visit_id: uuid.UUID) -> Visit | None:
        with self._guard("get_visit_by_id", visit_id=str(visit_id)):
            return self._session.get(Visit, visit_id)

    def update_visit(self, visit: Visit) -> Visit:
        with self._guard("update_visit", visit_id=str(visit.id)):
            self._session.add(visit)
            self._session.commit()
            self._session.refresh(visit)
        return visit

    def get_visits_by_user(
        self, user_id: uuid.UUID, limit: int | None = None
    ) -> list[VisitRecord]:
        """Visits joined with store names, newest first."""
        statement = (
            select(Visit, Store.name)
            .join(Store, col(Store.id) == col(Visit.store_id))
            .where(Visit.user_id == user_id)
            .order_by(col(Visit.check_in_at).desc(), col(Visit.created_at).desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        with self._guard("get_visits_by_user", user_id=str(user_id)):
            rows = self._session.exec(statement).all()
        return [VisitRecord.from_visit(visit, store_name) for visit, store_name in rows]
