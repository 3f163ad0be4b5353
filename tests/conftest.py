import inspect
import os
import uuid
from datetime import date
from unittest.mock import MagicMock

# Settings are read at import time by the engine and middleware.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "admin")

import anyio  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from app.core.settings import Settings, get_settings  # noqa: E402
from app.db.engine import get_session  # noqa: E402
from app.db.repository import UserStore  # noqa: E402
from app.identity.service import (  # noqa: E402
    IdentityClaims,
    LineIdentityVerifier,
    get_identity_verifier,
)
from app.main import app  # noqa: E402
from app.member.models import User  # noqa: E402
from app.notification.service import (  # noqa: E402
    LineNotificationDispatcher,
    MessagingProfile,
    get_notification_dispatcher,
)
from app.payment.service import (  # noqa: E402
    StripePaymentProvisioner,
    get_payment_provisioner,
)
from app.store.models import Store  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    # Tests use @pytest.mark.asyncio, but we intentionally rely on anyio.
    config.addinivalue_line(
        "markers",
        "asyncio: run async tests using anyio (project-local hook)",
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run @pytest.mark.asyncio tests with anyio.

    This avoids adding an external pytest-asyncio dependency.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    funcargs = {
        name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
    }

    async def _run_async_test() -> None:
        await test_func(**funcargs)

    anyio.run(_run_async_test)
    return True


@pytest.fixture(name="session")
def session_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="store")
def store_fixture(session: Session) -> UserStore:
    return UserStore(session)


@pytest.fixture(name="shop")
def shop_fixture(session: Session) -> Store:
    """A store members can check in to."""
    shop = Store(id="store1", name="Yoake Shibuya", address="1-1 Shibuya, Tokyo")
    session.add(shop)
    session.commit()
    session.refresh(shop)
    return shop


@pytest.fixture(name="other_shop")
def other_shop_fixture(session: Session) -> Store:
    shop = Store(id="store2", name="Yoake Ebisu", address="2-2 Ebisu, Tokyo")
    session.add(shop)
    session.commit()
    session.refresh(shop)
    return shop


@pytest.fixture(name="member")
def member_fixture(session: Session) -> User:
    """A registered member linked to messaging identity ``sub1``."""
    user = User(
        id=uuid.uuid4(),
        email="a@x.com",
        birth_date=date(1990, 4, 1),
        external_identity_id="sub1",
        payment_customer_id="cus_existing",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="unlinked_member")
def unlinked_member_fixture(session: Session) -> User:
    user = User(email="b@x.com", birth_date=date(1992, 8, 15))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="mock_settings")
def mock_settings_fixture():
    """Create mock settings."""
    return Settings(
        env_name="test",
        database_url="sqlite://",
        session_secret_key="test-secret-key",
        admin_username="admin",
        admin_password="admin",
        line_login_channel_id="1234567890",
        line_messaging_api_token="test-messaging-token",
        line_messaging_channel_secret="test-channel-secret",
        line_rich_menu_id_member="richmenu-member",
        liff_linking_url="https://liff.line.me/1234567890-link",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        notification_timeout_seconds=1.0,
    )


@pytest.fixture(name="mock_identity")
def mock_identity_fixture():
    """Create a mock identity verifier accepting every token as ``sub1``."""
    mock_verifier = MagicMock(spec=LineIdentityVerifier)
    mock_verifier.verify.return_value = IdentityClaims(
        subject_id="sub1", name="Taro", picture="https://example.com/taro.png"
    )
    return mock_verifier


@pytest.fixture(name="mock_payments")
def mock_payments_fixture():
    """Create a mock payment provisioner."""
    mock_provisioner = MagicMock(spec=StripePaymentProvisioner)
    mock_provisioner.create_customer.return_value = "cus_123"
    return mock_provisioner


@pytest.fixture(name="mock_notifications")
def mock_notifications_fixture():
    """Create a mock notification dispatcher that always succeeds."""
    mock_dispatcher = MagicMock(spec=LineNotificationDispatcher)
    mock_dispatcher.send.return_value = None
    mock_dispatcher.set_channel_menu.return_value = None
    mock_dispatcher.get_profile.return_value = MessagingProfile(
        user_id="sub1",
        display_name="Taro",
        picture_url="https://example.com/taro.png",
    )
    return mock_dispatcher


@pytest.fixture(name="client")
def client_fixture(
    session: Session,
    mock_settings: Settings,
    mock_identity: MagicMock,
    mock_payments: MagicMock,
    mock_notifications: MagicMock,
):
    """Create a test client with overridden dependencies."""
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_identity_verifier] = lambda: mock_identity
    app.dependency_overrides[get_payment_provisioner] = lambda: mock_payments
    app.dependency_overrides[get_notification_dispatcher] = lambda: mock_notifications

    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="survey_payload")
def survey_payload_fixture() -> dict:
    """Registration survey as sent by the LIFF form (camelCase keys)."""
    return {
        "email": "A@x.com",
        "phone": "090-1234-5678",
        "gender": "female",
        "birthDate": "1990-04-01",
        "industry": "IT",
        "jobType": "engineer",
        "experienceYears": "5",
        "interestInSideJob": "yes",
        "sideJobFields": ["design", "writing"],
        "meetPeople": ["engineers"],
        "serviceBenefit": "networking",
        "servicePriority": "price",
    }
