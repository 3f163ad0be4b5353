import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from sqladmin import Admin

from app.admin.auth import AdminAuth
from app.admin.views import StoreAdmin, UserAdmin, VisitAdmin
from app.core.cors import add_cors_middleware
from app.core.exception_handlers import register_exception_handlers
from app.core.http import close_http_clients
from app.core.logging import configure_logging
from app.core.request_logging import add_request_logging_middleware
from app.core.settings import get_settings
from app.db.engine import engine
from app.health.router import router as health_router
from app.member.router import router as member_router
from app.notification.router import router as webhook_router
from app.payment.router import router as payment_router
from app.payment.router import webhook_router as payment_webhook_router
from app.store.router import router as store_router
from app.visit.router import router as visit_router

configure_logging()

logger = logging.getLogger(__name__)


def _warn_missing_integrations() -> None:
    settings = get_settings()
    required = {
        "LINE_LOGIN_CHANNEL_ID": settings.line_login_channel_id,
        "LINE_MESSAGING_API_TOKEN": settings.line_messaging_api_token,
        "LINE_MESSAGING_CHANNEL_SECRET": settings.line_messaging_channel_secret,
        "STRIPE_SECRET_KEY": settings.stripe_secret_key,
        "STRIPE_WEBHOOK_SECRET": settings.stripe_webhook_secret,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        logger.warning("Integrations not configured: %s", ", ".join(missing))


@asynccontextmanager
async def lifespan(_: FastAPI):
    _warn_missing_integrations()
    yield
    # Cleanup HTTP clients
    await close_http_clients()


app = FastAPI(title="Yoake Membership", version="0.1.0", lifespan=lifespan)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(member_router)
api_router.include_router(visit_router)
api_router.include_router(store_router)
api_router.include_router(payment_router)
api_router.include_router(webhook_router)
api_router.include_router(payment_webhook_router)

app.include_router(api_router)

add_request_logging_middleware(app)
add_cors_middleware(app)
register_exception_handlers(app)

# Mount SQLAdmin UI at /admin (SQLAdmin enables sessions via auth backend secret)
admin = Admin(
    app=app,
    engine=engine,
    authentication_backend=AdminAuth(),
)
admin.add_view(UserAdmin)
admin.add_view(StoreAdmin)
admin.add_view(VisitAdmin)
