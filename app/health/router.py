"""Health domain router.

Health check endpoint for monitoring and load balancers.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import Routes
from app.core.deps import SessionDep, SettingsDep

router = APIRouter(prefix=Routes.HEALTH.prefix, tags=[Routes.HEALTH.tag])


@router.get("")
async def health(session: SessionDep, settings: SettingsDep):
    """Health check endpoint with database connectivity verification.

    Also reports which upstream integrations are configured (no network calls).
    """
    integrations = {
        "identity": bool(settings.line_login_channel_id),
        "messaging": bool(settings.line_messaging_api_token),
        "payments": bool(settings.stripe_secret_key),
    }
    try:
        session.exec(text("SELECT 1"))
        return {"status": "ok", "database": "ok", "integrations": integrations}
    except SQLAlchemyError:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "error",
                "integrations": integrations,
            },
        )
