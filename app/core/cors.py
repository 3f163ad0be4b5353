from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.settings import get_settings


def add_cors_middleware(app: FastAPI):
    """Allow the LIFF front-end origins configured in CORS_ORIGINS.

    The API is token/identity based and sets no cookies, so credentials
    are only allowed for explicit origin lists.
    """
    settings = get_settings()
    origins = settings.cors_origins_list

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
