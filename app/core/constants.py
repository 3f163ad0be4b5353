"""
App-wide constants for route configuration.

This module provides a single source of truth for route prefixes, tags,
common response definitions for API routes, and the message template
environment used for outbound notifications.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from app.core.schemas import ErrorResponse


@dataclass(frozen=True)
class RouteConfig:
    """Configuration for a route group."""

    prefix: str
    tag: str


class Routes:
    """Route configurations for all API endpoints."""

    MEMBER = RouteConfig(prefix="/api", tag="members")
    VISIT = RouteConfig(prefix="/api", tag="visits")
    STORE = RouteConfig(prefix="/api", tag="stores")
    PAYMENT = RouteConfig(prefix="/api/payments", tag="payments")
    WEBHOOK = RouteConfig(prefix="/webhook", tag="webhooks")
    HEALTH = RouteConfig(prefix="/health", tag="health")


# Common response definitions for reuse across routers
# Use these when configuring APIRouter or individual endpoints
class CommonResponses:
    """Standard HTTP error response definitions for OpenAPI documentation."""

    UNAUTHORIZED: dict[int, dict[str, Any]] = {
        401: {
            "model": ErrorResponse,
            "description": "Identity token or signature is invalid",
        }
    }
    NOT_FOUND: dict[int, dict[str, Any]] = {
        404: {"model": ErrorResponse, "description": "Resource not found"}
    }
    CONFLICT: dict[int, dict[str, Any]] = {
        409: {"model": ErrorResponse, "description": "Resource already exists"}
    }
    BAD_REQUEST: dict[int, dict[str, Any]] = {
        400: {"model": ErrorResponse, "description": "Invalid request data"}
    }
    INTERNAL_ERROR: dict[int, dict[str, Any]] = {
        500: {"model": ErrorResponse, "description": "Upstream or storage failure"}
    }


# Plain-text message templates (LINE messages have no HTML)
MessageTemplatesDir = Path(__file__).parent.parent / "templates" / "messages"

JinjaMessageTemplatesEnv = Environment(
    loader=FileSystemLoader(str(MessageTemplatesDir)),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)
