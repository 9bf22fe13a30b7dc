"""
FastAPI application entrypoint for the identity bridge.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from identity_bridge import __version__
from identity_bridge.api.routes import router as api_router
from identity_bridge.core.config import get_settings
from identity_bridge.core.errors import (
    DiscoveryError,
    InvalidAuthorizationGrantError,
    InvalidRequestError,
    RequestSignatureError,
    WebhookSignatureError,
)
from identity_bridge.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _error(status: HTTPStatus, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Translate identity bridge errors into HTTP responses."""

    @app.exception_handler(WebhookSignatureError)
    async def _webhook_signature(request: Request, exc: WebhookSignatureError):
        # 400 makes the provider retry the delivery.
        logger.warning("Rejected webhook delivery: %s", type(exc).__name__)
        return _error(HTTPStatus.BAD_REQUEST, exc)

    @app.exception_handler(RequestSignatureError)
    async def _request_signature(request: Request, exc: RequestSignatureError):
        logger.warning("Rejected signed request: %s", type(exc).__name__)
        return _error(HTTPStatus.UNAUTHORIZED, exc)

    @app.exception_handler(InvalidAuthorizationGrantError)
    async def _invalid_grant(request: Request, exc: InvalidAuthorizationGrantError):
        return _error(HTTPStatus.UNAUTHORIZED, exc)

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request(request: Request, exc: InvalidRequestError):
        return _error(HTTPStatus.UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(ValidationError)
    async def _invalid_payload(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            content={
                "error": "ValidationError",
                "detail": exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            },
        )

    @app.exception_handler(DiscoveryError)
    async def _discovery(request: Request, exc: DiscoveryError):
        return _error(HTTPStatus.BAD_GATEWAY, exc)


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Identity Bridge",
        version=__version__,
        description="OpenID Connect sign-in, token lifecycle and signed webhooks.",
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "register_exception_handlers"]
