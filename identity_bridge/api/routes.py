"""
FastAPI routes wiring the identity bridge into a host application.
"""

from __future__ import annotations

import logging
import secrets
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from identity_bridge.core.config import AppSettings
from identity_bridge.core.errors import WebhookUserInfoRequestError
from identity_bridge.dependencies import (
    SettingsDependency,
    get_request_verifier,
    get_session_revoker,
    get_token_exchanger,
    get_user_attribute_table,
    get_user_store,
    get_user_sync_engine,
    get_webhook_userinfo_client,
    get_webhook_verifier,
)
from identity_bridge.models.user import UserRecord
from identity_bridge.schemas import LogoutPayload, UserSyncPayload, WebhookEvent
from identity_bridge.security.signature import SIGNATURE_HEADER

router = APIRouter()
logger = logging.getLogger(__name__)


def _public_user(user: UserRecord, attributes: Any) -> dict:
    """Serialize a user without its token attributes."""
    return user.model_dump(mode="json", exclude={attributes.token, attributes.refresh_token})


async def verified_webhook_body(
    request: Request,
    verifier: Annotated[Any, Depends(get_webhook_verifier)],
) -> bytes:
    """Return the raw webhook body once its signature has been verified."""
    body = await request.body()
    verifier.verify(request.headers.get(SIGNATURE_HEADER), body)
    return body


async def verified_request_body(
    request: Request,
    verifier: Annotated[Any, Depends(get_request_verifier)],
) -> bytes:
    """Return the raw request body once its signature has been verified."""
    body = await request.body()
    verifier.verify(request.headers.get(SIGNATURE_HEADER), body)
    return body


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.get("/auth/authorize", status_code=HTTPStatus.OK)
async def start_authorization(
    request: Request,
    exchanger: Annotated[Any, Depends(get_token_exchanger)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the provider sign-in page.",
    ),
):
    """Start the authorization-code flow."""
    state = secrets.token_urlsafe(16)
    authorization_url = await exchanger.authorization_uri(state=state)

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.get("/auth/callback", status_code=HTTPStatus.OK)
async def complete_authorization(
    exchanger: Annotated[Any, Depends(get_token_exchanger)],
    engine: Annotated[Any, Depends(get_user_sync_engine)],
    attributes: Annotated[Any, Depends(get_user_attribute_table)],
    code: str = Query(..., description="Authorization code returned by the provider."),
) -> dict:
    """Exchange the authorization code and create or update the local user."""
    tokens = await exchanger.exchange_code(code)
    if tokens is None:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Authentication failed; restart the sign-in flow.",
        )

    user = await engine.sync_user(tokens=tokens)
    if user is None:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Unable to load the user profile; restart the sign-in flow.",
        )

    return {"status": "signed_in", "user": _public_user(user, attributes)}


@router.post("/auth/logout", status_code=HTTPStatus.OK)
async def logout(
    payload: LogoutPayload,
    revoker: Annotated[Any, Depends(get_session_revoker)],
    store: Annotated[Any, Depends(get_user_store)],
    attributes: Annotated[Any, Depends(get_user_attribute_table)],
) -> dict:
    """Revoke the user's token at the provider and return the provider logout URL."""
    user = store.find_by_external_id(payload.external_id)
    if user is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Unknown user.")

    revocation_status = None
    tokens = attributes.tokens_of(user)
    if tokens is not None:
        response = await revoker.revoke(
            tokens.access_token, via_api_session=payload.via_api_session
        )
        revocation_status = response.status_code
        if response.is_success:
            store.create_or_update(
                {attributes.token: None, attributes.refresh_token: None}, existing=user
            )
        else:
            logger.warning(
                "Provider refused to revoke token for user %s (%s)",
                user.id,
                response.status_code,
            )

    return {
        "revocation_status": revocation_status,
        "logout_url": await revoker.logout_uri(),
    }


@router.post("/webhooks/identity-provider", status_code=HTTPStatus.OK)
async def receive_webhook(
    body: Annotated[bytes, Depends(verified_webhook_body)],
    userinfo_client: Annotated[Any, Depends(get_webhook_userinfo_client)],
    engine: Annotated[Any, Depends(get_user_sync_engine)],
) -> dict:
    """Apply a provider notification about a changed user."""
    event = WebhookEvent.model_validate_json(body)
    response = await userinfo_client.fetch(event.user_id, event.webhook_id)
    try:
        profile = response.json()
    except ValueError as exc:
        raise WebhookUserInfoRequestError("User-info lookup did not return JSON.") from exc
    user = engine.apply_webhook_profile(profile)

    return {
        "status": "processed" if user is not None else "ignored",
        "webhook_id": str(event.webhook_id),
    }


@router.post("/ip/users/sync", status_code=HTTPStatus.OK)
async def sync_user_on_request(
    body: Annotated[bytes, Depends(verified_request_body)],
    store: Annotated[Any, Depends(get_user_store)],
    engine: Annotated[Any, Depends(get_user_sync_engine)],
    attributes: Annotated[Any, Depends(get_user_attribute_table)],
) -> dict:
    """Signed request from the provider asking to re-sync a known user."""
    payload = UserSyncPayload.model_validate_json(body)
    user = store.find_by_external_id(payload.external_id)
    if user is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Unknown user.")

    synced = await engine.sync_user(user=user)
    if synced is None:
        return {"status": "stale", "user": None}
    return {"status": "synced", "user": _public_user(synced, attributes)}


__all__ = ["router", "verified_request_body", "verified_webhook_body"]
