"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_clock,
    get_discovery_client,
    get_request_signer,
    get_request_verifier,
    get_session_revoker,
    get_token_cipher_service,
    get_token_exchanger,
    get_user_attribute_table,
    get_user_store,
    get_user_sync_engine,
    get_webhook_userinfo_client,
    get_webhook_verifier,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_clock",
    "get_discovery_client",
    "get_request_signer",
    "get_request_verifier",
    "get_session_revoker",
    "get_token_cipher_service",
    "get_token_exchanger",
    "get_user_attribute_table",
    "get_user_store",
    "get_user_sync_engine",
    "get_webhook_userinfo_client",
    "get_webhook_verifier",
]
