"""Expose constructed client wrappers."""

from .discovery import DiscoveryClient
from .openid_connect import OAuthTokenExchangeError, SessionRevoker, TokenExchanger
from .sqlite_user_store import SQLiteUserStore
from .webhook_userinfo import WebhookUserInfoClient

__all__ = [
    "DiscoveryClient",
    "OAuthTokenExchangeError",
    "SQLiteUserStore",
    "SessionRevoker",
    "TokenExchanger",
    "WebhookUserInfoClient",
]
