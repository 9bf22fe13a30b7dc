"""Service layer exports."""

from .token_cipher import TokenCipherService
from .user_sync import UserAttributeTable, UserSyncEngine, map_attributes

__all__ = [
    "TokenCipherService",
    "UserAttributeTable",
    "UserSyncEngine",
    "map_attributes",
]
