"""
Domain model for the local user record kept in sync with the provider.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field


class UserRecord(BaseModel):
    """A locally persisted user linked to a provider subject."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, coerce_numbers_to_str=True
    )

    id: Optional[int] = Field(None, description="Local primary key, set by the store.")
    external_id: Optional[str] = Field(None, description="Provider ``sub`` claim.")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    phone_prefix: Optional[str] = None
    gender: Optional[str] = None
    oauth_token: Optional[str] = None
    oauth_refresh_token: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserStore(Protocol):
    """Persistence operations the user sync engine relies on."""

    def find_by_external_id(self, value: str) -> Optional[UserRecord]: ...

    def create_or_update(
        self, attributes: Dict[str, Any], existing: Optional[UserRecord] = None
    ) -> UserRecord: ...

    def reload(self, user: UserRecord) -> UserRecord: ...


__all__ = ["UserRecord", "UserStore"]
