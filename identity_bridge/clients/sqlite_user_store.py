"""SQLite-backed user store with token fields encrypted at rest."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from identity_bridge.models.user import UserRecord
from identity_bridge.services.token_cipher import TokenCipherService

DEFAULT_ENCRYPTED_FIELDS = ("oauth_token", "oauth_refresh_token")


class SQLiteUserStore:
    """Store ``UserRecord`` rows as JSON documents keyed by local id."""

    def __init__(
        self,
        db_path: str,
        *,
        token_cipher: TokenCipherService,
        encrypted_fields: tuple[str, ...] = DEFAULT_ENCRYPTED_FIELDS,
        external_id_field: str = "external_id",
    ) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = token_cipher
        self._encrypted_fields = encrypted_fields
        self._external_id_field = external_id_field
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_id TEXT UNIQUE,
                    data TEXT NOT NULL
                )
                """
            )

    def _external_id(self, user: UserRecord) -> Optional[str]:
        value = getattr(user, self._external_id_field)
        return None if value is None else str(value)

    def _serialize(self, user: UserRecord) -> str:
        data = user.model_dump(mode="json", exclude={"id"})
        for field in self._encrypted_fields:
            if data.get(field):
                data[field] = self._cipher.encrypt(data[field])
        return json.dumps(data)

    def _deserialize(self, row: sqlite3.Row) -> UserRecord:
        data = json.loads(row["data"])
        for field in self._encrypted_fields:
            if data.get(field):
                data[field] = self._cipher.decrypt(data[field])
        return UserRecord(id=row["id"], **data)

    def find_by_external_id(self, value: str) -> Optional[UserRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, data FROM users WHERE external_id = ?", (value,)
            ).fetchone()
        if not row:
            return None
        return self._deserialize(row)

    def get(self, user_id: int) -> Optional[UserRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, data FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return self._deserialize(row)

    def create_or_update(
        self, attributes: Dict[str, Any], existing: Optional[UserRecord] = None
    ) -> UserRecord:
        """Update ``existing`` with ``attributes``, or insert a new user."""
        now = datetime.now(timezone.utc)
        if existing is not None and existing.id is not None:
            user = existing.model_copy(update={**attributes, "updated_at": now})
            user = UserRecord.model_validate(user.model_dump())
            with self._connect() as conn:
                conn.execute(
                    "UPDATE users SET external_id = ?, data = ? WHERE id = ?",
                    (self._external_id(user), self._serialize(user), user.id),
                )
            return user

        user = UserRecord(**attributes)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (external_id, data) VALUES (?, ?)",
                (self._external_id(user), self._serialize(user)),
            )
        return user.model_copy(update={"id": cursor.lastrowid})

    def reload(self, user: UserRecord) -> UserRecord:
        if user.id is None:
            raise ValueError("Cannot reload a user that has not been saved.")
        reloaded = self.get(user.id)
        if reloaded is None:
            raise LookupError(f"User {user.id} no longer exists.")
        return reloaded


__all__ = ["DEFAULT_ENCRYPTED_FIELDS", "SQLiteUserStore"]
