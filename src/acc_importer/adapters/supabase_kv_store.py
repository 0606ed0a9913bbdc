"""Supabase-backed TTL key-value store."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from supabase import Client

from acc_importer.services.sessions import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Key-value rows in ``kv_store`` with an ``expires_at`` column."""

    client: Client

    def get(self, key: str) -> dict[str, object] | None:
        """Return the value if present and not expired."""
        response = (
            self.client.table("kv_store")
            .select("key, value_json, expires_at")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        if datetime.fromisoformat(row["expires_at"]) <= datetime.now(tz=UTC):
            self.delete(key)
            return None
        return row["value_json"]

    def set(self, key: str, value: dict[str, object], ttl_seconds: int) -> None:
        """Insert or replace the value with a fresh expiry."""
        expires_at = datetime.now(tz=UTC) + timedelta(seconds=ttl_seconds)
        self.client.table("kv_store").upsert(
            {
                "key": key,
                "value_json": value,
                "expires_at": expires_at.isoformat(),
            },
            on_conflict="key",
        ).execute()

    def delete(self, key: str) -> None:
        """Delete the key if present."""
        self.client.table("kv_store").delete().eq("key", key).execute()
