"""Supabase implementation for cache rows."""

from dataclasses import dataclass

from supabase import Client

from nutrition_aggregator.services.cache import CacheEntry, CacheNamespace


@dataclass
class SupabaseCacheRepository:
    """Supabase-backed storage for the nutrition and search caches."""

    client: Client

    def get_entry(self, namespace: CacheNamespace, key: str) -> CacheEntry | None:
        """Return the row stored under key, expired or not."""
        response = (
            self.client.table(namespace.value)
            .select("cache_key, data, created_at, expires_at")
            .eq("cache_key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return CacheEntry(
            key=str(row["cache_key"]),
            payload=row.get("data"),
            created_at=int(row.get("created_at", 0)),
            expires_at=int(row.get("expires_at", 0)),
        )

    def put_entry(
        self,
        namespace: CacheNamespace,
        entry: CacheEntry,
        columns: dict[str, str],
    ) -> None:
        """Insert or replace the row for entry.key."""
        self.client.table(namespace.value).upsert(
            {
                "cache_key": entry.key,
                **columns,
                "data": entry.payload,
                "created_at": entry.created_at,
                "expires_at": entry.expires_at,
            },
            on_conflict="cache_key",
        ).execute()
