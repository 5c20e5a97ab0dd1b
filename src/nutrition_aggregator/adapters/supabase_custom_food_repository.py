"""Supabase implementation for user-declared custom foods."""

from dataclasses import dataclass

from supabase import Client

from nutrition_aggregator.domain.custom_foods import CustomFoodRow

_TABLE = "custom_foods"


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so they match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class SupabaseCustomFoodRepository:
    """Supabase-backed repository for custom foods."""

    client: Client

    def upsert_food(self, row: CustomFoodRow) -> None:
        """Insert or replace a custom food row."""
        self.client.table(_TABLE).upsert(
            {
                "id": row.id,
                "name": row.name,
                "brand": row.brand,
                "category": row.category,
                "data": row.data,
                "created_at": row.created_at,
                "expires_at": row.expires_at,
            },
            on_conflict="id",
        ).execute()

    def get_food(self, food_id: str) -> CustomFoodRow | None:
        """Return a custom food row by id, expired or not."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", food_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def search_foods(self, text: str, now: int) -> list[CustomFoodRow]:
        """Return unexpired rows whose name or brand contains text."""
        pattern = f"%{escape_like(text)}%"
        rows: dict[str, CustomFoodRow] = {}
        for column in ("name", "brand"):
            response = (
                self.client.table(_TABLE)
                .select("*")
                .ilike(column, pattern)
                .gt("expires_at", now)
                .execute()
            )
            for raw in response.data or []:
                row = _parse_row(raw)
                rows.setdefault(row.id, row)
        return list(rows.values())

    def delete_expired(self, now: int) -> None:
        """Delete rows expired as of now."""
        self.client.table(_TABLE).delete().lte("expires_at", now).execute()


def _parse_row(row: dict[str, object]) -> CustomFoodRow:
    """Parse a custom_foods row into a domain model."""
    brand = row.get("brand")
    category = row.get("category")
    data = row.get("data")
    return CustomFoodRow(
        id=str(row["id"]),
        name=str(row.get("name", "")),
        brand=str(brand) if brand is not None else None,
        category=str(category) if category is not None else None,
        data=data if isinstance(data, dict) else {},
        created_at=int(row.get("created_at", 0)),
        expires_at=int(row.get("expires_at", 0)),
    )
