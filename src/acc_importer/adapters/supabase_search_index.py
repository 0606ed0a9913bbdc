"""Supabase-backed search index."""

from dataclasses import dataclass

from supabase import Client

from acc_importer.domain.storage import SearchHit
from acc_importer.services.storage import SearchIndex


@dataclass
class SupabaseSearchIndex(SearchIndex):
    """Search index stored in the ``image_index`` table.

    Ranking is done by the ``search_images`` database function.
    """

    client: Client

    def upsert(
        self, id: str, content: dict[str, object], metadata: dict[str, object]
    ) -> None:
        """Insert or replace the record with this id."""
        self.client.table("image_index").upsert(
            {"id": id, "content": content, "metadata": metadata},
            on_conflict="id",
        ).execute()

    def search(self, query: str, rerank: bool = False) -> list[SearchHit]:
        """Run the ranked search function."""
        response = self.client.rpc(
            "search_images", {"query_text": query, "rerank": rerank}
        ).execute()
        return [
            SearchHit(
                id=row["id"],
                score=float(row.get("score") or 0.0),
                metadata=row.get("metadata") or {},
            )
            for row in response.data or []
        ]

    def delete(self, id: str) -> None:
        """Delete the record with this id."""
        self.client.table("image_index").delete().eq("id", id).execute()
