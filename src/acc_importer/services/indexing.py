"""Search index writes, queries and deletions."""

import logging
from dataclasses import dataclass

from acc_importer.domain.storage import BlobDescriptor
from acc_importer.errors import ValidationError
from acc_importer.services.storage import BlobStorage, SearchIndex

MIN_SCORE = 0.1

_logger = logging.getLogger(__name__)


@dataclass
class IndexWriter:
    """Upserts stored images into the search index keyed by pathname."""

    index: SearchIndex

    def index_image(
        self,
        blob: BlobDescriptor,
        text: str,
        extra_metadata: dict[str, object] | None = None,
    ) -> None:
        """Store the description as content and the descriptor as metadata."""
        self.index.upsert(
            id=blob.pathname,
            content={"text": text},
            metadata={**blob.to_dict(), **(extra_metadata or {})},
        )


@dataclass
class ImageLibraryService:
    """Query and remove imported images."""

    storage: BlobStorage
    index: SearchIndex
    min_score: float = MIN_SCORE

    def search(self, query: str | None) -> list[dict[str, object]]:
        """Return metadata of matches above the score floor, best first."""
        if not query or not query.strip():
            raise ValidationError("Please enter a search query")
        hits = self.index.search(query, rerank=True)
        ranked = sorted(
            (hit for hit in hits if hit.score > self.min_score),
            key=lambda hit: hit.score,
            reverse=True,
        )
        _logger.info("Search finished", extra={"hits": len(hits), "kept": len(ranked)})
        return [hit.metadata for hit in ranked if hit.metadata]

    def delete(self, pathname: str) -> None:
        """Delete the stored object and its index record."""
        self.storage.delete(pathname)
        self.index.delete(pathname)
