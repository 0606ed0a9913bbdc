"""Interfaces for blob storage and the search index."""

from typing import Protocol

from acc_importer.domain.storage import BlobDescriptor, BlobListPage, SearchHit


class BlobStorage(Protocol):
    """Key (pathname) to bytes store."""

    def list(self, prefix: str, limit: int, cursor: str | None = None) -> BlobListPage:
        """Return one page of pathnames under a prefix."""

    def head(self, pathname: str) -> BlobDescriptor | None:
        """Return the descriptor of a stored object, or ``None`` if absent.

        Transient failures raise instead of reporting absence.
        """

    def put(  # noqa: PLR0913
        self,
        pathname: str,
        data: bytes,
        content_type: str,
        *,
        add_random_suffix: bool = False,
        allow_overwrite: bool = False,
    ) -> BlobDescriptor:
        """Store bytes and return the resulting descriptor."""

    def delete(self, pathname: str) -> None:
        """Remove a stored object."""


class SearchIndex(Protocol):
    """Text/vector search index keyed by id."""

    def upsert(
        self, id: str, content: dict[str, object], metadata: dict[str, object]
    ) -> None:
        """Insert or replace a record."""

    def search(self, query: str, rerank: bool = False) -> list[SearchHit]:
        """Return ranked results with scores."""

    def delete(self, id: str) -> None:
        """Remove a record."""
