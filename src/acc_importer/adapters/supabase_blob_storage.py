"""Supabase Storage-backed blob storage."""

import uuid
from dataclasses import dataclass

from supabase import Client

from acc_importer.domain.storage import BlobDescriptor, BlobListPage
from acc_importer.services.storage import BlobStorage

HEAD_PAGE_SIZE = 100


@dataclass
class SupabaseBlobStorage(BlobStorage):
    """Blob storage on a Supabase Storage bucket.

    Supabase lists folders by offset, so the listing cursor is the offset of
    the next page.
    """

    client: Client
    bucket: str

    def list(self, prefix: str, limit: int, cursor: str | None = None) -> BlobListPage:
        """List objects in the folder named by ``prefix``."""
        offset = int(cursor) if cursor and cursor.isdigit() else 0
        entries = self._bucket().list(
            prefix.rstrip("/"),
            {
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": "name", "order": "asc"},
            },
        )
        pathnames = [f"{prefix}{entry['name']}" for entry in entries]
        has_more = len(entries) >= limit
        return BlobListPage(
            pathnames=pathnames,
            has_more=has_more,
            cursor=str(offset + len(entries)) if has_more else None,
        )

    def head(self, pathname: str) -> BlobDescriptor | None:
        """Look the object up by exact name within its folder.

        The folder search is a case-insensitive pattern match, so other names
        can fill whole pages ahead of the exact one. Pages are read until the
        name is found or the matches run out.
        """
        folder, _, name = pathname.rpartition("/")
        offset = 0
        while True:
            entries = self._bucket().list(
                folder,
                {
                    "limit": HEAD_PAGE_SIZE,
                    "offset": offset,
                    "search": name,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            for entry in entries:
                if entry.get("name") != name:
                    continue
                metadata = entry.get("metadata") or {}
                return self._descriptor(
                    pathname,
                    content_type=str(metadata.get("mimetype", "")),
                    size=int(metadata.get("size", 0)),
                )
            if len(entries) < HEAD_PAGE_SIZE:
                return None
            offset += len(entries)

    def put(  # noqa: PLR0913
        self,
        pathname: str,
        data: bytes,
        content_type: str,
        *,
        add_random_suffix: bool = False,
        allow_overwrite: bool = False,
    ) -> BlobDescriptor:
        """Upload bytes, optionally overwriting the existing object."""
        if add_random_suffix:
            pathname = f"{pathname}-{uuid.uuid4().hex[:12]}"
        self._bucket().upload(
            pathname,
            data,
            {
                "content-type": content_type,
                "upsert": "true" if allow_overwrite else "false",
            },
        )
        return self._descriptor(pathname, content_type=content_type, size=len(data))

    def delete(self, pathname: str) -> None:
        """Remove an object."""
        self._bucket().remove([pathname])

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.client.storage.from_(self.bucket)

    def _descriptor(
        self, pathname: str, content_type: str, size: int
    ) -> BlobDescriptor:
        url = self._bucket().get_public_url(pathname)
        return BlobDescriptor(
            pathname=pathname,
            url=url,
            download_url=f"{url}?download=",
            content_type=content_type,
            size=size,
        )
