"""Find which ACC photos are already stored."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from acc_importer.domain.imports import ACC_PREFIX, pathname_for
from acc_importer.services.storage import BlobStorage

LIST_LIMIT = 1000
MAX_LIST_PAGES = 20

_logger = logging.getLogger(__name__)


def normalize_photo_ids(photo_ids: Iterable[str]) -> list[str]:
    """Trim ids, drop empties and duplicates while keeping order."""
    return list(dict.fromkeys(pid.strip() for pid in photo_ids if pid.strip()))


@dataclass
class DedupService:
    """Read-only lookup of previously imported photo ids."""

    storage: BlobStorage
    list_limit: int = LIST_LIMIT
    max_pages: int = MAX_LIST_PAGES

    def find_uploaded_ids(self, photo_ids: Iterable[str]) -> list[str]:
        """Return the subset of ids whose pathname exists in storage."""
        wanted = {pathname_for(pid) for pid in normalize_photo_ids(photo_ids)}
        uploaded: list[str] = []
        cursor: str | None = None
        pages = 0
        while wanted and pages < self.max_pages:
            pages += 1
            page = self.storage.list(ACC_PREFIX, self.list_limit, cursor)
            for pathname in page.pathnames:
                if pathname not in wanted:
                    continue
                wanted.discard(pathname)
                uploaded.append(pathname[len(ACC_PREFIX) :])
            if not page.has_more or not page.cursor:
                break
            cursor = page.cursor

        _logger.info(
            "Dedup check finished",
            extra={"found": len(uploaded), "missing": len(wanted), "pages": pages},
        )
        return uploaded
