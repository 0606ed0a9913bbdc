"""Batch import of ACC photos into the durable pipeline."""

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from acc_importer.adapters.remote_image_client import RemoteImageClient
from acc_importer.domain.catalog import Photo
from acc_importer.domain.imports import (
    BatchReport,
    ImportFailed,
    ImportOutcome,
    ImportSkipped,
    ImportStarted,
    TransferRequest,
    pathname_for,
)
from acc_importer.errors import ValidationError
from acc_importer.services.pipeline import RunQueue
from acc_importer.services.storage import BlobStorage

MAX_UPLOADS = 25
MAX_BYTES = 25 * 1024 * 1024
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")
ALLOWED_HOST_SUFFIXES = ("amazonaws.com", "autodesk.com")

_EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

_logger = logging.getLogger(__name__)


@dataclass
class ImportService:
    """Validates, fetches and schedules photos one at a time.

    Every photo of a batch yields exactly one outcome; a failure never affects
    its siblings.
    """

    storage: BlobStorage
    remote_client: RemoteImageClient
    queue: RunQueue
    max_bytes: int = MAX_BYTES

    async def import_batch(
        self, photos: list[Photo], hub_id: str, project_id: str
    ) -> BatchReport:
        """Process up to ``MAX_UPLOADS`` photos sequentially."""
        report = BatchReport()
        for photo in photos[:MAX_UPLOADS]:
            report.add(await self.import_photo(photo, hub_id, project_id))
        _logger.info(
            "Import batch processed",
            extra={
                "started": len(report.started),
                "skipped": len(report.skipped_ids),
                "errors": len(report.errors),
            },
        )
        return report

    async def import_photo(
        self, photo: Photo, hub_id: str, project_id: str
    ) -> ImportOutcome:
        """Run the per-photo checks and enqueue the transfer."""
        photo_id = photo.id.strip()
        if not photo_id:
            return ImportFailed(id="", message="Missing photo id")

        pathname = pathname_for(photo_id)
        try:
            existing = self.storage.head(pathname)
        except Exception as exc:
            _logger.warning("Storage check failed", extra={"photo_id": photo_id})
            return ImportFailed(id=photo_id, message=str(exc) or "Unknown error")
        if existing is not None:
            return ImportSkipped(id=photo_id)

        file_url = photo.file_url.strip()
        if not file_url:
            return ImportFailed(id=photo_id, message="Missing fileUrl")
        if not is_allowed_remote_url(file_url):
            return ImportFailed(id=photo_id, message="Invalid fileUrl")

        try:
            remote = await self.remote_client.fetch(file_url, self.max_bytes)
            if len(remote.data) > self.max_bytes:
                raise ValidationError("Image exceeds size limit")
            content_type = remote.content_type or infer_content_type(file_url)
            if content_type not in ALLOWED_CONTENT_TYPES:
                raise ValidationError(
                    f"Unsupported content-type: {content_type or 'unknown'}"
                )
            request = TransferRequest(
                data=remote.data,
                name=photo.title.strip() or photo_id,
                pathname=pathname,
                content_type=content_type,
                size=len(remote.data),
                add_random_suffix=False,
                allow_overwrite=True,
                metadata=import_metadata(photo, photo_id, hub_id, project_id),
            )
            run_id = self.queue.enqueue(request.to_payload())
        except Exception as exc:
            _logger.warning(
                "Photo import failed", extra={"photo_id": photo_id, "error": str(exc)}
            )
            return ImportFailed(id=photo_id, message=str(exc) or "Unknown error")

        _logger.info(
            "Photo import started", extra={"photo_id": photo_id, "run_id": run_id}
        )
        return ImportStarted(id=photo_id, run_id=run_id)


def is_allowed_remote_url(raw_url: str) -> bool:
    """Allow only https URLs on the known signed-URL host suffixes."""
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        return False
    if parts.scheme != "https":
        return False
    host = (parts.hostname or "").lower()
    return host.endswith(ALLOWED_HOST_SUFFIXES)


def infer_content_type(raw_url: str) -> str:
    """Infer an image content type from the URL path extension."""
    try:
        path = urlsplit(raw_url).path.lower()
    except ValueError:
        return ""
    for extension, content_type in _EXTENSION_TYPES.items():
        if path.endswith(extension):
            return content_type
    return ""


def import_metadata(
    photo: Photo, photo_id: str, hub_id: str, project_id: str
) -> dict[str, object]:
    """Metadata stored with the artifact and copied into the index record."""
    return {
        "source": "acc",
        "acc": {
            "id": photo_id,
            "title": photo.title,
            "description": photo.description,
            "takenAt": photo.taken_at,
            "thumbnailUrl": photo.thumbnail_url,
            "hubId": hub_id,
            "projectId": project_id,
        },
    }
