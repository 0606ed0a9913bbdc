"""Request payload models for the import API."""

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from acc_importer.domain.catalog import Photo
from acc_importer.services.imports import MAX_UPLOADS


class PhotoCheckRequest(BaseModel):
    """Body of the dedup check endpoint."""

    photo_ids: list[StrictStr] = Field(alias="photoIds")


class ImportRequest(BaseModel):
    """Body of the batch import endpoint.

    Photo entries are validated leniently: entries without a string id are
    dropped and other fields default to empty strings.
    """

    model_config = ConfigDict(populate_by_name=True)

    photos: list[object]
    hub_id: object = Field(default=None, alias="hubId")
    project_id: object = Field(default=None, alias="projectId")

    def candidate_photos(self) -> list[Photo]:
        """Return at most ``MAX_UPLOADS`` photos with a string id."""
        return [
            _photo_from_entry(entry)
            for entry in self.photos[:MAX_UPLOADS]
            if isinstance(entry, dict) and isinstance(entry.get("id"), str)
        ]

    def hub(self) -> str:
        return self.hub_id if isinstance(self.hub_id, str) else ""

    def project(self) -> str:
        return self.project_id if isinstance(self.project_id, str) else ""


def _photo_from_entry(entry: dict[str, object]) -> Photo:
    def text(key: str) -> str:
        value = entry.get(key)
        return value if isinstance(value, str) else ""

    return Photo(
        id=text("id"),
        title=text("title"),
        description=text("description"),
        thumbnail_url=text("thumbnailUrl"),
        file_url=text("fileUrl"),
        taken_at=text("takenAt"),
    )


def photo_to_dict(photo: Photo) -> dict[str, str]:
    """Serialize a photo with the camelCase keys of the public API."""
    return {
        "id": photo.id,
        "title": photo.title,
        "description": photo.description,
        "thumbnailUrl": photo.thumbnail_url,
        "fileUrl": photo.file_url,
        "takenAt": photo.taken_at,
    }
