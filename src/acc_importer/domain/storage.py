"""Models for stored artifacts and index records."""

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class BlobDescriptor:
    """Describes an object persisted in blob storage."""

    pathname: str
    url: str
    download_url: str
    content_type: str
    size: int

    def to_dict(self) -> dict[str, object]:
        """Serialize with the camelCase keys used in index metadata."""
        return {
            "pathname": self.pathname,
            "url": self.url,
            "downloadUrl": self.download_url,
            "contentType": self.content_type,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "BlobDescriptor":
        """Inverse of ``to_dict``."""
        return cls(
            pathname=str(data.get("pathname", "")),
            url=str(data.get("url", "")),
            download_url=str(data.get("downloadUrl", "")),
            content_type=str(data.get("contentType", "")),
            size=int(data.get("size", 0)),
        )


@dataclass(frozen=True)
class BlobListPage:
    """One page of a storage listing."""

    pathnames: list[str]
    has_more: bool
    cursor: str | None = None


@dataclass(frozen=True)
class SearchHit:
    """Ranked search index result."""

    id: str
    score: float
    metadata: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Return a plain dict for JSON responses."""
        return asdict(self)
