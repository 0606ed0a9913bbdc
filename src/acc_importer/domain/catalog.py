"""Read-only projections of the ACC catalog."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Hub:
    """ACC hub."""

    id: str
    name: str


@dataclass(frozen=True)
class Project:
    """ACC project within a hub."""

    id: str
    name: str


@dataclass(frozen=True)
class Photo:
    """Photo candidate as listed by the ACC Photos API."""

    id: str
    title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    file_url: str = ""
    taken_at: str = ""


@dataclass(frozen=True)
class NextRequest:
    """Server-supplied continuation of a paginated filter request."""

    url: str
    body: object
