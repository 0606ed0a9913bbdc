"""Catalog enumeration: hubs, projects and paginated photos."""

import logging
from dataclasses import dataclass

from acc_importer.adapters.acc_catalog_client import CatalogClient
from acc_importer.domain.catalog import Hub, NextRequest, Photo, Project
from acc_importer.domain.sessions import AccSession

DEFAULT_PHOTO_LIMIT = 25
MAX_PHOTO_LIMIT = 50
MAX_PHOTO_PAGES = 10

_THUMBNAIL_KEYS = ("thumbnailUrl", "thumbnail_url", "thumbnail")
_FILE_KEYS = ("fileUrl", "file_url", "original", "full")

_logger = logging.getLogger(__name__)


@dataclass
class CatalogService:
    """Reads hubs, projects and photos from ACC on behalf of a session."""

    client: CatalogClient
    max_pages: int = MAX_PHOTO_PAGES

    async def list_hubs(self, session: AccSession) -> list[Hub]:
        """Return hubs visible to the actor."""
        payload = await self.client.get_hubs(session)
        return [Hub(id=entry_id, name=name) for entry_id, name in _named(payload)]

    async def list_projects(self, session: AccSession, hub_id: str) -> list[Project]:
        """Return projects of a hub."""
        payload = await self.client.get_projects(session, hub_id)
        return [Project(id=entry_id, name=name) for entry_id, name in _named(payload)]

    async def list_photos(
        self, session: AccSession, project_id: str, limit: int | None = None
    ) -> list[Photo]:
        """Follow the server-driven cursor chain and return normalized photos.

        Reaching ``max_pages`` truncates silently.
        """
        request: NextRequest | None = NextRequest(
            url=self.client.photos_filter_url(project_id),
            body={
                "filter": {},
                "include": ["signedUrls"],
                "limit": resolve_photo_limit(limit),
                "sort": ["createdAt", "desc"],
            },
        )
        results: list[object] = []
        pages = 0
        while request is not None and pages < self.max_pages:
            pages += 1
            payload = await self.client.post_filter(session, request.url, request.body)
            page_results = payload.get("results")
            if page_results is None:
                page_results = payload.get("data")
            if page_results is None:
                page_results = []
            if not isinstance(page_results, list):
                _logger.warning(
                    "Unexpected photos payload shape",
                    extra={"project_id": project_id, "page": pages},
                )
                request = None
                break
            results.extend(page_results)
            request = next_request(payload)

        if request is not None:
            _logger.info(
                "Photo listing truncated",
                extra={"project_id": project_id, "pages": pages},
            )
        return [normalize_photo(raw) for raw in results]


def resolve_photo_limit(limit: int | None) -> int:
    """Accept limits within 1..50, otherwise fall back to the default."""
    if limit is not None and 0 < limit <= MAX_PHOTO_LIMIT:
        return limit
    return DEFAULT_PHOTO_LIMIT


def next_request(payload: dict[str, object]) -> NextRequest | None:
    """Extract ``pagination.nextPost`` when it carries both a URL and a body."""
    pagination = payload.get("pagination")
    if not isinstance(pagination, dict):
        return None
    post = pagination.get("nextPost")
    if not isinstance(post, dict):
        return None
    url = post.get("url")
    body = post.get("body")
    if not isinstance(url, str) or not url or not body:
        return None
    return NextRequest(url=url, body=body)


def normalize_photo(raw: object) -> Photo:
    """Map an upstream photo record onto ``Photo`` with empty-string defaults."""
    photo = raw if isinstance(raw, dict) else {}
    signed_urls = photo.get("signedUrls", photo.get("signed_urls"))
    if not isinstance(signed_urls, dict):
        signed_urls = {}
    return Photo(
        id=_pick_string(photo, ("id",)),
        title=_pick_string(photo, ("title", "name")),
        description=_pick_string(photo, ("description",)),
        thumbnail_url=_pick_string(signed_urls, _THUMBNAIL_KEYS),
        file_url=_pick_string(signed_urls, _FILE_KEYS),
        taken_at=_pick_string(photo, ("takenAt", "taken_at", "createdAt")),
    )


def _pick_string(record: dict[str, object], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str):
            return value
    return ""


def _named(payload: dict[str, object]) -> list[tuple[str, str]]:
    entries = payload.get("data")
    if not isinstance(entries, list):
        return []
    named: list[tuple[str, str]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        entry_id = entry.get("id")
        attributes = entry.get("attributes")
        name = attributes.get("name") if isinstance(attributes, dict) else None
        if name is None:
            name = entry.get("name")
        if name is None:
            name = entry_id
        named.append(
            (
                "" if entry_id is None else str(entry_id),
                "" if name is None else str(name),
            )
        )
    return named
