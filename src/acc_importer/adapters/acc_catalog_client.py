"""ACC catalog API client (hubs, projects, photos)."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

from acc_importer.domain.sessions import AccSession
from acc_importer.errors import UpstreamHttpError


class CatalogClient(Protocol):
    """Interface for bearer-authenticated catalog API calls."""

    async def get_hubs(self, session: AccSession) -> dict[str, object]:
        """Return the raw hubs listing."""

    async def get_projects(self, session: AccSession, hub_id: str) -> dict[str, object]:
        """Return the raw projects listing of a hub."""

    def photos_filter_url(self, project_id: str) -> str:
        """Return the URL of the first photos filter request."""

    async def post_filter(
        self, session: AccSession, url: str, body: object
    ) -> dict[str, object]:
        """POST one photos filter page and return the raw response."""


@dataclass
class HttpxCatalogClient(CatalogClient):
    """HTTPX-backed catalog client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxCatalogClient":
        """Create a catalog client with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient())

    async def get_hubs(self, session: AccSession) -> dict[str, object]:
        """Fetch hubs visible to the signed-in actor."""
        response = await self.http_client.get(
            f"{self.base_url}/project/v1/hubs",
            headers={"Authorization": session.authorization},
            timeout=15,
        )
        return _json_or_raise(response, "Failed to fetch hubs")

    async def get_projects(self, session: AccSession, hub_id: str) -> dict[str, object]:
        """Fetch projects of a hub."""
        response = await self.http_client.get(
            f"{self.base_url}/project/v1/hubs/{quote(hub_id, safe='')}/projects",
            headers={"Authorization": session.authorization},
            timeout=15,
        )
        return _json_or_raise(response, "Failed to fetch projects")

    def photos_filter_url(self, project_id: str) -> str:
        """Build the photos filter URL for a project."""
        return (
            f"{self.base_url}/construction/photos/v1/projects/"
            f"{quote(project_id, safe='')}/photos:filter"
        )

    async def post_filter(
        self, session: AccSession, url: str, body: object
    ) -> dict[str, object]:
        """POST a photos filter request exactly as given."""
        response = await self.http_client.post(
            url,
            headers={"Authorization": session.authorization},
            json=body,
            timeout=30,
        )
        return _json_or_raise(response, "Failed to fetch photos")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _json_or_raise(response: httpx.Response, action: str) -> dict[str, object]:
    if not response.is_success:
        raise UpstreamHttpError(action, response.status_code, response.text)
    payload = response.json()
    return payload if isinstance(payload, dict) else {}
