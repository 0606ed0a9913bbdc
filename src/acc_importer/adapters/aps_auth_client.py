"""Autodesk Platform Services OAuth client."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlencode

import httpx

from acc_importer.domain.sessions import TokenGrant

ACC_SCOPES = ("data:read", "account:read")


class AuthClient(Protocol):
    """Interface for the three-legged OAuth identity provider."""

    def authorize_url(self, state: str) -> str:
        """Return the provider URL the user agent is redirected to."""

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens."""

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Obtain a new access token from a refresh token."""


@dataclass
class HttpxApsAuthClient(AuthClient):
    """APS OAuth v2 client implemented with httpx."""

    client_id: str
    client_secret: str
    callback_url: str
    base_url: str
    http_client: httpx.AsyncClient
    scopes: tuple[str, ...] = ACC_SCOPES

    @classmethod
    def create(
        cls, client_id: str, client_secret: str, callback_url: str, base_url: str
    ) -> "HttpxApsAuthClient":
        """Create an auth client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            callback_url=callback_url,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    def authorize_url(self, state: str) -> str:
        """Build the authorize URL carrying state and the requested scopes."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
                "scope": " ".join(self.scopes),
                "state": state,
            }
        )
        return f"{self.base_url}/authentication/v2/authorize?{query}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code via the token endpoint."""
        return await self._token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.callback_url,
            }
        )

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Refresh an access token via the token endpoint."""
        return await self._token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": " ".join(self.scopes),
            }
        )

    async def _token(self, form: dict[str, str]) -> TokenGrant:
        response = await self.http_client.post(
            f"{self.base_url}/authentication/v2/token",
            data=form,
            auth=(self.client_id, self.client_secret),
            timeout=15,
        )
        response.raise_for_status()
        payload = response.json()
        return TokenGrant(
            access_token=payload["access_token"],
            expires_in=int(payload["expires_in"]),
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type"),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
