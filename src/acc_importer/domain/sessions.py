"""Domain models for ACC sessions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AccSession:
    """OAuth tokens held for the signed-in actor.

    ``expires_at`` is epoch milliseconds of the stored access token.
    """

    access_token: str
    expires_at: int
    refresh_token: str | None = None
    token_type: str | None = None

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        return f"{self.token_type or 'Bearer'} {self.access_token}"


@dataclass(frozen=True)
class TokenGrant:
    """Token response from the identity provider."""

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    token_type: str | None = None
