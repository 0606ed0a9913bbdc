"""Two-step OAuth handshake with the ACC identity provider."""

import logging
import uuid
from dataclasses import dataclass

from acc_importer.adapters.aps_auth_client import AuthClient
from acc_importer.errors import InvalidState, MissingCode
from acc_importer.services.sessions import SessionService

STATE_COOKIE_NAME = "acc_oauth_state"
STATE_TTL_SECONDS = 60 * 5

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginRedirect:
    """State token to store in the cookie and the URL to redirect to."""

    state: str
    url: str


@dataclass
class OAuthService:
    """Initiates the authorize redirect and completes the callback."""

    auth_client: AuthClient
    session_service: SessionService

    def begin(self) -> LoginRedirect:
        """Generate a fresh state token and the authorize URL carrying it."""
        state = str(uuid.uuid4())
        return LoginRedirect(state=state, url=self.auth_client.authorize_url(state))

    async def complete(
        self,
        code: str | None,
        returned_state: str | None,
        expected_state: str | None,
    ) -> str:
        """Validate the callback and return the id of a new session.

        State is checked before the code so that no token exchange happens on
        a forged or replayed callback.
        """
        if not expected_state or not returned_state or returned_state != expected_state:
            _logger.warning("OAuth callback rejected: state mismatch")
            raise InvalidState
        if not code:
            raise MissingCode

        grant = await self.auth_client.exchange_code(code)
        session = self.session_service.session_from_grant(grant)
        return self.session_service.create_session(session)
