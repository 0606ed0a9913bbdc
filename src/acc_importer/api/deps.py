"""Shared request dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from acc_importer.errors import Unauthorized
from acc_importer.services.sessions import SESSION_COOKIE_NAME

if TYPE_CHECKING:
    from acc_importer.containers import AppContainer
    from acc_importer.domain.sessions import AccSession


def get_container(request: Request) -> AppContainer:
    """Return the dependency container attached to the app."""
    return request.app.state.container


async def require_session(request: Request) -> AccSession:
    """Resolve the caller's ACC session or raise ``Unauthorized``.

    A stale session whose refresh failed is still returned; the upstream call
    decides whether its token works.
    """
    container = get_container(request)
    session_service = container.session_service
    session = await session_service.get_session(
        request.cookies.get(SESSION_COOKIE_NAME)
    )
    if session is None or session_service.is_unusable(session):
        raise Unauthorized
    return session


async def read_json(request: Request) -> object:
    """Return the parsed JSON body, or ``None`` when it is not valid JSON."""
    try:
        return await request.json()
    except ValueError:
        return None
