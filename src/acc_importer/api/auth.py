"""OAuth login, callback and logout endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, Response

from acc_importer.api.deps import get_container
from acc_importer.api.error_handlers import render_error
from acc_importer.services.oauth import STATE_COOKIE_NAME, STATE_TTL_SECONDS
from acc_importer.services.sessions import SESSION_COOKIE_NAME, SESSION_TTL_SECONDS

if TYPE_CHECKING:
    from acc_importer.config import Settings

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/login")
async def login(request: Request) -> RedirectResponse:
    """Redirect to the identity provider with a fresh state cookie."""
    container = get_container(request)
    redirect = container.oauth_service.begin()
    response = RedirectResponse(redirect.url)
    _set_cookie(
        response,
        container.settings,
        STATE_COOKIE_NAME,
        redirect.state,
        STATE_TTL_SECONDS,
    )
    return response


@router.get("/callback")
async def callback(
    request: Request, code: str | None = None, state: str | None = None
) -> Response:
    """Exchange the code for a session and return to the app.

    The state cookie is cleared whatever the outcome, so it is single-use.
    """
    container = get_container(request)
    try:
        session_id = await container.oauth_service.complete(
            code=code,
            returned_state=state,
            expected_state=request.cookies.get(STATE_COOKIE_NAME),
        )
    except Exception as exc:
        error_response = await render_error(request, exc)
        _clear_cookie(error_response, container.settings, STATE_COOKIE_NAME)
        return error_response
    response = RedirectResponse("/?import=1")
    _set_cookie(
        response,
        container.settings,
        SESSION_COOKIE_NAME,
        session_id,
        SESSION_TTL_SECONDS,
    )
    _clear_cookie(response, container.settings, STATE_COOKIE_NAME)
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(request: Request) -> RedirectResponse:
    """Remove the stored session and clear its cookie."""
    container = get_container(request)
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if session_id:
        container.session_service.delete_session(session_id)
    response = RedirectResponse("/")
    _clear_cookie(response, container.settings, SESSION_COOKIE_NAME)
    return response


def _set_cookie(
    response: Response,
    settings: Settings,
    name: str,
    value: str,
    max_age: int,
) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="lax",
    )


def _clear_cookie(response: Response, settings: Settings, name: str) -> None:
    response.delete_cookie(
        name,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="lax",
    )
