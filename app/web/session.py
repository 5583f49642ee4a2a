"""Browser session token handling for the CRUD widgets."""

import secrets

from fastapi import Request
from starlette.responses import Response

from app.config import settings
from app.services.session_store import CrudSessionStore

SESSION_TOKEN_LENGTH = 32


def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_LENGTH)


def _is_https_request(request: Request | None) -> bool:
    """Return True when request is HTTPS (directly or via proxy header)."""
    if not request:
        return False
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    if forwarded_proto:
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def set_session_cookie(response: Response, token: str, request: Request | None = None) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies and _is_https_request(request),
        max_age=settings.session_ttl_seconds,
    )


async def session_cookie_middleware(request: Request, call_next):
    """Make sure every request carries a session token; issue one if missing."""
    token = request.cookies.get(settings.session_cookie_name)
    issued = None
    if not token:
        issued = token = generate_session_token()
    request.state.session_token = token
    response = await call_next(request)
    if issued:
        set_session_cookie(response, issued, request)
    return response


def get_crud_sessions(request: Request) -> CrudSessionStore:
    token = getattr(request.state, "session_token", None)
    if not token:
        token = request.cookies.get(settings.session_cookie_name) or generate_session_token()
        request.state.session_token = token
    return CrudSessionStore(token)
