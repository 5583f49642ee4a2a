"""Exception handlers shared by the host pages and the widget endpoints.

Browsers get an HTML error page. HTMX and JSON clients get a JSON body with
``code``, ``message``, ``details`` and ``request_id`` so the front end can
show a toast instead of swapping an error page into a widget.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.services.table_facade import ConstraintViolation, InvalidArgument

logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory="templates")

_BAD_REQUEST_FALLBACK = (
    "Some required information is missing or invalid. Please check the form and try again."
)
_SERVER_FAILURE = "Oops! Something went wrong on our end. Please try again later."

# status -> (template, message used when the detail is empty)
_HTML_PAGES = {
    400: ("errors/400.html", _BAD_REQUEST_FALLBACK),
    404: ("errors/404.html", "Page not found"),
    409: ("errors/409.html", "Request conflict"),
    500: ("errors/500.html", _SERVER_FAILURE),
}
_LEAKY_DETAIL_MARKERS = ("validation error", "type_error", "value_error", "traceback", "{", "[")


def _request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return str(rid) if rid else "unknown"


def _wants_html(request: Request) -> bool:
    if request.headers.get("HX-Request", "").lower() == "true":
        return False
    if "application/json" in (request.headers.get("content-type") or "").lower():
        return False
    accept = (request.headers.get("accept") or "").lower()
    return not ("application/json" in accept and "text/html" not in accept)


def _page_message(status_code: int, detail: object) -> str:
    if status_code >= 500:
        return _SERVER_FAILURE
    _, fallback = _HTML_PAGES.get(status_code, ("", "Request failed"))
    if not isinstance(detail, str) or not detail.strip():
        return fallback
    if status_code == 400 and any(m in detail.lower() for m in _LEAKY_DETAIL_MARKERS):
        return fallback
    return detail.strip()


def _html_error(request: Request, status_code: int, detail: object):
    template, _ = _HTML_PAGES.get(status_code, ("errors/generic.html", ""))
    if status_code > 500:
        template = "errors/500.html"
    return templates.TemplateResponse(
        request,
        template,
        {
            "status_code": status_code,
            "message": _page_message(status_code, detail),
            "request_id": _request_id(request),
        },
        status_code=status_code,
    )


def _json_error(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: object = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": _request_id(request),
        },
    )


def error_response(request: Request, status_code: int, detail: object):
    """Render ``detail`` for the kind of client that made the request."""
    if _wants_html(request):
        return _html_error(request, status_code, detail)
    if isinstance(detail, dict):
        return _json_error(
            request,
            status_code,
            detail.get("code", f"http_{status_code}"),
            detail.get("message", "Request failed"),
            detail.get("details"),
        )
    if isinstance(detail, str):
        return _json_error(request, status_code, f"http_{status_code}", detail)
    return _json_error(request, status_code, f"http_{status_code}", "Request failed", detail)


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(request, exc.status_code, exc.detail or "Request failed")

    @app.exception_handler(InvalidArgument)
    async def invalid_argument_handler(request: Request, exc: InvalidArgument):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return error_response(request, 400, str(exc))

    @app.exception_handler(ConstraintViolation)
    async def constraint_violation_handler(request: Request, exc: ConstraintViolation):
        return error_response(request, 409, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        if _wants_html(request):
            return _html_error(request, 400, None)
        errors = [
            {key: error[key] for key in ("type", "loc", "msg") if key in error}
            for error in exc.errors()
        ]
        return _json_error(request, 422, "validation_error", "Validation error", errors)

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(
            "Storage error on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        if _wants_html(request):
            return _html_error(request, 500, None)
        return _json_error(request, 500, "storage_error", "Storage failure")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        if _wants_html(request):
            return _html_error(request, 500, None)
        return _json_error(request, 500, "internal_error", "Internal server error")
