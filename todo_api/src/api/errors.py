"""
Problem Details (RFC 9457) error responses and the FastAPI exception handlers that
produce them.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware import REQUEST_ID_HEADER
from .schemas import ProblemDetail

logger = logging.getLogger(__name__)

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"

_TITLES = {
    400: "Invalid Request",
    401: "Unauthorized",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    500: "Internal Server Error",
}


class ApiProblem(Exception):
    """Raised by endpoints to return a problem-details response."""

    def __init__(
        self,
        status: int,
        detail: str,
        title: Optional[str] = None,
        errors: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(detail)
        self.status = status
        self.detail = detail
        self.title = title or _TITLES.get(status, "Error")
        self.errors = errors
        self.headers = headers


def not_found(detail: str) -> ApiProblem:
    return ApiProblem(404, detail)


def conflict(detail: str) -> ApiProblem:
    return ApiProblem(409, detail)


def unauthorized(detail: str) -> ApiProblem:
    return ApiProblem(401, detail, headers={"WWW-Authenticate": "Bearer"})


def bad_request(detail: str, errors: Optional[Dict[str, Any]] = None) -> ApiProblem:
    return ApiProblem(400, detail, errors=errors)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def problem_response(
    request: Request,
    status: int,
    detail: str,
    title: Optional[str] = None,
    errors: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    request_id = _request_id(request)
    body = ProblemDetail(
        title=title or _TITLES.get(status, "Error"),
        status=status,
        detail=detail,
        instance=request.url.path,
        request_id=request_id,
        errors=errors,
    )
    # 500s are rendered outside RequestLoggingMiddleware, so set the header here too
    return JSONResponse(
        status_code=status,
        content=body.model_dump(exclude_none=True),
        headers={**(headers or {}), REQUEST_ID_HEADER: request_id},
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


async def api_problem_handler(request: Request, exc: ApiProblem) -> JSONResponse:
    logger.warning("%s: %s", exc.title, exc.detail)
    return problem_response(request, exc.status, exc.detail, exc.title, exc.errors, exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        detail = f"Endpoint {request.url.path} not found."
    elif exc.status_code == 405:
        detail = f"HTTP method {request.method} is not supported for this endpoint."
    else:
        detail = str(exc.detail)
    logger.warning("HTTP %d: %s", exc.status_code, detail)
    return problem_response(request, exc.status_code, detail, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return 400 with one message per invalid field.

    Field keys are the dotted location without the leading 'body'/'query'/'path' part.
    """
    field_errors: Dict[str, Any] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        key = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc) or "body"
        field_errors[key] = err.get("msg", "Invalid value")
    logger.warning("Validation error: %s", field_errors)
    return problem_response(
        request, 400, "One or more fields are invalid.", errors=field_errors
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Internal server error: %s", exc, exc_info=exc)
    return problem_response(
        request, 500, "An unexpected error occurred. Please try again later."
    )


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Install every problem-details handler on the application."""
    app.add_exception_handler(ApiProblem, api_problem_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
