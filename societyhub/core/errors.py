import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .request_context import get_request_id

logger = logging.getLogger(__name__)


class SocietyHubError(Exception):
    """Business-rule failure raised by the service layer."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(SocietyHubError):
    status_code = 404


class PermissionDeniedError(SocietyHubError):
    status_code = 403


class ConflictError(SocietyHubError):
    status_code = 409


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation failed.",
                "errors": [_plain_error(error) for error in exc.errors()],
                "path": str(request.url),
            },
        )

    @app.exception_handler(SocietyHubError)
    async def service_exception_handler(request: Request, exc: SocietyHubError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "path": str(request.url)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "path": str(request.url)}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": get_request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error.",
                "path": str(request.url),
            },
        )


def _plain_error(error: Dict[str, Any]) -> Dict[str, Any]:
    # pydantic attaches the raw exception under ctx; it is not JSON serialisable.
    plain = {key: value for key, value in error.items() if key not in {"ctx", "input", "url"}}
    ctx = error.get("ctx")
    if ctx:
        plain["ctx"] = {key: str(value) for key, value in ctx.items()}
    return plain
