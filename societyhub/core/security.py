import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import DEFAULT_JWT_SECRET

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach common security headers to every response."""

    def __init__(
        self,
        app,
        *,
        enable_hsts: bool = True,
        csp: Optional[str] = None,
    ) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.csp = csp

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        headers = response.headers

        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "same-origin")
        if self.enable_hsts and request.url.scheme == "https":
            headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        if self.csp:
            headers.setdefault("Content-Security-Policy", self.csp)

        return response


def log_security_warnings(jwt_secret: str, database_url: str) -> None:
    if jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT secret is using the insecure default; set JWT_SECRET in the environment.")
    if database_url.startswith("sqlite"):
        logger.warning("Using SQLite at %s; row locks during bill runs are not enforced.", database_url)
