"""
Authentication middleware for identity-provider session tokens.
"""

from typing import Optional

import structlog
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.config import Settings, get_settings
from ..core.exceptions import error_envelope

logger = structlog.get_logger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """JWT authentication middleware."""

    # Public endpoints that don't require authentication
    PUBLIC_PATHS = {
        "/api/health",
        "/api/clerk",  # Signed by the webhook sender instead
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    def __init__(self, app: ASGIApp, settings: Optional[Settings] = None) -> None:
        super().__init__(app)
        self.settings = settings or get_settings()

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request and validate the session token if required."""

        # Skip authentication for public endpoints and preflight requests
        if request.method == "OPTIONS" or request.url.path in self.PUBLIC_PATHS:
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            logger.warning("Missing authentication token", path=request.url.path)
            return self._unauthorized_response()

        payload = self._validate_token(token)
        if not payload or not payload.get("sub"):
            logger.warning("Invalid session token", path=request.url.path)
            return self._unauthorized_response()

        request.state.user_id = payload["sub"]

        logger.debug("Authenticated request", user_id=request.state.user_id, path=request.url.path)

        return await call_next(request)

    def _extract_token(self, request: Request) -> Optional[str]:
        """Extract the token from the Authorization header or the session cookie."""
        auth_header = request.headers.get("Authorization")
        if auth_header:
            try:
                scheme, token = auth_header.split()
            except ValueError:
                return None
            if scheme.lower() != "bearer":
                return None
            return token

        # Browser requests carry the provider's session cookie
        return request.cookies.get("__session")

    def _validate_token(self, token: str) -> Optional[dict]:
        """Validate the token and return its claims."""
        if not self.settings.auth_jwt_key:
            logger.error("Session token key is not configured")
            return None

        options = {"verify_exp": True, "verify_aud": False}
        kwargs = {}
        if self.settings.auth_jwt_issuer:
            kwargs["issuer"] = self.settings.auth_jwt_issuer
        else:
            options["verify_iss"] = False

        try:
            return jwt.decode(
                token,
                self.settings.auth_jwt_key,
                algorithms=[self.settings.auth_jwt_algorithm],
                options=options,
                **kwargs,
            )
        except ExpiredSignatureError:
            logger.warning("Session token expired")
            return None
        except JWTError as exc:
            logger.warning("Session token validation failed", error=str(exc))
            return None

    @staticmethod
    def _unauthorized_response() -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=error_envelope("User Unauthorized"),
        )
