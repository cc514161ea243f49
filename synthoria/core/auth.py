"""
Authentication dependencies for FastAPI endpoints.
"""

from typing import Optional

import structlog
from fastapi import Request

from .exceptions import AuthenticationError

logger = structlog.get_logger(__name__)


async def get_current_user_id(request: Request) -> str:
    """
    Identity of the caller, as verified by ``AuthMiddleware``.

    Raises:
        AuthenticationError: 401 ``User Unauthorized`` when no identity is present
    """
    user_id: Optional[str] = getattr(request.state, "user_id", None)
    if not user_id:
        logger.debug("Request without identity", path=request.url.path)
        raise AuthenticationError()
    return user_id
