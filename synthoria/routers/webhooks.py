"""
Identity-provider webhook.

Keeps the local user mirror in step with the identity provider. Events are
signed with Svix; unsigned or tampered deliveries are rejected.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request
from svix.webhooks import Webhook, WebhookVerificationError

from ..core.config import Settings, get_settings
from ..core.dependencies import get_user_service
from ..core.exceptions import APIError, BadRequestError
from ..schemas.chat import ApiResponse
from ..services.user_service import UserService

logger = structlog.get_logger(__name__)
router = APIRouter()

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def verify_event(payload: bytes, headers: Dict[str, str], secret: str) -> Dict[str, Any]:
    """
    Check the Svix signature of a delivery and return the decoded event.

    Raises:
        BadRequestError: missing headers or a signature mismatch
    """
    signed_headers = {name: headers.get(name, "") for name in SVIX_HEADERS}
    if not all(signed_headers.values()):
        raise BadRequestError("Missing webhook signature headers")

    try:
        return Webhook(secret).verify(payload, signed_headers)
    except WebhookVerificationError as e:
        logger.warning("Webhook signature rejected", error=str(e))
        raise BadRequestError("Invalid webhook signature") from e


@router.post("/clerk", response_model=ApiResponse, response_model_exclude_none=True, tags=["webhooks"])
async def identity_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Apply ``user.created`` / ``user.updated`` / ``user.deleted`` events."""
    if not settings.clerk_webhook_secret:
        logger.error("Webhook secret is not configured")
        raise APIError("Webhook secret is not configured")

    payload = await request.body()
    event = verify_event(payload, dict(request.headers), settings.clerk_webhook_secret)

    event_type = event.get("type")
    data = event.get("data") or {}

    if event_type in ("user.created", "user.updated"):
        await users.upsert(data)
    elif event_type == "user.deleted":
        if data.get("id"):
            await users.delete(data["id"])
    else:
        logger.info("Ignoring webhook event", event_type=event_type)

    return ApiResponse(success=True, message="Webhook Event Received")
