"""
Mirror of identity-provider users in the local database.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from ..core.database import Database
from ..models.user import User

logger = structlog.get_logger(__name__)


def user_fields_from_identity(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an identity-provider user payload to local user fields.

    Example:
        >>> user_fields_from_identity({"id": "user_1", "first_name": "Ada", "last_name": "Lovelace"})
        {'id': 'user_1', 'email': None, 'name': 'Ada Lovelace', 'image': None}
    """
    emails = data.get("email_addresses") or []
    email = emails[0].get("email_address") if emails else None
    name = " ".join(
        part for part in (data.get("first_name"), data.get("last_name")) if part
    )
    return {
        "id": data["id"],
        "email": email,
        "name": name or None,
        "image": data.get("image_url"),
    }


class UserService:
    """Create, update and delete mirrored users."""

    def __init__(self, database: Database):
        self._database = database

    async def upsert(self, data: Dict[str, Any]) -> User:
        await self._database.ensure_connected()

        fields = user_fields_from_identity(data)
        user: Optional[User] = await User.get(fields["id"])
        if user is None:
            user = User(**fields)
            await user.insert()
            logger.info("User created", user_id=user.id)
            return user

        user.email = fields["email"]
        user.name = fields["name"]
        user.image = fields["image"]
        user.updated_at = datetime.utcnow()
        await user.save()
        logger.info("User updated", user_id=user.id)
        return user

    async def delete(self, user_id: str) -> None:
        await self._database.ensure_connected()

        user = await User.get(user_id)
        if user is None:
            logger.info("User already absent", user_id=user_id)
            return
        await user.delete()
        logger.info("User deleted", user_id=user_id)
