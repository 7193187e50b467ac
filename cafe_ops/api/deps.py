"""Request actor resolution.

The dashboard identifies the signed-in user with the ``X-User-Id`` header;
authentication itself happens in front of this service.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from cafe_ops.api.errors import to_http_exception
from cafe_ops.exceptions import PermissionDeniedError
from cafe_ops.logging_config import bind_context, get_logger
from cafe_ops.models.user import UserRecord
from cafe_ops.repositories.user_repository import UserRepository

logger = get_logger(__name__)


async def get_actor(x_user_id: Optional[str] = Header(None)) -> UserRecord:
    """Resolve the acting user.

    Raises:
        401: Missing or unknown user
        403: Banned user
    """
    if not x_user_id:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Unauthorized",
                "message": "X-User-Id header is required",
            },
        )

    user = UserRepository().find_by_id(x_user_id)
    if user is None:
        logger.warning("unknown_actor", user_id=x_user_id)
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Unauthorized",
                "message": f"Unknown user: {x_user_id}",
            },
        )
    if user.is_banned:
        raise to_http_exception(PermissionDeniedError("Your account has been banned"))

    bind_context(actor_id=user.id, actor_role=user.role.value)
    return user


async def require_staff(actor: UserRecord = Depends(get_actor)) -> UserRecord:
    """Admins and managers only."""
    if not actor.is_staff:
        raise to_http_exception(PermissionDeniedError())
    return actor


def ensure_owner_or_staff(actor: UserRecord, guest_id: str) -> None:
    """Guests may only see their own records."""
    if not actor.is_staff and actor.id != guest_id:
        raise to_http_exception(PermissionDeniedError("Access denied"))
