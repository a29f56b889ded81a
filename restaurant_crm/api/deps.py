"""
Shared route dependencies: current user resolution, role checks and
pagination parameters.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.config import get_settings
from restaurant_crm.core.exceptions import ForbiddenError, UnauthorizedError
from restaurant_crm.database import get_db
from restaurant_crm.models import User, UserRole


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the already-authenticated user forwarded by the auth gateway.

    Raises:
        UnauthorizedError: header missing, malformed, or not an active user
    """
    if not x_user_id or not x_user_id.isdigit():
        raise UnauthorizedError("Not authorized, no user")

    user = await db.get(User, int(x_user_id))
    if not user or not user.is_active:
        raise UnauthorizedError("Not authorized, user not found or inactive")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory restricting a route to the given roles."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError(
                f"User role '{user.role.value}' is not authorized to access this route"
            )
        return user

    return checker


require_manager = require_roles(UserRole.ADMIN, UserRole.MANAGER)
require_admin = require_roles(UserRole.ADMIN)


@dataclass
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> PageParams:
    settings = get_settings()
    return PageParams(
        page=page,
        limit=min(limit or settings.default_page_limit, settings.max_page_limit),
    )
