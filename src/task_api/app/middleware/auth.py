from __future__ import annotations
from typing import Optional

from fastapi import Header

from task_api.domain.errors import UnauthorizedError
from task_api.domain.user_models import Caller, UserRole


# Header-based stand-in for real authentication: the caller declares a role.
async def require_caller(
    x_user_role: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> Caller:
    if not x_user_role:
        raise UnauthorizedError("Authentication required. Please provide x-user-role header (ADMIN or USER)")
    role = UserRole.parse(x_user_role)
    if role is None:
        raise UnauthorizedError("Invalid role. Must be ADMIN or USER")
    return Caller(id=x_user_id or "anonymous", role=role)

