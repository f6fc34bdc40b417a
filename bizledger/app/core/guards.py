"""
Role guards for the ledger endpoints.

    @router.post("/ledger/backfill")
    async def run_backfill(current_user: Principal = Depends(admin_only)):
        ...
"""

from typing import Iterable
from fastapi import Depends

from bizledger.app.core.dependencies import get_current_user
from bizledger.app.core.exceptions import InsufficientPermissionsError
from bizledger.app.models.enums import UserRole
from bizledger.app.schemas.auth import Principal


def require_role(allowed_roles: Iterable[UserRole]):
    """Dependency factory: 403 unless the caller holds one of `allowed_roles`."""
    allowed = frozenset(allowed_roles)
    required = ", ".join(sorted(role.value for role in allowed))

    async def role_checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in allowed:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {required}",
                details={"role": current_user.role.value},
            )
        return current_user

    return role_checker


admin_only = require_role([UserRole.ADMIN])
ledger_readers = require_role([UserRole.ADMIN, UserRole.ACCOUNTANT])
any_role = require_role(list(UserRole))
