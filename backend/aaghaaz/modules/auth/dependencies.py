from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Callable, Optional

from aaghaaz.core.database import get_db
from aaghaaz.core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
)
from aaghaaz.core.logging_config import logger, set_user_id
from aaghaaz.core.tokens import TokenClaims, TokenService, get_token_service
from aaghaaz.models.student import STUDENT_ROLE
from aaghaaz.models.user import UserRole
from aaghaaz.modules.auth.accounts import AccountModel, AccountRepository

# auto_error=False so a missing header maps to our own 401 message
security = HTTPBearer(auto_error=False)


def token_service_dependency() -> TokenService:
    return get_token_service()


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(token_service_dependency),
) -> TokenClaims:
    """Verified claims of a full session token; pending 2FA tokens are refused"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredError()

    claims = tokens.verify_full(credentials.credentials)

    set_user_id(claims.subject)
    request.state.principal = claims
    return claims


async def get_current_account(
    principal: TokenClaims = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> AccountModel:
    """Account record (staff or student) behind the current token"""
    return await AccountRepository(db).get_by_claims(principal)


def require_roles(*roles: str) -> Callable:
    """
    Dependency factory: the caller's account must exist and hold one of ``roles``.

        @router.get("/", dependencies=[Depends(require_roles("admin"))])
    """
    allowed = [r.value if isinstance(r, UserRole) else str(r) for r in roles]

    async def role_checker(
        principal: TokenClaims = Depends(get_current_principal),
        account: AccountModel = Depends(get_current_account),
    ) -> TokenClaims:
        if account.role_name not in allowed:
            logger.warning(
                f"Access denied for role {account.role_name}",
                extra={"event_type": "access_denied", "required_roles": allowed},
            )
            raise AccessDeniedError(allowed)
        return principal

    return role_checker


admin_only = require_roles(UserRole.ADMIN)
maintenance_office_only = require_roles(UserRole.MAINTENANCE_OFFICE)
admin_or_maintenance = require_roles(UserRole.ADMIN, UserRole.MAINTENANCE_OFFICE)
staff_only = require_roles(UserRole.ADMIN, UserRole.INSTRUCTOR, UserRole.MAINTENANCE_OFFICE)
student_only = require_roles(STUDENT_ROLE)
