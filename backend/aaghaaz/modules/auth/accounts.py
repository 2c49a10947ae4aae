"""
Account capability shared by staff users and students.

Both ``User`` and ``Student`` satisfy :class:`Account` through
``CredentialMixin``; everything in the auth flow (login, 2FA, password
change, profile lookup) is written against that protocol so the staff and
student portals go through exactly the same code.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Type, Union, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aaghaaz.core.exceptions import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from aaghaaz.core.logging_config import logger
from aaghaaz.core.security import get_password_hash, verify_password_async
from aaghaaz.core.tokens import TokenClaims, TokenService
from aaghaaz.core.types import is_valid_uuid
from aaghaaz.core import two_factor
from aaghaaz.models.student import STUDENT_ROLE, Student
from aaghaaz.models.user import User


@runtime_checkable
class Account(Protocol):
    id: str
    email: str
    hashed_password: Optional[str]
    two_factor_secret: Optional[str]
    two_factor_enabled: bool

    @property
    def role_name(self) -> str: ...

    def verify_password(self, plain_password: str) -> bool: ...


class AccountKind(str, Enum):
    STAFF = "staff"
    STUDENT = "student"


_MODELS = {
    AccountKind.STAFF: User,
    AccountKind.STUDENT: Student,
}

AccountModel = Union[User, Student]

_dummy_hash: Optional[str] = None


def _timing_dummy_hash() -> str:
    # Unknown emails still pay for one bcrypt check
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = get_password_hash("not-a-real-password")
    return _dummy_hash


def kind_for_role(role: str) -> AccountKind:
    return AccountKind.STUDENT if role == STUDENT_ROLE else AccountKind.STAFF


@dataclass
class LoginOutcome:
    """Result of the password step of a login"""
    account: AccountModel
    access_token: Optional[str] = None
    pending_token: Optional[str] = None

    @property
    def requires_2fa(self) -> bool:
        return self.pending_token is not None


class AccountRepository:
    """Looks up and authenticates accounts of either kind"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def model_for(kind: AccountKind) -> Type[AccountModel]:
        return _MODELS[kind]

    async def get_by_email(self, kind: AccountKind, email: str) -> Optional[AccountModel]:
        model = self.model_for(kind)
        result = await self.db.execute(select(model).where(model.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, kind: AccountKind, account_id: str) -> Optional[AccountModel]:
        if not is_valid_uuid(account_id):
            return None
        model = self.model_for(kind)
        result = await self.db.execute(select(model).where(model.id == str(account_id)))
        return result.scalar_one_or_none()

    async def get_by_claims(self, claims: TokenClaims) -> AccountModel:
        """Resolve the account a verified token speaks for; unknown subject is an invalid token"""
        account = await self.get_by_id(kind_for_role(claims.role), claims.subject)
        if account is None or account.role_name != claims.role:
            raise InvalidTokenError()
        return account

    async def email_taken(self, email: str) -> bool:
        """True when any account kind already uses ``email``"""
        for kind in AccountKind:
            if await self.get_by_email(kind, email) is not None:
                return True
        return False

    async def authenticate(self, kind: AccountKind, email: str, password: str) -> AccountModel:
        """
        Check email and password.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        Students outside the Enrolled status get AccountInactiveError, but only
        after the password has been proven.
        """
        account = await self.get_by_email(kind, email)
        if account is None:
            await verify_password_async(password, _timing_dummy_hash())
            logger.log_auth_event("login", success=False, user_email=email, reason="unknown account", kind=kind.value)
            raise InvalidCredentialsError()

        if not await account.verify_password_async(password):
            logger.log_auth_event("login", success=False, user_email=account.email, reason="bad password", kind=kind.value)
            raise InvalidCredentialsError()

        if isinstance(account, Student) and not account.can_access_account():
            status_value = account.status.value
            logger.log_auth_event("login", success=False, user_email=account.email, reason=f"status {status_value}", kind=kind.value)
            raise AccountInactiveError(status_value)

        return account


def start_session(account: AccountModel, tokens: TokenService) -> LoginOutcome:
    """
    Issue the token that follows a successful password check.

    Accounts with an active second factor only get a pending token; the
    full token comes from :func:`complete_two_factor_login`.
    """
    if two_factor.two_factor_state(account) == two_factor.TwoFactorState.ACTIVE:
        pending = tokens.issue_pending_token(account.id, account.role_name, account.email)
        logger.log_auth_event("login", success=True, user_email=account.email, reason="awaiting 2fa")
        return LoginOutcome(account=account, pending_token=pending)

    access = tokens.issue_full_token(account.id, account.role_name, account.email)
    logger.log_auth_event("login", success=True, user_email=account.email)
    return LoginOutcome(account=account, access_token=access)


async def complete_two_factor_login(
    repo: AccountRepository,
    tokens: TokenService,
    pending_token: str,
    code: str,
) -> LoginOutcome:
    claims = tokens.verify_pending(pending_token)
    account = await repo.get_by_claims(claims)
    try:
        two_factor.check_login_code(account, code)
    except Exception:
        logger.log_auth_event("verify_2fa", success=False, user_email=account.email)
        raise
    access = tokens.issue_full_token(account.id, account.role_name, account.email)
    logger.log_auth_event("verify_2fa", success=True, user_email=account.email)
    return LoginOutcome(account=account, access_token=access)
