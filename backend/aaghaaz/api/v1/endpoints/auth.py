from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import Optional, Union

from aaghaaz.core.database import get_db
from aaghaaz.core.exceptions import DuplicateAccountError, IncorrectPasswordError
from aaghaaz.core.logging_config import logger, set_user_id
from aaghaaz.core.rate_limiter import limiter, LOGIN_LIMIT, REGISTER_LIMIT, TWO_FACTOR_LIMIT
from aaghaaz.core.security import get_password_hash_async
from aaghaaz.core.tokens import TokenService
from aaghaaz.core import two_factor
from aaghaaz.models.student import Student
from aaghaaz.models.user import User
from aaghaaz.modules.auth.accounts import (
    AccountKind,
    AccountModel,
    AccountRepository,
    LoginOutcome,
    complete_two_factor_login,
    start_session,
)
from aaghaaz.modules.auth.dependencies import get_current_account, token_service_dependency
from aaghaaz.schemas.auth import (
    ChangePassword,
    LoginResponse,
    MessageResponse,
    PasswordConfirmation,
    PendingLoginResponse,
    Profile,
    ProfileUpdate,
    StaffProfile,
    StudentProfile,
    TwoFactorCode,
    TwoFactorSetupResponse,
    UserLogin,
    UserRegister,
    VerifyTwoFactorLogin,
)

router = APIRouter()

STAFF_PROFILE_FIELDS = {"first_name", "last_name", "phone_number", "expertise", "languages", "location"}
STUDENT_PROFILE_FIELDS = {
    "first_name", "last_name", "phone_number", "address",
    "guardian_name", "guardian_phone", "guardian_relation",
}


def to_profile(account: AccountModel) -> Profile:
    if isinstance(account, Student):
        return StudentProfile.model_validate(account)
    return StaffProfile.model_validate(account)


def login_response(outcome: LoginOutcome) -> Union[LoginResponse, PendingLoginResponse]:
    """Shape a LoginOutcome for the wire; shared by staff and student login"""
    if outcome.requires_2fa:
        return PendingLoginResponse(pending_token=outcome.pending_token)
    return LoginResponse(access_token=outcome.access_token, user=to_profile(outcome.account))


async def confirm_password(account: AccountModel, password: str, event: str) -> None:
    if not await account.verify_password_async(password):
        logger.log_auth_event(event, success=False, user_email=account.email, reason="password re-proof failed")
        raise IncorrectPasswordError("Password is incorrect")


async def taken_field(db: AsyncSession, email: str, cnic: str) -> Optional[str]:
    """Which of email or CNIC is already registered, if either"""
    if await AccountRepository(db).email_taken(email):
        return "email"
    result = await db.execute(select(User.id).where(User.cnic == cnic))
    if result.first() is not None:
        return "cnic"
    return None


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(token_service_dependency),
):
    """Register a staff account (rate limited: 3/min)"""
    client_ip = request.client.host if request.client else "unknown"

    field = await taken_field(db, user_data.email, user_data.cnic)
    if field:
        logger.log_auth_event("register", success=False, user_email=user_data.email,
                              reason=f"{field} already registered", client_ip=client_ip)
        raise DuplicateAccountError(field)

    data = user_data.model_dump(exclude={"password", "location", "profile_picture"})
    user = User(
        **data,
        location=user_data.location.model_dump() if user_data.location else None,
        profile_picture=user_data.profile_picture or "",
        hashed_password=await get_password_hash_async(user_data.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration; report the field that collided
        await db.rollback()
        field = await taken_field(db, user_data.email, user_data.cnic) or "email"
        logger.log_auth_event("register", success=False, user_email=user_data.email,
                              reason=f"{field} already registered", client_ip=client_ip)
        raise DuplicateAccountError(field)

    set_user_id(str(user.id))
    logger.log_auth_event("register", success=True, user_email=user.email,
                          client_ip=client_ip, user_role=user.role_name)

    access_token = tokens.issue_full_token(user.id, user.role_name, user.email)
    return LoginResponse(access_token=access_token, user=to_profile(user))


@router.post("/login", response_model=Union[LoginResponse, PendingLoginResponse])
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(token_service_dependency),
):
    """
    Staff login (rate limited: 5/min).

    Accounts with two-factor authentication get ``requires2FA`` and a
    pending token instead of a session; finish on /login/verify-2fa.
    """
    account = await AccountRepository(db).authenticate(AccountKind.STAFF, credentials.email, credentials.password)
    set_user_id(str(account.id))
    return login_response(start_session(account, tokens))


@router.post("/login/verify-2fa", response_model=LoginResponse)
@limiter.limit(TWO_FACTOR_LIMIT)
async def verify_two_factor_login(
    request: Request,
    body: VerifyTwoFactorLogin,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(token_service_dependency),
):
    """Exchange a pending token and a TOTP code for a full session token"""
    outcome = await complete_two_factor_login(AccountRepository(db), tokens, body.pending_token, body.code)
    set_user_id(str(outcome.account.id))
    return login_response(outcome)


@router.get("/profile", response_model=Profile)
async def get_profile(account: AccountModel = Depends(get_current_account)):
    return to_profile(account)


@router.put("/profile", response_model=Profile)
async def update_profile(
    profile_data: ProfileUpdate,
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Update the caller's own profile; fields of the other account kind are ignored"""
    allowed = STUDENT_PROFILE_FIELDS if isinstance(account, Student) else STAFF_PROFILE_FIELDS
    changes = profile_data.model_dump(exclude_unset=True, exclude_none=True, include=allowed)

    for field, value in changes.items():
        setattr(account, field, value)
    account.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(f"[Auth] Profile updated for {account.email}", extra={"fields": sorted(changes)})
    return to_profile(account)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePassword,
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    if not await account.verify_password_async(body.current_password):
        logger.log_auth_event("change_password", success=False, user_email=account.email,
                              reason="current password incorrect")
        raise IncorrectPasswordError()

    account.hashed_password = await get_password_hash_async(body.new_password)
    account.updated_at = datetime.utcnow()
    await db.commit()

    logger.log_auth_event("change_password", success=True, user_email=account.email)
    return MessageResponse(message="Password updated successfully")


# ==================== Two-factor management ====================

@router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
async def setup_two_factor(
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate and store a fresh secret.

    The factor is not enforced until a code is confirmed on /2fa/verify.
    """
    secret = two_factor.begin_setup(account)
    await db.commit()

    uri = two_factor.provisioning_uri(secret, account.email)
    logger.log_auth_event("2fa_setup", success=True, user_email=account.email)
    return TwoFactorSetupResponse(secret=secret, otpauth_url=uri, qr_code=two_factor.qr_code_data_url(uri))


@router.post("/2fa/verify", response_model=MessageResponse)
async def verify_two_factor_setup(
    body: TwoFactorCode,
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    try:
        two_factor.activate(account, body.code)
    except Exception:
        logger.log_auth_event("2fa_enable", success=False, user_email=account.email)
        raise
    await db.commit()

    logger.log_auth_event("2fa_enable", success=True, user_email=account.email)
    return MessageResponse(message="Two-factor authentication enabled")


@router.post("/2fa/disable", response_model=MessageResponse)
async def disable_two_factor(
    body: PasswordConfirmation,
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Turn two-factor off; the current password is required"""
    await confirm_password(account, body.password, "2fa_disable")

    two_factor.disable(account)
    await db.commit()

    logger.log_auth_event("2fa_disable", success=True, user_email=account.email)
    return MessageResponse(message="Two-factor authentication disabled")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    body: PasswordConfirmation,
    account: AccountModel = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Delete the caller's own account; the current password is required"""
    await confirm_password(account, body.password, "delete_account")

    email = account.email
    await db.delete(account)
    await db.commit()

    logger.log_auth_event("delete_account", success=True, user_email=email)
    return MessageResponse(message="Account deleted successfully")
