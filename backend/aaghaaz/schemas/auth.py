from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from typing import Annotated, List, Optional, Union
from datetime import date, datetime

from aaghaaz.core.config import settings
from aaghaaz.models.student import StudentStatus
from aaghaaz.models.user import Qualification, UserRole

CNIC_PATTERN = r"^\d{13}$"


def _check_password_length(value: str) -> str:
    if len(value) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    return value


NewPassword = Annotated[str, AfterValidator(_check_password_length)]

# Stored emails are lowercase; match that before lookups and inserts
NormalizedEmail = Annotated[EmailStr, AfterValidator(lambda value: value.strip().lower())]


class Location(BaseModel):
    country: Optional[str] = None
    city: Optional[str] = None


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


# ============================================
# Requests
# ============================================

class UserRegister(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: NormalizedEmail
    password: NewPassword
    cnic: str = Field(..., pattern=CNIC_PATTERN, description="13-digit CNIC without dashes")
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    expertise: List[str] = Field(..., min_length=1)
    languages: List[str] = []
    location: Optional[Location] = None
    profile_picture: Optional[str] = None
    qualification: Qualification
    role: UserRole


class UserLogin(BaseModel):
    email: NormalizedEmail
    password: str


class VerifyTwoFactorLogin(BaseModel):
    pending_token: str
    code: str = Field(..., min_length=1, max_length=10)


class TwoFactorCode(BaseModel):
    code: str = Field(..., min_length=1, max_length=10)


class PasswordConfirmation(BaseModel):
    """Body for actions that require re-proving the current password"""
    password: str


class ChangePassword(BaseModel):
    current_password: str
    new_password: NewPassword


class ProfileUpdate(BaseModel):
    """
    Mutable profile fields. Fields that do not apply to the caller's
    account kind are ignored.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    # Staff
    expertise: Optional[List[str]] = Field(None, min_length=1)
    languages: Optional[List[str]] = None
    location: Optional[Location] = None
    # Students
    address: Optional[Address] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_relation: Optional[str] = None


# ============================================
# Responses
# ============================================

class StaffProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    email: str
    role: UserRole
    cnic: str
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    expertise: List[str] = []
    languages: List[str] = []
    location: Optional[Location] = None
    profile_picture: str = ""
    qualification: Qualification
    is_verified: bool = False
    two_factor_enabled: bool = False
    created_at: datetime


class StudentProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    roll_id: str
    first_name: str
    last_name: str
    email: str
    role: str
    status: StudentStatus
    phone_number: Optional[str] = None
    profile_picture: str = ""
    address: Optional[Address] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_relation: Optional[str] = None
    two_factor_enabled: bool = False
    created_at: datetime


Profile = Union[StaffProfile, StudentProfile]


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Profile


class PendingLoginResponse(BaseModel):
    """Password accepted; a TOTP code must follow on /login/verify-2fa"""
    model_config = ConfigDict(populate_by_name=True)

    requires_2fa: bool = Field(True, alias="requires2FA")
    pending_token: str
    message: str = "Two-factor authentication required"


class TwoFactorSetupResponse(BaseModel):
    secret: str
    otpauth_url: str
    qr_code: str


class MessageResponse(BaseModel):
    message: str
