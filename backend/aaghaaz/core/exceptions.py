"""
Custom Exceptions for Aaghaaz Admin
===================================

Every error surfaced to API callers derives from AaghaazError. The API layer
turns it into ``{"detail": message, "code": code}`` with ``status_code``;
internal causes (driver errors, stack traces) never go into ``message``.

Usage:
    from aaghaaz.core.exceptions import StudentNotFoundError

    if not student:
        raise StudentNotFoundError(student_id)
"""

from typing import Optional, Any, Dict, Iterable


class AaghaazError(Exception):
    """Base exception for all application errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(AaghaazError):
    """Service misconfiguration detected at startup"""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(AaghaazError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, code=code)


class AuthenticationRequiredError(AuthenticationError):
    """No bearer token on a protected route"""

    def __init__(self):
        super().__init__("Authentication required", code="AUTHENTICATION_REQUIRED")


class InvalidTokenError(AuthenticationError):
    """
    Token is malformed, expired, badly signed, or of the wrong kind.

    All of those cases share one message so callers cannot tell them apart.
    """

    def __init__(self):
        super().__init__("Invalid token", code="INVALID_TOKEN")


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password - deliberately indistinguishable"""

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class AccessDeniedError(AaghaazError):
    """Authenticated, but the role is not allowed for this action"""

    status_code = 403

    def __init__(self, required_roles: Iterable[str]):
        roles = list(required_roles)
        super().__init__(
            f"Access denied. Required role: {' or '.join(roles)}",
            code="ACCESS_DENIED",
            details={"required_roles": roles},
        )


class AccountInactiveError(AaghaazError):
    """Student account exists but is not allowed to sign in yet"""

    status_code = 403

    def __init__(self, account_status: str):
        super().__init__(
            "Your account is not active. Please contact the administration for more information.",
            code="ACCOUNT_INACTIVE",
            details={"status": account_status},
        )


class IncorrectPasswordError(AaghaazError):
    """Password re-proof failed on an authenticated request"""

    status_code = 400

    def __init__(self, message: str = "Current password is incorrect"):
        super().__init__(message, code="INCORRECT_PASSWORD")


# ============================================
# Two-Factor Errors
# ============================================

class InvalidVerificationCodeError(AaghaazError):
    """TOTP code did not verify"""

    status_code = 400

    def __init__(self):
        super().__init__("Invalid verification code", code="INVALID_VERIFICATION_CODE")


class TwoFactorStateError(AaghaazError):
    """Requested 2FA transition is not valid from the current state"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="TWO_FACTOR_STATE")


class TwoFactorInconsistentError(AaghaazError):
    """2FA enabled but no secret stored"""

    status_code = 500

    def __init__(self):
        super().__init__("Two-factor configuration error", code="TWO_FACTOR_INCONSISTENT")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(AaghaazError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, student_id: str):
        super().__init__("Student", student_id)


class CourseNotFoundError(ResourceNotFoundError):
    def __init__(self, course_id: str):
        super().__init__("Course", course_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AaghaazError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateAccountError(ValidationError):
    """Email or CNIC already registered"""

    def __init__(self, field: str):
        label = "CNIC" if field == "cnic" else "Email"
        super().__init__(f"{label} already registered", field=field)
        self.code = "DUPLICATE_ACCOUNT"


class InvalidCourseSelectionError(ValidationError):
    def __init__(self, message: str = "One or more selected courses do not exist"):
        super().__init__(message, field="enrolled_courses")
        self.code = "INVALID_COURSE_SELECTION"


# ============================================
# External Collaborator Errors
# ============================================

class ImageUploadError(AaghaazError):
    """Image host rejected or timed out on an upload"""

    status_code = 502

    def __init__(self, message: str = "Error uploading image"):
        super().__init__(message, code="IMAGE_UPLOAD_FAILED")


class EmailDeliveryError(AaghaazError):
    """Mail transport failed"""

    status_code = 502

    def __init__(self, message: str = "Error sending email"):
        super().__init__(message, code="EMAIL_DELIVERY_FAILED")


def error_response(error: AaghaazError) -> Dict[str, Any]:
    """Convert exception to API error response body"""
    body: Dict[str, Any] = {"detail": error.message, "code": error.code}
    if isinstance(error, AccountInactiveError):
        body["status"] = error.details.get("status")
    return body
