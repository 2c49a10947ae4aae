"""
Two-Factor Verifier (TOTP, RFC 6238, 30 second steps).

Lifecycle of an account's second factor:

    UNCONFIGURED --begin_setup--> PENDING_ACTIVATION --activate(code)--> ACTIVE
         ^                                                                  |
         +------------------------------disable-----------------------------+

begin_setup may be repeated while the factor is not yet active; each call
replaces the secret entirely. An active factor must be disabled first.
"""
import base64
import binascii
import io
from datetime import datetime
from enum import Enum
from typing import Optional, Union

import pyotp
import qrcode
from qrcode.constants import ERROR_CORRECT_M

from aaghaaz.core.config import settings
from aaghaaz.core.exceptions import (
    InvalidVerificationCodeError,
    TwoFactorInconsistentError,
    TwoFactorStateError,
)

TOTP_DIGITS = 6
TOTP_INTERVAL = 30

ForTime = Optional[Union[datetime, int, float]]


class TwoFactorState(str, Enum):
    UNCONFIGURED = "unconfigured"
    PENDING_ACTIVATION = "pending_activation"
    ACTIVE = "active"


def generate_secret() -> str:
    """Random base32 secret"""
    return pyotp.random_base32()


def _totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)


def current_code(secret: str, for_time: ForTime = None) -> str:
    """Code for the step containing ``for_time`` (now by default)"""
    totp = _totp(secret)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def verify_code(
    secret: str,
    code: Optional[str],
    window_steps: Optional[int] = None,
    for_time: ForTime = None,
) -> bool:
    """
    True when ``code`` matches any step within ``window_steps`` of ``for_time``.

    The default window comes from TWO_FACTOR_WINDOW_STEPS. A wide window
    tolerates clock drift but gives brute force proportionally more hits.
    """
    if not secret or not code:
        return False
    code = str(code).strip().replace(" ", "")
    if len(code) != TOTP_DIGITS or not code.isdigit():
        return False
    if window_steps is None:
        window_steps = settings.TWO_FACTOR_WINDOW_STEPS
    try:
        return _totp(secret).verify(code, for_time=for_time, valid_window=window_steps)
    except (TypeError, ValueError, binascii.Error):
        # Corrupt secret on record
        return False


def provisioning_uri(secret: str, account_email: str) -> str:
    """otpauth:// URI understood by authenticator apps"""
    return _totp(secret).provisioning_uri(name=account_email, issuer_name=settings.TWO_FACTOR_ISSUER)


def qr_code_data_url(data: str, box_size: int = 8) -> str:
    """Render ``data`` as a PNG QR code and return it as a data URL"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


# ==================== State transitions ====================
# ``account`` is anything with two_factor_secret / two_factor_enabled
# attributes (see aaghaaz.modules.auth.accounts.Account).

def two_factor_state(account) -> TwoFactorState:
    if account.two_factor_enabled:
        if not account.two_factor_secret:
            raise TwoFactorInconsistentError()
        return TwoFactorState.ACTIVE
    if account.two_factor_secret:
        return TwoFactorState.PENDING_ACTIVATION
    return TwoFactorState.UNCONFIGURED


def begin_setup(account) -> str:
    """Store a brand new secret; the factor is not enforced until activated"""
    if two_factor_state(account) == TwoFactorState.ACTIVE:
        raise TwoFactorStateError("Two-factor authentication is already enabled")
    secret = generate_secret()
    account.two_factor_secret = secret
    account.two_factor_enabled = False
    return secret


def activate(account, code: str, window_steps: Optional[int] = None) -> None:
    state = two_factor_state(account)
    if state == TwoFactorState.UNCONFIGURED:
        raise TwoFactorStateError("Two-factor setup has not been started")
    if state == TwoFactorState.ACTIVE:
        raise TwoFactorStateError("Two-factor authentication is already enabled")
    if not verify_code(account.two_factor_secret, code, window_steps):
        raise InvalidVerificationCodeError()
    account.two_factor_enabled = True


def check_login_code(account, code: str, window_steps: Optional[int] = None) -> None:
    """Second step of login; account must have an active factor"""
    if two_factor_state(account) != TwoFactorState.ACTIVE:
        raise TwoFactorStateError("Two-factor authentication is not enabled")
    if not verify_code(account.two_factor_secret, code, window_steps):
        raise InvalidVerificationCodeError()


def disable(account) -> None:
    account.two_factor_secret = None
    account.two_factor_enabled = False
