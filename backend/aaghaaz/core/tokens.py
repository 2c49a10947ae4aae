"""
Token Service
=============

Issues and verifies the stateless bearer tokens used by the API.

Two kinds of token exist:

* ``access``      - full session, 24h by default
* ``pending_2fa`` - restricted token handed out mid-login when the account has
  two-factor authentication active; it carries ``requires2FA: true``, lives
  5 minutes and is only honoured by the 2FA completion endpoint.

Tokens are not stored server side, so there is no revocation: a leaked token
stays valid until it expires. Keep ACCESS_TOKEN_EXPIRE_MINUTES as short as the
product allows.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from aaghaaz.core.config import settings
from aaghaaz.core.exceptions import ConfigurationError, InvalidTokenError

MIN_SECRET_LENGTH = 32

# Fallbacks that have shipped in sample configs; refuse them outright
KNOWN_WEAK_SECRETS = {
    "121212",
    "secret",
    "changeme",
    "change_me",
    "your-secret-key",
    "your-secret-key-change-this-in-production",
}


class TokenKind(str, Enum):
    ACCESS = "access"
    PENDING_2FA = "pending_2fa"


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity carried by a token"""
    subject: str
    role: str
    kind: TokenKind
    email: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.kind == TokenKind.PENDING_2FA


def validate_signing_secret(secret_key: Optional[str]) -> str:
    if not secret_key or not secret_key.strip():
        raise ConfigurationError("JWT_SECRET_KEY is not set")
    if secret_key.strip().lower() in KNOWN_WEAK_SECRETS:
        raise ConfigurationError("JWT_SECRET_KEY is using a placeholder value")
    if len(secret_key) < MIN_SECRET_LENGTH:
        raise ConfigurationError(
            f"JWT_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters"
        )
    return secret_key


class TokenService:
    """Signs and verifies access and pending-2FA tokens with one process-wide secret"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=24),
        pending_ttl: timedelta = timedelta(minutes=5),
    ):
        self._secret_key = validate_signing_secret(secret_key)
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.pending_ttl = pending_ttl

    def _encode(self, claims: Dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({"iat": now, "exp": now + ttl})
        return jwt.encode(to_encode, self._secret_key, algorithm=self.algorithm)

    def issue_full_token(self, subject: str, role: str, email: Optional[str] = None) -> str:
        """Create a full session token"""
        claims: Dict[str, Any] = {"sub": str(subject), "role": role, "type": TokenKind.ACCESS.value}
        if email:
            claims["email"] = email
        return self._encode(claims, self.access_ttl)

    def issue_pending_token(self, subject: str, role: str, email: Optional[str] = None) -> str:
        """Create the short-lived token that only allows completing a 2FA login"""
        claims: Dict[str, Any] = {
            "sub": str(subject),
            "role": role,
            "type": TokenKind.PENDING_2FA.value,
            "requires2FA": True,
        }
        if email:
            claims["email"] = email
        return self._encode(claims, self.pending_ttl)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token of either kind.

        Raises InvalidTokenError for a bad signature, malformed token, missing
        claims, unknown kind or elapsed expiry.
        """
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise InvalidTokenError()

        subject = payload.get("sub")
        role = payload.get("role")
        if not subject or not role or "exp" not in payload:
            raise InvalidTokenError()

        try:
            kind = TokenKind(payload.get("type"))
        except ValueError:
            raise InvalidTokenError()

        # requires2FA and kind must agree; anything else was not minted here
        if (kind == TokenKind.PENDING_2FA) != bool(payload.get("requires2FA", False)):
            raise InvalidTokenError()

        return TokenClaims(
            subject=str(subject),
            role=str(role),
            kind=kind,
            email=payload.get("email"),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def verify_full(self, token: str) -> TokenClaims:
        """Accept only full session tokens"""
        claims = self.verify(token)
        if claims.kind != TokenKind.ACCESS:
            raise InvalidTokenError()
        return claims

    def verify_pending(self, token: str) -> TokenClaims:
        """Accept only pending-2FA tokens"""
        claims = self.verify(token)
        if claims.kind != TokenKind.PENDING_2FA:
            raise InvalidTokenError()
        return claims


def build_token_service() -> TokenService:
    """Construct the service from settings; raises ConfigurationError when the secret is unusable"""
    return TokenService(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        pending_ttl=timedelta(minutes=settings.PENDING_TOKEN_EXPIRE_MINUTES),
    )


_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """Process-wide TokenService, created on first use"""
    global _token_service
    if _token_service is None:
        _token_service = build_token_service()
    return _token_service
