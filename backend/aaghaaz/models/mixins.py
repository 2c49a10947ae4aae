from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime

from aaghaaz.core.security import verify_password, verify_password_async


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CredentialMixin:
    """
    Authentication shape shared by staff users and students.

    Provides the Account capability (see aaghaaz.modules.auth.accounts):
    ``id``, ``email``, ``role`` and ``verify_password`` plus the 2FA columns.
    """

    hashed_password = Column(String(255), nullable=True)
    two_factor_secret = Column(String(64), nullable=True)
    two_factor_enabled = Column(Boolean, default=False, nullable=False)

    def verify_password(self, plain_password: str) -> bool:
        return verify_password(plain_password, self.hashed_password)

    async def verify_password_async(self, plain_password: str) -> bool:
        return await verify_password_async(plain_password, self.hashed_password)

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)
