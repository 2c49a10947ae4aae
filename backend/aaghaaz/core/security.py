"""
Credential store primitives: password hashing and verification.

bcrypt is CPU-bound; request handlers should use the ``*_async``
variants so the work runs in the thread pool and never stalls the event loop.
"""
from typing import Optional

import bcrypt
from starlette.concurrency import run_in_threadpool

from aaghaaz.core.config import settings
from aaghaaz.core.exceptions import ValidationError

# Bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _to_bcrypt_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    hashed = bcrypt.hashpw(_to_bcrypt_bytes(password), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password. Returns False (never raises) for wrong or unusable hashes."""
    if not hashed_password or plain_password is None:
        return False
    try:
        return bcrypt.checkpw(_to_bcrypt_bytes(plain_password), hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed hash (e.g. legacy or hand-edited record)
        return False


def validate_password_strength(password: str) -> str:
    """Enforce the minimum length floor for new passwords"""
    if password is None or len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long",
            field="password",
        )
    return password


async def get_password_hash_async(password: str) -> str:
    return await run_in_threadpool(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: Optional[str]) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)
