"""Custom SQLAlchemy column types shared by the models"""
from sqlalchemy import TypeDecorator, String
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError):
        return False
    return True


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class LowercaseString(TypeDecorator):
    """
    String column that is always stored trimmed and lowercased.

    Used for emails so that uniqueness and lookups are case-insensitive
    on every backend, including SQLite.
    """
    impl = String(255)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value).strip().lower()
        return value
