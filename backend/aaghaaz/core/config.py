from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any
import json
from pathlib import Path


def parse_csv_list(v: Any) -> List[str]:
    """Parse a list setting from a JSON array or comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Aaghaaz Tech Admin"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    # No default on purpose: the service must not start without a signing secret
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    PENDING_TOKEN_EXPIRE_MINUTES: int = 5
    BCRYPT_ROUNDS: int = 12  # 4 for tests (fast), 12 for prod
    PASSWORD_MIN_LENGTH: int = 6

    # ==========================================
    # Two-Factor Authentication
    # ==========================================
    TWO_FACTOR_ISSUER: str = "Aaghaaz Tech"
    # Each step is 30s; 6 steps tolerates ~3 minutes of clock drift
    TWO_FACTOR_WINDOW_STEPS: int = 6

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@aaghaaztech.com"
    EMAIL_FROM_NAME: str = "Aaghaaz Tech"

    # ==========================================
    # Image Host (Cloudinary)
    # ==========================================
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "student_profiles"
    IMAGE_UPLOAD_TIMEOUT: int = 120  # seconds

    # ==========================================
    # File Upload
    # ==========================================
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_TYPES_STR: str = "image/jpeg,image/png,image/gif"

    @property
    def ALLOWED_IMAGE_TYPES(self) -> List[str]:
        return parse_csv_list(self.ALLOWED_IMAGE_TYPES_STR)

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_csv_list(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    @field_validator("DATABASE_URL", "JWT_SECRET_KEY")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("TWO_FACTOR_WINDOW_STEPS")
    @classmethod
    def window_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("TWO_FACTOR_WINDOW_STEPS cannot be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
