from sqlalchemy import Column, String, Boolean, Date, Enum as SQLEnum, JSON
import enum

from aaghaaz.core.database import Base
from aaghaaz.core.types import GUID, LowercaseString, generate_uuid
from aaghaaz.models.mixins import CredentialMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """Staff roles"""
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    MAINTENANCE_OFFICE = "maintenance_office"


class Qualification(str, enum.Enum):
    MATRIC = "Matric"
    INTERMEDIATE = "Intermediate"
    UNDERGRADUATE = "Undergraduate"
    GRADUATE = "Graduate"
    MASTERS = "Masters"
    PHD = "PHD"
    OTHER = "Other"


class User(CredentialMixin, TimestampMixin, Base):
    """Staff account (admin, instructor, maintenance office)"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(LowercaseString, unique=True, index=True, nullable=False)
    cnic = Column(String(13), unique=True, index=True, nullable=False)
    phone_number = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)

    expertise = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    location = Column(JSON, nullable=True)  # {"country": ..., "city": ...}
    profile_picture = Column(String(500), nullable=False, default="")
    qualification = Column(SQLEnum(Qualification), nullable=False)

    role = Column(SQLEnum(UserRole), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, UserRole) else str(self.role)

    def __repr__(self):
        return f"<User {self.email}>"
