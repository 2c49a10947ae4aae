from sqlalchemy import Column, String, Date, Enum as SQLEnum, JSON
from sqlalchemy.orm import relationship
import enum

from aaghaaz.core.database import Base
from aaghaaz.core.types import GUID, LowercaseString, generate_uuid
from aaghaaz.models.mixins import CredentialMixin, TimestampMixin

STUDENT_ROLE = "student"


class StudentStatus(str, enum.Enum):
    PENDING = "Pending"
    ENROLLED = "Enrolled"
    ELIMINATED = "Eliminated"
    SUSPENDED = "Suspended"


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


# Only these statuses may sign in to the student portal
LOGIN_ALLOWED_STATUSES = {StudentStatus.ENROLLED}


class Student(CredentialMixin, TimestampMixin, Base):
    """Student record; also an account with the implicit ``student`` role"""
    __tablename__ = "students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    roll_id = Column(String(20), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(LowercaseString, unique=True, index=True, nullable=False)
    cnic = Column(String(13), unique=True, index=True, nullable=True)
    phone_number = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(SQLEnum(Gender), nullable=True)
    address = Column(JSON, nullable=True)

    guardian_name = Column(String(200), nullable=True)
    guardian_phone = Column(String(20), nullable=True)
    guardian_relation = Column(String(50), nullable=True)

    profile_picture = Column(String(500), nullable=False, default="")
    status = Column(SQLEnum(StudentStatus), nullable=False, default=StudentStatus.PENDING)

    enrollments = relationship(
        "Enrollment",
        back_populates="student",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def role(self) -> str:
        return STUDENT_ROLE

    @property
    def role_name(self) -> str:
        return STUDENT_ROLE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def can_access_account(self) -> bool:
        return self.status in LOGIN_ALLOWED_STATUSES

    def __repr__(self):
        return f"<Student {self.roll_id} {self.email}>"
