from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from aaghaaz.core.database import Base
from aaghaaz.core.types import GUID, generate_uuid


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    DROPPED = "Dropped"


class Enrollment(Base):
    """A student's seat in a course"""
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    enrollment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.ACTIVE, nullable=False)

    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments", lazy="selectin")
