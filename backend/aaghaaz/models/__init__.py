# Re-export all models for convenient imports
from aaghaaz.models.user import User, UserRole, Qualification
from aaghaaz.models.student import Student, StudentStatus, Gender, STUDENT_ROLE
from aaghaaz.models.course import Course, ModeOfDelivery
from aaghaaz.models.enrollment import Enrollment, EnrollmentStatus

__all__ = [
    "User",
    "UserRole",
    "Qualification",
    "Student",
    "StudentStatus",
    "Gender",
    "STUDENT_ROLE",
    "Course",
    "ModeOfDelivery",
    "Enrollment",
    "EnrollmentStatus",
]
