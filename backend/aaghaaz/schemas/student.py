from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime

from aaghaaz.models.enrollment import EnrollmentStatus
from aaghaaz.models.student import Gender, StudentStatus
from aaghaaz.schemas.auth import Address, CNIC_PATTERN, NewPassword, NormalizedEmail


class StudentCreate(BaseModel):
    """JSON create used by the back office; the student gets no credential"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: NormalizedEmail
    cnic: Optional[str] = Field(None, pattern=CNIC_PATTERN)
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[Address] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_relation: Optional[str] = None
    status: StudentStatus = StudentStatus.PENDING
    enrolled_courses: List[str] = []


class StudentRegistration(StudentCreate):
    """Portal registration: same fields as StudentCreate plus a password"""
    password: NewPassword


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[NormalizedEmail] = None
    cnic: Optional[str] = Field(None, pattern=CNIC_PATTERN)
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[Address] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_relation: Optional[str] = None
    status: Optional[StudentStatus] = None
    enrolled_courses: Optional[List[str]] = None


class EnrolledCourse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    course_name: Optional[str] = None
    enrollment_date: datetime
    status: EnrollmentStatus


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    roll_id: str
    first_name: str
    last_name: str
    email: str
    cnic: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[Address] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_relation: Optional[str] = None
    profile_picture: str = ""
    status: StudentStatus
    enrolled_courses: List[EnrolledCourse] = []
    created_at: datetime

    @classmethod
    def from_student(cls, student) -> "StudentResponse":
        data = cls.model_validate(student)
        data.enrolled_courses = [
            EnrolledCourse(
                course_id=e.course_id,
                course_name=e.course.name if e.course is not None else None,
                enrollment_date=e.enrollment_date,
                status=e.status,
            )
            for e in student.enrollments
        ]
        return data


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class StudentCountResponse(BaseModel):
    total: int
    pending: int = 0
    enrolled: int = 0
    eliminated: int = 0
    suspended: int = 0


class EnrolledCountResponse(BaseModel):
    count: int


class SendIdCardResponse(BaseModel):
    message: str
    email: str


class StudentRegisterResponse(BaseModel):
    message: str
    student: StudentResponse
    id_card_sent: bool
