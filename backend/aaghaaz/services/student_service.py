"""
Student Service Layer
Student records, enrollments, listing queries and CSV export
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
import csv
import json
import io

from sqlalchemy import select, func, or_, asc, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from aaghaaz.core.exceptions import (
    DuplicateAccountError,
    InvalidCourseSelectionError,
    StudentNotFoundError,
    ValidationError,
)
from aaghaaz.core.logging_config import logger
from aaghaaz.core.types import is_valid_uuid
from aaghaaz.models.course import Course
from aaghaaz.models.enrollment import Enrollment, EnrollmentStatus
from aaghaaz.models.student import Gender, Student, StudentStatus
from aaghaaz.models.user import User

ROLL_ID_PREFIX = "AT"
ROLL_ID_ATTEMPTS = 3

# Columns a caller may sort or filter the student list on
SORTABLE_FIELDS = {
    "created_at": Student.created_at,
    "first_name": Student.first_name,
    "last_name": Student.last_name,
    "email": Student.email,
    "roll_id": Student.roll_id,
    "status": Student.status,
}
# field -> (column, enum the raw value must belong to)
FILTERABLE_FIELDS = {
    "status": (Student.status, StudentStatus),
    "gender": (Student.gender, Gender),
    "guardian_relation": (Student.guardian_relation, None),
}

CSV_HEADERS = [
    "Roll ID", "First Name", "Last Name", "Email", "CNIC", "Phone Number",
    "Date of Birth", "Gender", "Address", "Guardian Name", "Guardian Phone",
    "Guardian Relation", "Status", "Enrolled Courses", "Enrollment Date",
]


def parse_course_ids(raw: Any) -> List[str]:
    """Accept a list, a JSON array string or a comma-separated string; other JSON is rejected"""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return [str(c) for c in raw if str(c).strip()]
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith(("[", "{")):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                raise InvalidCourseSelectionError("Invalid course selection format")
            if not isinstance(parsed, list):
                raise InvalidCourseSelectionError("Invalid course selection format")
            return [str(c) for c in parsed]
        return [c.strip() for c in text.split(",") if c.strip()]
    raise InvalidCourseSelectionError("Invalid course selection format")


def _format_address(address: Optional[Dict[str, Any]]) -> str:
    address = address or {}
    parts = ("street", "city", "state", "zip_code", "country")
    return ", ".join(str(address.get(p) or "") for p in parts)


def students_to_csv(students: Sequence[Student]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)

    for student in students:
        enrollments = list(student.enrollments or [])
        courses = "; ".join(
            f"{e.course.name if e.course is not None else 'N/A'} ({e.status.value})"
            for e in enrollments
        )
        first_enrolled = enrollments[0].enrollment_date.date().isoformat() if enrollments else "N/A"
        writer.writerow([
            student.roll_id or "N/A",
            student.first_name or "N/A",
            student.last_name or "N/A",
            student.email or "N/A",
            student.cnic or "N/A",
            student.phone_number or "N/A",
            student.date_of_birth.isoformat() if student.date_of_birth else "N/A",
            student.gender.value if student.gender else "N/A",
            _format_address(student.address),
            student.guardian_name or "N/A",
            student.guardian_phone or "N/A",
            student.guardian_relation or "N/A",
            student.status.value if student.status else "N/A",
            courses,
            first_enrolled,
        ])

    return output.getvalue()


class StudentService:
    """Service for student records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =====================================================
    # LOOKUPS
    # =====================================================

    async def get(self, student_id: str) -> Student:
        if not is_valid_uuid(student_id):
            raise ValidationError("Invalid student ID format", field="id")
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    async def generate_roll_id(self, year: Optional[int] = None) -> str:
        """Next roll id for the year: AT-<year>-<5-digit sequence>"""
        year = year or datetime.utcnow().year
        prefix = f"{ROLL_ID_PREFIX}-{year}-"
        result = await self.db.execute(
            select(func.max(Student.roll_id)).where(Student.roll_id.like(f"{prefix}%"))
        )
        last = result.scalar_one_or_none()
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:05d}"

    async def ensure_unique(self, email: Optional[str], cnic: Optional[str], exclude_id: Optional[str] = None) -> None:
        """Email must be unused by any account; CNIC must be unused by any student"""
        if email:
            normalized = email.strip().lower()
            query = select(Student.id).where(Student.email == normalized)
            if exclude_id:
                query = query.where(Student.id != exclude_id)
            if (await self.db.execute(query)).first() is not None:
                raise DuplicateAccountError("email")
            staff = await self.db.execute(select(User.id).where(User.email == normalized))
            if staff.first() is not None:
                raise DuplicateAccountError("email")
        if cnic:
            query = select(Student.id).where(Student.cnic == cnic)
            if exclude_id:
                query = query.where(Student.id != exclude_id)
            if (await self.db.execute(query)).first() is not None:
                raise DuplicateAccountError("cnic")

    async def resolve_courses(self, course_ids: List[str]) -> List[Course]:
        """Every id must name an existing, active course"""
        unique_ids = list(dict.fromkeys(course_ids))
        if not unique_ids:
            return []
        if not all(is_valid_uuid(c) for c in unique_ids):
            raise InvalidCourseSelectionError()
        result = await self.db.execute(
            select(Course).where(Course.id.in_(unique_ids), Course.is_active.is_(True))
        )
        courses = list(result.scalars().all())
        if len(courses) != len(unique_ids):
            raise InvalidCourseSelectionError()
        return courses

    # =====================================================
    # WRITES
    # =====================================================

    async def create(
        self,
        data: Dict[str, Any],
        course_ids: Optional[List[str]] = None,
        hashed_password: Optional[str] = None,
        profile_picture: str = "",
    ) -> Student:
        """
        Insert a student with a fresh roll id.

        Concurrent registrations can pick the same roll id. The loser's flush
        fails, its transaction is rolled back, and the insert is retried with
        the next id. Must be the first write of the session's transaction.
        """
        await self.ensure_unique(data.get("email"), data.get("cnic"))

        for attempt in range(1, ROLL_ID_ATTEMPTS + 1):
            courses = await self.resolve_courses(course_ids or [])
            roll_id = await self.generate_roll_id()
            student = Student(
                **data,
                roll_id=roll_id,
                hashed_password=hashed_password,
                profile_picture=profile_picture or "",
            )
            student.enrollments = [Enrollment(course=c) for c in courses]
            self.db.add(student)
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                # A lost race on email or CNIC is reported as such
                await self.ensure_unique(data.get("email"), data.get("cnic"))
                logger.warning(f"[Students] Roll id {roll_id} already taken (attempt {attempt})")
                continue

            logger.info(f"[Students] Created {student.roll_id}", extra={"student_id": student.id})
            return student

        raise ValidationError("Could not allocate a roll id, please try again", field="roll_id")

    async def update(
        self,
        student: Student,
        data: Dict[str, Any],
        course_ids: Optional[List[str]] = None,
        profile_picture: Optional[str] = None,
    ) -> Student:
        await self.ensure_unique(data.get("email"), data.get("cnic"), exclude_id=student.id)

        for field, value in data.items():
            setattr(student, field, value)
        if profile_picture:
            student.profile_picture = profile_picture

        if course_ids is not None:
            courses = await self.resolve_courses(course_ids)
            # Keep existing rows so (student, course) stays unique across the flush
            existing = {e.course_id: e for e in student.enrollments}
            student.enrollments = [existing.get(c.id) or Enrollment(course=c) for c in courses]

        student.updated_at = datetime.utcnow()
        await self.db.flush()
        return student

    async def delete(self, student: Student) -> None:
        await self.db.delete(student)
        await self.db.flush()
        logger.info(f"[Students] Deleted {student.roll_id}")

    # =====================================================
    # LISTING
    # =====================================================

    def _search_clause(self, search: str):
        pattern = f"%{search.strip()}%"
        return or_(
            Student.first_name.ilike(pattern),
            Student.last_name.ilike(pattern),
            Student.email.ilike(pattern),
            Student.cnic.ilike(pattern),
            Student.phone_number.ilike(pattern),
        )

    async def list(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_field: str = "created_at",
        sort_order: str = "desc",
        filter_field: Optional[str] = None,
        filter_value: Optional[str] = None,
        status: Optional[StudentStatus] = None,
    ) -> Tuple[List[Student], int]:
        """One page of students plus the total matching count"""
        if sort_field not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by {sort_field}", field="sort_field")

        conditions = []
        if search:
            conditions.append(self._search_clause(search))
        if filter_field and filter_value:
            if filter_field not in FILTERABLE_FIELDS:
                raise ValidationError(f"Cannot filter by {filter_field}", field="filter_field")
            column, enum_type = FILTERABLE_FIELDS[filter_field]
            value = filter_value
            if enum_type is not None:
                try:
                    value = enum_type(filter_value)
                except ValueError:
                    raise ValidationError(f"Invalid value for {filter_field}", field="filter_value")
            conditions.append(column == value)
        if status is not None:
            conditions.append(Student.status == status)

        count_query = select(func.count(Student.id)).where(*conditions)
        total = (await self.db.execute(count_query)).scalar() or 0

        order = asc if sort_order == "asc" else desc
        query = (
            select(Student)
            .where(*conditions)
            .order_by(order(SORTABLE_FIELDS[sort_field]))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        students = list((await self.db.execute(query)).scalars().all())
        return students, total

    async def count_enrolled(self) -> int:
        result = await self.db.execute(
            select(func.count(Student.id)).where(Student.status == StudentStatus.ENROLLED)
        )
        return result.scalar() or 0

    async def counts_by_status(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Student.status, func.count(Student.id)).group_by(Student.status)
        )
        counts = {s.value.lower(): 0 for s in StudentStatus}
        for status, count in result.all():
            counts[status.value.lower()] = count
        counts["total"] = sum(counts.values())
        return counts

    async def by_course(self, course_id: str) -> List[Student]:
        if not is_valid_uuid(course_id):
            raise ValidationError("Invalid course ID format", field="course_id")
        result = await self.db.execute(
            select(Student)
            .join(Enrollment, Enrollment.student_id == Student.id)
            .where(Enrollment.course_id == course_id, Enrollment.status == EnrollmentStatus.ACTIVE)
            .order_by(Student.roll_id)
        )
        return list(result.scalars().unique().all())

    async def all_for_export(self) -> List[Student]:
        result = await self.db.execute(select(Student).order_by(Student.created_at.desc()))
        return list(result.scalars().all())
