"""
Student endpoints.

Everything except /login requires the admin or maintenance office role.
Registration and updates are multipart forms so a profile picture can
travel with the record.
"""
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional, Union
import json
import math

from aaghaaz.core.config import settings
from aaghaaz.core.database import get_db
from aaghaaz.core.exceptions import EmailDeliveryError, ValidationError
from aaghaaz.core.logging_config import logger, set_user_id
from aaghaaz.core.rate_limiter import limiter, LOGIN_LIMIT
from aaghaaz.core.security import get_password_hash_async
from aaghaaz.core.tokens import TokenService
from aaghaaz.models.student import Student, StudentStatus
from aaghaaz.modules.auth.accounts import AccountKind, AccountRepository, start_session
from aaghaaz.modules.auth.dependencies import admin_or_maintenance, token_service_dependency
from aaghaaz.api.v1.endpoints.auth import login_response
from aaghaaz.schemas.auth import LoginResponse, MessageResponse, PendingLoginResponse, UserLogin
from aaghaaz.schemas.student import (
    EnrolledCountResponse,
    SendIdCardResponse,
    StudentCountResponse,
    StudentCreate,
    StudentListResponse,
    StudentRegisterResponse,
    StudentRegistration,
    StudentResponse,
    StudentUpdate,
)
from aaghaaz.services.email_service import email_service
from aaghaaz.services.id_card_service import id_card_service
from aaghaaz.services.image_host import image_host
from aaghaaz.services.student_service import StudentService, parse_course_ids, students_to_csv

router = APIRouter()

PDF_CONTENT_TYPES = {"application/pdf"}


def _parse_json_field(raw: Optional[str], field: str) -> Optional[Dict[str, Any]]:
    if raw is None or raw == "":
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(f"{field} must be a JSON object", field=field)
    if not isinstance(parsed, dict):
        raise ValidationError(f"{field} must be a JSON object", field=field)
    return parsed


def _validate_form(schema, data: Dict[str, Any]):
    """Run form fields through a pydantic schema, reporting errors like a JSON body would"""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


async def read_upload(upload: Optional[UploadFile], allowed_types, field: str) -> Optional[bytes]:
    if upload is None or not upload.filename:
        return None
    if upload.content_type not in allowed_types:
        raise ValidationError(f"Unsupported file type for {field}", field=field)
    content = await upload.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(f"{field} is too large", field=field)
    return content


async def upload_profile_picture(upload: Optional[UploadFile]) -> Optional[str]:
    content = await read_upload(upload, settings.ALLOWED_IMAGE_TYPES, "profile_picture")
    if content is None:
        return None
    return await image_host.upload(content, upload.filename, upload.content_type)


async def deliver_id_card(student: Student, pdf_bytes: Optional[bytes] = None) -> bool:
    """Email the ID card, rendering it when no PDF is supplied"""
    if pdf_bytes is None:
        course_names = [e.course.name for e in student.enrollments if e.course is not None]
        pdf_bytes = id_card_service.render(student, course_names)
    return await email_service.send_id_card(
        student.email,
        student.full_name,
        student.roll_id,
        pdf_bytes,
        filename=id_card_service.generate_filename(student.roll_id),
    )


# ==================== Registration & login ====================

@router.post("/register", response_model=StudentRegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_student(
    first_name: str = Form(...),
    last_name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    cnic: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    address: Optional[str] = Form(None, description="JSON object"),
    guardian_name: Optional[str] = Form(None),
    guardian_phone: Optional[str] = Form(None),
    guardian_relation: Optional[str] = Form(None),
    enrolled_courses: Optional[str] = Form(None, description="JSON array or comma-separated course ids"),
    profile_picture: Optional[UploadFile] = File(None),
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """
    Register a student with portal credentials.

    The student starts as Pending. The ID card is emailed afterwards; a
    delivery failure is reported in ``id_card_sent`` but does not undo
    the registration.
    """
    form = _validate_form(StudentRegistration, {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "password": password,
        "cnic": cnic or None,
        "phone_number": phone_number,
        "date_of_birth": date_of_birth or None,
        "gender": gender or None,
        "address": _parse_json_field(address, "address"),
        "guardian_name": guardian_name,
        "guardian_phone": guardian_phone,
        "guardian_relation": guardian_relation,
        "enrolled_courses": parse_course_ids(enrolled_courses),
    })

    service = StudentService(db)
    await service.ensure_unique(form.email, form.cnic)
    await service.resolve_courses(form.enrolled_courses)

    picture_url = await upload_profile_picture(profile_picture)
    data = form.model_dump(exclude={"password", "enrolled_courses", "status"})
    data["status"] = StudentStatus.PENDING

    student = await service.create(
        data,
        course_ids=form.enrolled_courses,
        hashed_password=await get_password_hash_async(form.password),
        profile_picture=picture_url or "",
    )
    await db.commit()

    id_card_sent = await deliver_id_card(student)
    if id_card_sent:
        await email_service.send_welcome_email(student.email, student.full_name, student.roll_id)
    else:
        logger.warning(f"[Students] ID card not delivered for {student.roll_id}")

    return StudentRegisterResponse(
        message="Student registered successfully",
        student=StudentResponse.from_student(student),
        id_card_sent=id_card_sent,
    )


@router.post("/login", response_model=Union[LoginResponse, PendingLoginResponse])
@limiter.limit(LOGIN_LIMIT)
async def student_login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(token_service_dependency),
):
    """Student portal login; only Enrolled students may sign in (rate limited: 5/min)"""
    account = await AccountRepository(db).authenticate(AccountKind.STUDENT, credentials.email, credentials.password)
    set_user_id(str(account.id))
    return login_response(start_session(account, tokens))


# ==================== Back office ====================

@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Create a student record without portal credentials"""
    data = student_data.model_dump(exclude={"enrolled_courses"})
    student = await StudentService(db).create(data, course_ids=student_data.enrolled_courses)
    await db.commit()
    return StudentResponse.from_student(student)


@router.get("", response_model=StudentListResponse)
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    sort_field: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    filter_field: Optional[str] = None,
    filter_value: Optional[str] = None,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """List students with search, filtering, sorting, and pagination"""
    students, total = await StudentService(db).list(
        page=page,
        limit=limit,
        search=search,
        sort_field=sort_field,
        sort_order=sort_order,
        filter_field=filter_field,
        filter_value=filter_value,
    )
    return StudentListResponse(
        students=[StudentResponse.from_student(s) for s in students],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/count", response_model=StudentCountResponse)
async def count_students(
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    return StudentCountResponse(**await StudentService(db).counts_by_status())


@router.get("/enrolled", response_model=Union[EnrolledCountResponse, StudentListResponse])
async def list_enrolled_students(
    count: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Enrolled students; ``count=true`` returns only the number"""
    service = StudentService(db)
    if count:
        return EnrolledCountResponse(count=await service.count_enrolled())

    students, total = await service.list(page=page, limit=limit, search=search, status=StudentStatus.ENROLLED)
    return StudentListResponse(
        students=[StudentResponse.from_student(s) for s in students],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/export/csv")
async def export_students_csv(
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Export all students to CSV format"""
    students = await StudentService(db).all_for_export()
    logger.info(f"[Students] CSV export of {len(students)} students")
    return StreamingResponse(
        iter([students_to_csv(students)]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=students.csv"},
    )


@router.get("/course/{course_id}", response_model=List[StudentResponse])
async def list_course_students(
    course_id: str,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Students with an active enrollment in the course"""
    students = await StudentService(db).by_course(course_id)
    return [StudentResponse.from_student(s) for s in students]


@router.post("/send-id-card", response_model=SendIdCardResponse)
async def send_id_card(
    student_id: str = Form(...),
    pdf: Optional[UploadFile] = File(None),
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Email a student's ID card; a card is rendered when no PDF is uploaded"""
    student = await StudentService(db).get(student_id)
    pdf_bytes = await read_upload(pdf, PDF_CONTENT_TYPES, "pdf")

    if not await deliver_id_card(student, pdf_bytes):
        raise EmailDeliveryError("Error sending ID card")
    return SendIdCardResponse(message="ID card sent successfully", email=student.email)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    return StudentResponse.from_student(await StudentService(db).get(student_id))


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    cnic: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    address: Optional[str] = Form(None, description="JSON object"),
    guardian_name: Optional[str] = Form(None),
    guardian_phone: Optional[str] = Form(None),
    guardian_relation: Optional[str] = Form(None),
    student_status: Optional[str] = Form(None, alias="status"),
    enrolled_courses: Optional[str] = Form(None, description="JSON array or comma-separated course ids"),
    profile_picture: Optional[UploadFile] = File(None),
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; given course ids replace the student's enrollments"""
    service = StudentService(db)
    student = await service.get(student_id)

    raw = {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "cnic": cnic,
        "phone_number": phone_number,
        "date_of_birth": date_of_birth,
        "gender": gender,
        "address": _parse_json_field(address, "address"),
        "guardian_name": guardian_name,
        "guardian_phone": guardian_phone,
        "guardian_relation": guardian_relation,
        "status": student_status,
    }
    if enrolled_courses is not None:
        raw["enrolled_courses"] = parse_course_ids(enrolled_courses)
    update = _validate_form(StudentUpdate, {k: v for k, v in raw.items() if v not in (None, "")})

    changes = update.model_dump(exclude_unset=True, exclude={"enrolled_courses"})
    picture_url = await upload_profile_picture(profile_picture)
    student = await service.update(
        student,
        changes,
        course_ids=update.enrolled_courses,
        profile_picture=picture_url,
    )
    await db.commit()

    logger.info(f"[Students] Updated {student.roll_id}", extra={"fields": sorted(changes)})
    return StudentResponse.from_student(student)


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: str,
    principal=Depends(admin_or_maintenance),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db)
    await service.delete(await service.get(student_id))
    await db.commit()
    return MessageResponse(message="Student deleted successfully")
