"""
Course endpoints.

Reads are public; writes need the maintenance office role.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime
from typing import List

from aaghaaz.core.database import get_db
from aaghaaz.core.exceptions import CourseNotFoundError
from aaghaaz.core.logging_config import logger
from aaghaaz.core.tokens import TokenClaims
from aaghaaz.core.types import is_valid_uuid
from aaghaaz.models.course import Course
from aaghaaz.modules.auth.dependencies import maintenance_office_only
from aaghaaz.schemas.auth import MessageResponse
from aaghaaz.schemas.course import CourseCountResponse, CourseCreate, CourseResponse, CourseUpdate

router = APIRouter()


async def get_course_or_404(db: AsyncSession, course_id: str) -> Course:
    if not is_valid_uuid(course_id):
        raise CourseNotFoundError(course_id)
    result = await db.execute(select(Course).where(Course.id == course_id))
    course = result.scalar_one_or_none()
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    principal: TokenClaims = Depends(maintenance_office_only),
    db: AsyncSession = Depends(get_db),
):
    course = Course(
        **course_data.model_dump(exclude={"timing"}),
        timing=course_data.timing.model_dump(),
        created_by=principal.subject,
    )
    db.add(course)
    await db.commit()

    logger.info(f"[Courses] Created {course.name}", extra={"course_id": course.id})
    return CourseResponse.model_validate(course)


@router.get("", response_model=List[CourseResponse])
async def list_courses(db: AsyncSession = Depends(get_db)):
    """Active courses"""
    result = await db.execute(
        select(Course).where(Course.is_active.is_(True)).order_by(Course.created_at.desc())
    )
    return [CourseResponse.model_validate(c) for c in result.scalars().all()]


@router.get("/count", response_model=CourseCountResponse)
async def count_courses(db: AsyncSession = Depends(get_db)):
    total = (await db.execute(select(func.count(Course.id)))).scalar() or 0
    return CourseCountResponse(total=total)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(course_id: str, db: AsyncSession = Depends(get_db)):
    return CourseResponse.model_validate(await get_course_or_404(db, course_id))


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    principal: TokenClaims = Depends(maintenance_office_only),
    db: AsyncSession = Depends(get_db),
):
    course = await get_course_or_404(db, course_id)

    changes = course_data.model_dump(exclude_unset=True, exclude_none=True)
    if "timing" in changes:
        changes["timing"] = course_data.timing.model_dump()
    for field, value in changes.items():
        setattr(course, field, value)
    course.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(f"[Courses] Updated {course.name}", extra={"course_id": course.id, "fields": sorted(changes)})
    return CourseResponse.model_validate(course)


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: str,
    principal: TokenClaims = Depends(maintenance_office_only),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the course disappears from listings but enrollments keep their reference"""
    course = await get_course_or_404(db, course_id)
    course.is_active = False
    course.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(f"[Courses] Deactivated {course.name}", extra={"course_id": course.id})
    return MessageResponse(message="Course deleted successfully")
