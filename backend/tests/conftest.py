"""
Aaghaaz Admin - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Dict
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing-only-0123456789'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_LEVEL'] = 'WARNING'

from aaghaaz.main import app
from aaghaaz.core.database import Base, get_db
from aaghaaz.core.security import get_password_hash
from aaghaaz.core.tokens import TokenService, get_token_service
from aaghaaz.core import two_factor
from aaghaaz.models import (
    Course,
    Enrollment,
    ModeOfDelivery,
    Qualification,
    Student,
    StudentStatus,
    User,
    UserRole,
)

fake = Faker()

STAFF_PASSWORD = 'staffpass123'
STUDENT_PASSWORD = 'studentpass123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


def fake_cnic() -> str:
    return fake.numerify('#############')


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def token_service() -> TokenService:
    return get_token_service()


async def create_staff(
    db: AsyncSession,
    role: UserRole,
    password: str = STAFF_PASSWORD,
    two_factor_active: bool = False,
) -> User:
    user = User(
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        email=fake.unique.email(),
        cnic=fake_cnic(),
        hashed_password=get_password_hash(password),
        expertise=['Python'],
        languages=['English'],
        qualification=Qualification.MASTERS,
        role=role,
        is_verified=True,
    )
    if two_factor_active:
        two_factor.begin_setup(user)
        user.two_factor_enabled = True
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_student(
    db: AsyncSession,
    status: StudentStatus = StudentStatus.ENROLLED,
    password: str = STUDENT_PASSWORD,
    roll_id: str = None,
) -> Student:
    student = Student(
        roll_id=roll_id or f"AT-2024-{fake.unique.random_int(min=1, max=99999):05d}",
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        email=fake.unique.email(),
        cnic=fake_cnic(),
        phone_number=fake.numerify('03#########'),
        hashed_password=get_password_hash(password) if password else None,
        status=status,
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return student


async def create_course(db: AsyncSession, name: str = None, is_active: bool = True) -> Course:
    course = Course(
        name=name or f"{fake.word().title()} Bootcamp",
        days=['Monday', 'Wednesday'],
        timing={'start_time': '09:00', 'end_time': '11:00'},
        duration='3 months',
        price=15000,
        mode_of_delivery=ModeOfDelivery.ONSITE,
        is_active=is_active,
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course


def bearer(token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {token}'}


def headers_for(account, tokens: TokenService = None) -> Dict[str, str]:
    """Authorization header with a full token for ``account``"""
    tokens = tokens or get_token_service()
    return bearer(tokens.issue_full_token(account.id, account.role_name, account.email))


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_staff(db_session, UserRole.ADMIN)


@pytest.fixture
async def maintenance_user(db_session: AsyncSession) -> User:
    return await create_staff(db_session, UserRole.MAINTENANCE_OFFICE)


@pytest.fixture
async def instructor_user(db_session: AsyncSession) -> User:
    return await create_staff(db_session, UserRole.INSTRUCTOR)


@pytest.fixture
async def enrolled_student(db_session: AsyncSession) -> Student:
    return await create_student(db_session, StudentStatus.ENROLLED)


@pytest.fixture
async def course(db_session: AsyncSession) -> Course:
    return await create_course(db_session)


@pytest.fixture
async def enrolled_in_course(db_session: AsyncSession, enrolled_student: Student, course: Course) -> Student:
    enrolled_student.enrollments.append(Enrollment(course=course))
    await db_session.commit()
    return enrolled_student


@pytest.fixture
def admin_headers(admin_user: User) -> Dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture
def maintenance_headers(maintenance_user: User) -> Dict[str, str]:
    return headers_for(maintenance_user)


@pytest.fixture
def instructor_headers(instructor_user: User) -> Dict[str, str]:
    return headers_for(instructor_user)


@pytest.fixture
def student_headers(enrolled_student: Student) -> Dict[str, str]:
    return headers_for(enrolled_student)


# Factories for tests that need more than the ready-made accounts

@pytest.fixture
def make_headers():
    return headers_for


@pytest.fixture
def staff_factory(db_session: AsyncSession):
    async def _create(role: UserRole = UserRole.ADMIN, **kwargs) -> User:
        return await create_staff(db_session, role, **kwargs)
    return _create


@pytest.fixture
def student_factory(db_session: AsyncSession):
    async def _create(status: StudentStatus = StudentStatus.ENROLLED, **kwargs) -> Student:
        return await create_student(db_session, status, **kwargs)
    return _create


@pytest.fixture
def course_factory(db_session: AsyncSession):
    async def _create(**kwargs) -> Course:
        return await create_course(db_session, **kwargs)
    return _create
