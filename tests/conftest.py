import os
import tempfile
from datetime import date

_TMP_DIR = tempfile.mkdtemp(prefix="syncschool-tests-")

# Settings are read when syncschool is first imported
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'default.db')}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("SYSTEM_OWNER_EMAIL", "owner@example.com")
os.environ.setdefault("SYSTEM_OWNER_PASSWORD", "owner-password")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402

from syncschool import create_app  # noqa: E402
from syncschool.core.database import Database  # noqa: E402
from syncschool.core.security import get_password_hash  # noqa: E402
from syncschool.models.academic import AcademicTerm, Class  # noqa: E402
from syncschool.models.student import Student  # noqa: E402
from syncschool.models.user import User  # noqa: E402
from syncschool.schemas.enums import Gender, UserRoleEnum  # noqa: E402
from syncschool.schemas.school import SchoolCreate  # noqa: E402
from syncschool.services.auth_service import AuthService  # noqa: E402
from syncschool.services.school_service import SchoolService  # noqa: E402
from syncschool.services.seed_service import seed_database  # noqa: E402

PASSWORD = "secret123"


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {AuthService.issue_token(user)}"}


async def make_user(session, school, role: UserRoleEnum, email: str, full_name: str = "Test User") -> User:
    user = User(
        school_id=school.id if school is not None else None,
        email=email,
        full_name=full_name,
        password_hash=get_password_hash(PASSWORD),
        role=role,
        is_active=True,
    )
    session.add(user)
    await session.commit()
    return user


async def make_student(session, school, school_class, admission_number: str, first_name="Mary", last_name="Phiri") -> Student:
    student = Student(
        school_id=school.id,
        first_name=first_name,
        last_name=last_name,
        admission_number=admission_number,
        date_of_birth=date(2015, 3, 14),
        gender=Gender.FEMALE,
        guardian_name="Ruth Phiri",
        guardian_phone="+260977000000",
        class_id=school_class.id,
    )
    session.add(student)
    await session.commit()
    return student


@pytest.fixture
async def database(tmp_path):
    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'syncschool.db'}")
    await db.init_models()
    await seed_database(db)
    yield db
    await db.dispose()


@pytest.fixture
def app(database):
    return create_app(database=database)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def session(database):
    async with database.session_factory() as db_session:
        yield db_session


@pytest.fixture
async def school(session):
    return await SchoolService(session).create_school(SchoolCreate(
        name="Chalo Primary School",
        slug="chalo-primary",
        email="office@chalo.example.com",
        admin_email="admin@chalo.example.com",
        admin_password=PASSWORD,
        admin_full_name="Grace Banda",
    ))


@pytest.fixture
async def other_school(session):
    return await SchoolService(session).create_school(SchoolCreate(
        name="Lusaka Academy",
        slug="lusaka-academy",
        admin_email="admin@lusaka.example.com",
        admin_password=PASSWORD,
        admin_full_name="Peter Mulenga",
    ))


@pytest.fixture
async def system_owner(session, database):
    result = await session.execute(select(User).where(User.role == UserRoleEnum.SYSTEM_OWNER))
    return result.scalar_one()


@pytest.fixture
async def admin(session, school):
    result = await session.execute(
        select(User).where(User.school_id == school.id, User.role == UserRoleEnum.SUPER_ADMIN)
    )
    return result.scalar_one()


@pytest.fixture
async def bursar(session, school):
    return await make_user(session, school, UserRoleEnum.BURSAR, "bursar@chalo.example.com", "Joseph Tembo")


@pytest.fixture
async def teacher(session, school):
    return await make_user(session, school, UserRoleEnum.TEACHER, "teacher@chalo.example.com", "Alice Zulu")


@pytest.fixture
async def parent(session, school):
    return await make_user(session, school, UserRoleEnum.PARENT, "parent@chalo.example.com", "Ruth Phiri")


@pytest.fixture
async def term(session, school):
    academic_term = AcademicTerm(
        school_id=school.id,
        name="Term 1 2026",
        start_date=date(2026, 1, 12),
        end_date=date(2026, 4, 10),
        is_active=True,
    )
    session.add(academic_term)
    await session.commit()
    return academic_term


@pytest.fixture
async def school_class(session, school, teacher, term):
    grade_three = Class(
        school_id=school.id,
        name="Grade Three",
        grade_level=3,
        teacher_id=teacher.id,
        academic_term_id=term.id,
    )
    session.add(grade_three)
    await session.commit()
    return grade_three


@pytest.fixture
async def student(session, school, school_class):
    return await make_student(session, school, school_class, "ADM-001")
