import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from school_ledger.auth.models import Role, User
from school_ledger.auth.security import create_access_token
from school_ledger.core.models import FeeItem, FeePayment, School, Student
from school_ledger.db.session import Base, get_db
from school_ledger.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test. StaticPool keeps a single shared connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    school = School(name="Bright Future Academy", address="12 Ring Road, Accra", logo_url="https://example.com/logo.png")
    db_session.add(school)
    await db_session.commit()
    return school


@pytest.fixture()
async def admin_user(db_session: AsyncSession, school: School) -> User:
    user = User(
        school_id=school.id,
        full_name="Ama Mensah",
        email="ama.mensah@example.com",
        role="SUPER_ADMIN",
    )
    db_session.add(user)
    await db_session.commit()
    return user


def _token_headers(user: User) -> Dict[str, str]:
    token = create_access_token(
        subject={
            "sub": str(user.id),
            "user_id": str(user.id),
            "school_id": str(user.school_id),
            "role": user.role,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(admin_user: User) -> Dict[str, str]:
    return _token_headers(admin_user)


@pytest.fixture()
async def viewer_headers(db_session: AsyncSession, school: School) -> Dict[str, str]:
    """Accountant who may read fees but not change them."""
    db_session.add(
        Role(
            school_id=school.id,
            name="ACCOUNTANT",
            permissions={"fees": {"read": True, "create": False, "update": False, "delete": False}},
        )
    )
    user = User(
        school_id=school.id,
        full_name="Kofi Boateng",
        email="kofi.boateng@example.com",
        role="ACCOUNTANT",
    )
    db_session.add(user)
    await db_session.commit()
    return _token_headers(user)


@pytest.fixture()
async def basic1_year(db_session: AsyncSession, school: School) -> Student:
    """
    2024-2025: Basic 1 is charged 1000.00; student S1 paid 600.00 inside the year window.
    A 100.00 payment from July 2024 belongs to the previous year and must be ignored.
    """
    student = Student(
        school_id=school.id,
        student_id_display="S1",
        full_name="Esi Owusu",
        grade_level="Basic 1",
    )
    db_session.add(student)
    db_session.add(
        FeeItem(
            school_id=school.id,
            grade_level="Basic 1",
            academic_year="2024-2025",
            description="Tuition",
            amount=Decimal("1000.00"),
        )
    )
    for idx, (amount, paid_on) in enumerate(
        [
            (Decimal("250.00"), date(2024, 8, 1)),
            (Decimal("350.00"), date(2025, 7, 31)),
            (Decimal("100.00"), date(2024, 7, 15)),
        ]
    ):
        db_session.add(
            FeePayment(
                school_id=school.id,
                payment_id_display=f"PAY-{idx}",
                student_id_display="S1",
                student_name="Esi Owusu",
                grade_level="Basic 1",
                amount_paid=amount,
                payment_date=paid_on,
                payment_method="Cash",
                term_paid_for="Term 1",
            )
        )
    await db_session.commit()
    return student
