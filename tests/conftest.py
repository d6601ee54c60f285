"""Shared fixtures: a fresh SQLite database per test and an app client bound to it."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import services.class_management.models
import services.scheduling.models
from main import app
from services.class_management.models import SchoolClass, Student, Teacher
from services.scheduling.notifications import get_mailer
from shared.auth import ADMIN_ROLE, TEACHER_ROLE, get_current_user
from shared.db import Base, get_db


class FakeMailer:
    """Records sent mails; raises for addresses listed in ``fail_for``."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, subject, body):
        if to in self.fail_for:
            raise ConnectionRefusedError(f"SMTP refused {to}")
        self.sent.append((to, subject, body))


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return FakeMailer()


def _client_for(session_factory, mailer, role):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_current_user] = lambda: {
        "user_id": "1",
        "email": f"{role}@schule.de",
        "role": role,
    }
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def client(session_factory, mailer):
    async with _client_for(session_factory, mailer, ADMIN_ROLE) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def teacher_client(session_factory, mailer):
    async with _client_for(session_factory, mailer, TEACHER_ROLE) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_class(session):
    """Create a class with ``students`` students named ``<prefix>0``, ``<prefix>1``, ..."""

    async def _make(name, students=0, prefix=None, usernames=None):
        school_class = SchoolClass(name=name)
        session.add(school_class)
        await session.flush()
        if usernames is None:
            usernames = [f"{prefix or name.lower()}{i}" for i in range(students)]
        for username in usernames:
            session.add(Student(
                first_name=username.capitalize(),
                last_name="Muster",
                username=username,
                class_id=school_class.id,
            ))
        await session.commit()
        return school_class

    return _make


@pytest.fixture
def make_teacher(session):
    async def _make(username, email=None):
        teacher = Teacher(first_name=username.capitalize(), last_name="Lehrkraft", username=username, email=email)
        session.add(teacher)
        await session.commit()
        return teacher

    return _make
