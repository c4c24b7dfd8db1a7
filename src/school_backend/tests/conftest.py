"""
Pytest configuration and fixtures for all tests.

Every test gets a fresh in-memory SQLite database seeded with a small
school: two teachers with one class each, two families and a student
per class.
"""

from datetime import date
from types import SimpleNamespace
import pytest
from fastapi import Depends, Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from school_backend.database import get_db
from school_backend.interface.passwords import get_password_hash
from school_backend.model import Base, Role, User, Teacher, Parent, SchoolClass, Student
from school_backend.permissions.auth import PrincipalBuilder, get_optional_principal
from school_backend.server import app

TEST_USER_HEADER = "X-Test-User"
PASSWORD = "secret123"


@pytest.fixture(scope="session")
def password_hash():
    """bcrypt is slow on purpose; hash the shared password once."""
    return get_password_hash(PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def SessionLocal(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(SessionLocal):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _user(db: Session, name: str, email: str, role: Role, password_hash: str) -> User:
    user = User(name=name, email=email, password=password_hash, role=role)
    db.add(user)
    return user


@pytest.fixture
def school(db, password_hash):
    """Seed the school and return the ids of everything in it."""

    admin = _user(db, "Ada Admin", "admin@school.org", Role.ADMIN, password_hash)

    teacher_a = Teacher(department="Science", qualification="MSc", user=_user(db, "Alice Teacher", "alice@school.org", Role.TEACHER, password_hash))
    teacher_b = Teacher(department="Arts", qualification="BA", user=_user(db, "Bob Teacher", "bob@school.org", Role.TEACHER, password_hash))
    db.add_all([teacher_a, teacher_b])

    class_x = SchoolClass(name="Form 1X", grade="10", section="X", teacher=teacher_a)
    class_y = SchoolClass(name="Form 1Y", grade="10", section="Y", teacher=teacher_b)
    db.add_all([class_x, class_y])

    parent_p = Parent(relationship_to_child="Mother", user=_user(db, "Pam Parent", "pam@school.org", Role.PARENT, password_hash))
    parent_q = Parent(relationship_to_child="Father", user=_user(db, "Quinn Parent", "quinn@school.org", Role.PARENT, password_hash))
    db.add_all([parent_p, parent_q])

    student_x = Student(
        first_name="Xavier", last_name="Pupil", admission_number="ADM-001",
        date_of_birth=date(2010, 1, 1), gender="M", enrollment_date=date(2023, 1, 10), section="X",
        school_class=class_x, parent=parent_p,
        user=_user(db, "Xavier Pupil", "xavier@school.org", Role.STUDENT, password_hash),
    )
    student_y = Student(
        first_name="Yara", last_name="Pupil", admission_number="ADM-002",
        date_of_birth=date(2010, 6, 1), gender="F", enrollment_date=date(2023, 1, 10), section="Y",
        school_class=class_y, parent=parent_q,
        user=_user(db, "Yara Pupil", "yara@school.org", Role.STUDENT, password_hash),
    )
    db.add_all([student_x, student_y])
    db.commit()

    return SimpleNamespace(
        admin_user=admin.id,
        teacher_a=teacher_a.id, teacher_a_user=teacher_a.user_id,
        teacher_b=teacher_b.id, teacher_b_user=teacher_b.user_id,
        class_x=class_x.id, class_y=class_y.id,
        parent_p=parent_p.id, parent_p_user=parent_p.user_id,
        parent_q=parent_q.id, parent_q_user=parent_q.user_id,
        student_x=student_x.id, student_x_user=student_x.user_id,
        student_y=student_y.id, student_y_user=student_y.user_id,
    )


@pytest.fixture
def principals(db, school):
    """One principal per seeded account, keyed by a short name."""
    users = {
        "admin": school.admin_user,
        "teacher_a": school.teacher_a_user,
        "teacher_b": school.teacher_b_user,
        "parent_p": school.parent_p_user,
        "parent_q": school.parent_q_user,
        "student_x": school.student_x_user,
        "student_y": school.student_y_user,
    }
    return SimpleNamespace(**{key: PrincipalBuilder.build(user_id, db) for key, user_id in users.items()})


@pytest.fixture
def client_for(SessionLocal, school):
    """Factory of TestClients acting as a given user id (``None`` for anonymous).

    The acting user travels in a test header; requests without it fall back
    to the real session cookie handling.
    """

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def principal_from_header(request: Request, db: Session = Depends(get_db)):
        user_id = request.headers.get(TEST_USER_HEADER)
        if user_id is None:
            return get_optional_principal(request, db)
        return PrincipalBuilder.build(user_id, db)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_principal] = principal_from_header

    def make(user_id=None) -> TestClient:
        headers = {TEST_USER_HEADER: user_id} if user_id is not None else {}
        return TestClient(app, headers=headers)

    yield make

    app.dependency_overrides.clear()
