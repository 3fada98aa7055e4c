"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app import create_app  # noqa: E402
from config import TestConfig  # noqa: E402
from database import db  # noqa: E402
from models import Course, Enrollment, Grade, User  # noqa: E402
from utils.security import hash_password  # noqa: E402


PASSWORD = "Granite!Kettle42"

# a Tuesday, 14:00 local
TUESDAY_AFTERNOON = datetime(2030, 1, 8, 14, 0, 0)


class FrozenClock:
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def set(self, when: datetime):
        self.current = when

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(TUESDAY_AFTERNOON)


@pytest.fixture
def app(clock):
    cfg = type("ClockedTestConfig", (TestConfig,), {"CLOCK": clock})
    app = create_app(cfg)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="student", security_level="public", department=None, password=PASSWORD, **fields):
        counter["n"] += 1
        u = User(
            name=fields.pop("name", f"User {counter['n']}"),
            email=fields.pop("email", f"user{counter['n']}@example.edu"),
            pass_hash=hash_password(password),
            role=role,
            security_level=security_level,
            department=department,
            **fields,
        )
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        r = client.post("/auth/signin", json={"email": user.email, "password": password})
        assert r.status_code == 200, r.get_json()
        return r

    return _login


@pytest.fixture
def graded_course(make_user):
    """One CS course with one enrolled student and a confidential grade."""
    instructor = make_user(role="instructor", security_level="confidential", department="CS")
    student = make_user(role="student", security_level="confidential", department="CS")
    course = Course(code="CS101", title="Intro to CS", department="CS", instructor_id=instructor.id)
    db.session.add(course)
    db.session.flush()
    enrollment = Enrollment(student_id=student.id, course_id=course.id, semester="2030S")
    db.session.add(enrollment)
    db.session.flush()
    grade = Grade(enrollment_id=enrollment.id, grade="B", security_level="confidential")
    db.session.add(grade)
    db.session.commit()
    return {"instructor": instructor, "student": student, "course": course, "grade": grade}
