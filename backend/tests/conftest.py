# backend/tests/conftest.py

import os
import uuid

# Settings are read at import time; point them at SQLite before anything imports core.config.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, ClassGroup, Room


DEPT_CS = uuid.UUID(int=9001)
DEPT_EE = uuid.UUID(int=9002)


def class_id(n: int) -> uuid.UUID:
    return uuid.UUID(int=n)


def room_id(n: int) -> uuid.UUID:
    return uuid.UUID(int=1000 + n)


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_class(db):
    """Insert a ClassGroup with a deterministic id (uuid int n)."""

    def _make(n, students, *, level="UG", department=DEPT_CS, active=True, name=None):
        row = ClassGroup(
            id=class_id(n),
            name=name or f"CLS-{n}",
            academic_year=1,
            academic_level=level,
            department_id=department,
            student_count=students,
            is_active=active,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_room(db):
    """Insert a Room with a deterministic id (uuid int 1000 + n)."""

    def _make(n, capacity, *, active=True, code=None, room_type="LECTURE"):
        row = Room(
            id=room_id(n),
            code=code or f"R-{n}",
            name=f"Room {n}",
            room_type=room_type,
            capacity=capacity,
            is_active=active,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def three_rooms(make_class, make_room):
    """90/70/50 students over rooms of 100/80/60, one class per room."""
    make_room(1, 100)
    make_room(2, 80)
    make_room(3, 60)
    make_class(1, 90)
    make_class(2, 70)
    make_class(3, 50)
