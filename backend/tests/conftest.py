from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskboard.db.base import Base
from taskboard.db.models.task import Task  # noqa: F401

VERSIONS = Path(__file__).resolve().parents[1] / "alembic" / "versions"
CREATE_TASKS = "202510010900_create_tasks.py"
ADD_STATUS = "202510150900_add_task_status.py"


def run_revision(engine, filename: str, direction: str = "upgrade") -> None:
    spec = importlib.util.spec_from_file_location(f"revision_{filename[:-3]}", VERSIONS / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            getattr(module, direction)()


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


@pytest.fixture()
def engine():
    """In-memory database with the current tasks table."""
    engine = _memory_engine()
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def legacy_engine():
    """In-memory database migrated only to the revision before ``status`` existed."""
    engine = _memory_engine()
    run_revision(engine, CREATE_TASKS)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def legacy_session_factory(legacy_engine):
    return sessionmaker(bind=legacy_engine, autoflush=False, autocommit=False, future=True)
