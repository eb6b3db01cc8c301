from uuid import uuid4

import pytest
from sqlalchemy import text

from taskboard.core.errors import NotFoundError, SchemaMismatchError, ValidationError
from taskboard.db.repository import TaskRepository
from taskboard.domain.task import TaskStatus
from taskboard.services import task_service

from conftest import ADD_STATUS, run_revision


@pytest.fixture()
def repo(session_factory):
    session = session_factory()
    try:
        yield TaskRepository(session)
    finally:
        session.close()


@pytest.fixture()
def legacy_repo(legacy_session_factory):
    session = legacy_session_factory()
    try:
        yield TaskRepository(session)
    finally:
        session.close()


def test_status_round_trips_and_legacy_flag_follows(repo):
    owner = uuid4()
    for status in TaskStatus:
        record = task_service.create_task(repo, owner_id=owner, title=f"  {status.value} task ", status=status)
        assert record.status is status
        assert record.legacy_completed == (status is TaskStatus.COMPLETED)
        assert record.title == f"{status.value} task"

    stored = {row.title: (row.status, row.is_completed) for row in repo.db.execute(text("SELECT title, status, is_completed FROM tasks"))}
    assert stored["completed task"] == ("completed", 1)
    assert stored["in_progress task"] == ("in_progress", 0)


def test_blank_description_is_stored_as_null(repo):
    record = task_service.create_task(repo, owner_id=uuid4(), title="Call client", description="   ")
    assert record.description is None


def test_create_requires_title_and_owner(repo):
    with pytest.raises(ValidationError):
        task_service.create_task(repo, owner_id=uuid4(), title="  ")
    with pytest.raises(ValidationError):
        task_service.create_task(repo, owner_id=None, title="Call client")


def test_listing_is_owner_scoped_and_newest_first(repo):
    owner, other = uuid4(), uuid4()
    task_service.create_task(repo, owner_id=owner, title="First")
    task_service.create_task(repo, owner_id=owner, title="Second")
    task_service.create_task(repo, owner_id=other, title="Someone else")

    assert [t.title for t in task_service.list_tasks(repo, owner)] == ["Second", "First"]


def test_update_and_delete_are_owner_scoped(repo):
    owner = uuid4()
    record = task_service.create_task(repo, owner_id=owner, title="Call client")

    with pytest.raises(NotFoundError):
        task_service.update_task(repo, task_id=record.id, owner_id=uuid4(), status=TaskStatus.COMPLETED)
    with pytest.raises(NotFoundError):
        task_service.delete_task(repo, task_id=record.id, owner_id=uuid4())

    task_service.delete_task(repo, task_id=record.id, owner_id=owner)
    assert task_service.list_tasks(repo, owner) == []


def test_legacy_flag_only_update_rules(repo):
    owner = uuid4()
    record = task_service.create_task(repo, owner_id=owner, title="Draft", status=TaskStatus.IN_PROGRESS)

    unchecked = task_service.update_task(repo, task_id=record.id, owner_id=owner, legacy_completed=False)
    assert unchecked.status is TaskStatus.IN_PROGRESS

    checked = task_service.update_task(repo, task_id=record.id, owner_id=owner, legacy_completed=True)
    assert checked.status is TaskStatus.COMPLETED

    reopened = task_service.update_task(repo, task_id=record.id, owner_id=owner, legacy_completed=False)
    assert reopened.status is TaskStatus.TODO

    status_wins = task_service.update_task(
        repo, task_id=record.id, owner_id=owner, status=TaskStatus.TODO, legacy_completed=True
    )
    assert status_wins.status is TaskStatus.TODO
    assert status_wins.legacy_completed is False


def test_suggestions_match_case_insensitively_and_escape_wildcards(repo):
    owner = uuid4()
    for title in ("Review proposal", "Weekly report", "50% discount", "Call client"):
        task_service.create_task(repo, owner_id=owner, title=title)

    assert sorted(task_service.suggest_titles(repo, owner, "RE", limit=5, min_length=2)) == ["Review proposal", "Weekly report"]
    assert task_service.suggest_titles(repo, owner, "0%", limit=5, min_length=2) == ["50% discount"]
    assert task_service.suggest_titles(repo, owner, "r", limit=5, min_length=2) == []


def test_stats_count_columns(repo):
    owner = uuid4()
    for status in (TaskStatus.TODO, TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED):
        task_service.create_task(repo, owner_id=owner, title="Task", status=status)

    stats = task_service.task_stats(repo, owner)
    assert stats.to_dict() == {"total": 4, "todo": 2, "in_progress": 1, "completed": 1, "completion_rate": 25}


def test_legacy_table_rejects_status_writes_structurally(legacy_repo):
    assert legacy_repo.supports_status is False
    with pytest.raises(SchemaMismatchError) as excinfo:
        legacy_repo.insert(uuid4(), {"title": "Call client", "status": TaskStatus.TODO})
    assert excinfo.value.attribute == "status"


def test_legacy_table_falls_back_to_completion_flag(legacy_repo):
    owner = uuid4()
    done = task_service.create_task(legacy_repo, owner_id=owner, title="Done", status=TaskStatus.COMPLETED)
    assert done.status is TaskStatus.COMPLETED
    assert done.legacy_completed is True

    # in_progress cannot be represented by the flag alone.
    started = task_service.create_task(legacy_repo, owner_id=owner, title="Started", status=TaskStatus.IN_PROGRESS)
    assert started.status is TaskStatus.TODO

    reopened = task_service.update_task(legacy_repo, task_id=done.id, owner_id=owner, status=TaskStatus.TODO)
    assert reopened.status is TaskStatus.TODO
    flag = legacy_repo.db.execute(text("SELECT is_completed FROM tasks WHERE title = 'Done'")).scalar_one()
    assert flag == 0


def test_status_migration_backfills_from_completion_flag(legacy_engine, legacy_session_factory):
    owner = uuid4()
    session = legacy_session_factory()
    try:
        legacy = TaskRepository(session)
        task_service.create_task(legacy, owner_id=owner, title="Done", status=TaskStatus.COMPLETED)
        task_service.create_task(legacy, owner_id=owner, title="Open")
    finally:
        session.close()

    run_revision(legacy_engine, ADD_STATUS)

    session = legacy_session_factory()
    try:
        migrated = TaskRepository(session)
        assert migrated.supports_status is True
        rows = dict(session.execute(text("SELECT title, status FROM tasks")).all())
        assert rows == {"Done": "completed", "Open": "todo"}
        statuses = {t.title: t.status for t in migrated.list_for_owner(owner)}
        assert statuses == {"Done": TaskStatus.COMPLETED, "Open": TaskStatus.TODO}
    finally:
        session.close()
