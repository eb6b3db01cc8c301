"""ORM models exposed for metadata discovery."""
from taskboard.db.models.task import Task

__all__ = [
    "Task",
]
