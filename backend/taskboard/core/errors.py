"""Domain error taxonomy shared by the store, extractor, board and API layers."""
from __future__ import annotations

from enum import Enum


class TaskboardError(Exception):
    """Base class for all domain errors."""


class ValidationError(TaskboardError):
    """A required field is missing or blank."""


class NotFoundError(TaskboardError):
    """Update or delete target does not exist for the owner."""


class SchemaMismatchError(TaskboardError):
    """The store does not have a column the write tried to set."""

    def __init__(self, attribute: str) -> None:
        super().__init__(f"store has no '{attribute}' attribute")
        self.attribute = attribute


class StoreError(TaskboardError):
    """Generic persistence failure."""


class StoreUnavailableError(StoreError):
    """Persistence is not configured or cannot be reached."""


class ExtractionErrorKind(str, Enum):
    UNRECOGNIZED = "unrecognized"
    SERVICE_FAILURE = "service_failure"


UNRECOGNIZED_MESSAGE = (
    "I couldn't find a task in that message. "
    "Try something like 'Call the client tomorrow at 3 PM'."
)
SERVICE_FAILURE_MESSAGE = "Sorry, I couldn't process that right now. Please try again in a moment."


class ExtractionError(TaskboardError):
    """Extraction produced no drafts, or the text-understanding call failed."""

    def __init__(self, kind: ExtractionErrorKind, detail: str | None = None) -> None:
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def user_message(self) -> str:
        if self.kind is ExtractionErrorKind.SERVICE_FAILURE:
            return SERVICE_FAILURE_MESSAGE
        return UNRECOGNIZED_MESSAGE


class TransitionError(TaskboardError):
    """A board move failed and the view was rolled back."""

    def __init__(self, task_id, target, cause: Exception) -> None:
        super().__init__(f"moving task {task_id} to {target} failed: {cause}")
        self.task_id = task_id
        self.target = target
        self.cause = cause
