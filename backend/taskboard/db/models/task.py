"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, false, func
from sqlalchemy.dialects.postgresql import UUID

from taskboard.db.base import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_user_id_created_at", "user_id", "created_at"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    title = Column(String(length=200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    is_completed = Column(Boolean, nullable=False, server_default=false())
    # Older deployments predate this column; see TaskRepository.supports_status.
    status = Column(String(length=20), nullable=False, server_default="todo")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
