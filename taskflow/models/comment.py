"""Comment record and table model."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .task import TaskStatus


@dataclass(frozen=True)
class Comment:
    """
    A note attached to a task.

    parent_id makes it a reply to another comment of the same task.
    Status-change comments carry both old_status and new_status; ordinary
    comments carry neither.
    """

    id: int
    task_id: int
    parent_id: int | None
    content: str
    author: str
    created_at: datetime
    is_status_change: bool = False
    old_status: TaskStatus | None = None
    new_status: TaskStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["old_status"] = self.old_status.value if self.old_status else None
        data["new_status"] = self.new_status.value if self.new_status else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        old_status = data.get("old_status")
        new_status = data.get("new_status")
        return cls(
            id=int(data["id"]),
            task_id=int(data["task_id"]),
            parent_id=data.get("parent_id"),
            content=data["content"],
            author=data["author"],
            created_at=datetime.fromisoformat(data["created_at"]),
            is_status_change=bool(data.get("is_status_change")),
            old_status=TaskStatus(old_status) if old_status else None,
            new_status=TaskStatus(new_status) if new_status else None,
        )


def _status_column() -> SQLEnum:
    return SQLEnum(
        TaskStatus,
        native_enum=False,
        values_callable=lambda statuses: [s.value for s in statuses],
    )


class CommentRow(Base):
    """
    Table model for comments (sql storage backend).

    task_id is not a foreign key; the task repository removes a task's
    comments when the task is deleted.
    """

    __tablename__ = "comments"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    task_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_status_change: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    old_status: Mapped[TaskStatus | None] = mapped_column(_status_column(), nullable=True)
    new_status: Mapped[TaskStatus | None] = mapped_column(_status_column(), nullable=True)

    def to_record(self) -> Comment:
        return Comment(
            id=self.id,
            task_id=self.task_id,
            parent_id=self.parent_id,
            content=self.content,
            author=self.author,
            created_at=self.created_at,
            is_status_change=self.is_status_change,
            old_status=self.old_status,
            new_status=self.new_status,
        )

    def __repr__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"<CommentRow(id={self.id}, task_id={self.task_id}, content='{preview}')>"
