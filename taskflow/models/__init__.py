"""Task and comment records and their SQLAlchemy table models."""

from .base import Base, utc_now
from .comment import Comment, CommentRow
from .task import Task, TaskRow, TaskStatus

__all__ = [
    "Base",
    "utc_now",
    "Task",
    "TaskRow",
    "TaskStatus",
    "Comment",
    "CommentRow",
]
