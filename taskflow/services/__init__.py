"""Service layer with business logic."""

from .comment import CommentService, CommentThread, build_threads
from .seed import seed_sample_data
from .task import StatusChangeResult, TaskService

__all__ = [
    "TaskService",
    "StatusChangeResult",
    "CommentService",
    "CommentThread",
    "build_threads",
    "seed_sample_data",
]
