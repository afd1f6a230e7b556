"""Sample data for a fresh storage."""

import contextlib
from collections.abc import Iterator
from datetime import datetime

from ..core.logging import get_logger
from ..models import TaskStatus
from ..repositories import Storage

logger = get_logger(__name__)

SAMPLE_TASKS = [
    {
        "title": "Implement User Authentication",
        "description": (
            "Set up JWT authentication with login, register, and password reset functionality. "
            "Include email verification and role-based access control."
        ),
        "status": TaskStatus.WORK_IN_PROCESS,
        "added_by": "Sarah Chen",
        "updated_by": "Mike Johnson",
        "created_at": datetime(2024, 12, 15, 14, 30),
        "updated_at": datetime(2024, 12, 16, 9, 15),
    },
    {
        "title": "Database Migration Scripts",
        "description": (
            "Create migration scripts for user tables, indexes, and initial data seeding "
            "for the production environment."
        ),
        "status": TaskStatus.COMPLETED,
        "added_by": "Alex Lee",
        "updated_by": "Alex Lee",
        "created_at": datetime(2024, 12, 14, 10, 0),
        "updated_at": datetime(2024, 12, 16, 11, 30),
    },
    {
        "title": "API Documentation Update",
        "description": (
            "Update API documentation with new endpoints and authentication requirements. "
            "Include request/response examples and error codes."
        ),
        "status": TaskStatus.PENDING,
        "added_by": "David Wilson",
        "updated_by": "David Wilson",
        "created_at": datetime(2024, 12, 16, 8, 0),
        "updated_at": datetime(2024, 12, 16, 8, 0),
    },
]

# "task" and "parent" are positions in SAMPLE_TASKS / SAMPLE_COMMENTS
SAMPLE_COMMENTS = [
    {
        "task": 0,
        "parent": None,
        "content": (
            "Changed status from Pending to Work In Process. Started working on the JWT "
            "implementation. Setting up the authentication middleware first."
        ),
        "author": "Mike Johnson",
        "created_at": datetime(2024, 12, 16, 7, 0),
        "is_status_change": True,
        "old_status": TaskStatus.PENDING,
        "new_status": TaskStatus.WORK_IN_PROCESS,
    },
    {
        "task": 0,
        "parent": None,
        "content": (
            "Great! Make sure to implement rate limiting for the authentication endpoints "
            "to prevent brute force attacks."
        ),
        "author": "Sarah Chen",
        "created_at": datetime(2024, 12, 16, 5, 0),
    },
    {
        "task": 0,
        "parent": 1,
        "content": (
            "@Sarah Chen Good point! I'll also add Redis for session management and "
            "implement proper logout handling."
        ),
        "author": "Alex Lee",
        "created_at": datetime(2024, 12, 16, 6, 0),
    },
]


@contextlib.contextmanager
def frozen_clock(storage: Storage, moment: datetime) -> Iterator[None]:
    """Make the storage stamp records with a fixed time."""
    original = storage.clock
    storage.clock = lambda: moment
    try:
        yield
    finally:
        storage.clock = original


async def seed_sample_data(storage: Storage) -> bool:
    """
    Заполнить пустое хранилище демонстрационными задачами и комментариями.

    Returns:
        True если данные добавлены, False если в хранилище уже есть задачи
    """
    if await storage.tasks.get_all():
        return False

    task_ids: list[int] = []
    for sample in SAMPLE_TASKS:
        with frozen_clock(storage, sample["created_at"]):
            task = await storage.tasks.create(
                title=sample["title"],
                added_by=sample["added_by"],
                updated_by=sample["updated_by"],
                description=sample["description"],
                status=sample["status"],
            )
        if sample["updated_at"] != sample["created_at"]:
            with frozen_clock(storage, sample["updated_at"]):
                await storage.tasks.update(task.id)
        task_ids.append(task.id)

    comment_ids: list[int] = []
    for sample in SAMPLE_COMMENTS:
        parent = sample["parent"]
        with frozen_clock(storage, sample["created_at"]):
            comment = await storage.comments.create(
                task_id=task_ids[sample["task"]],
                content=sample["content"],
                author=sample["author"],
                parent_id=comment_ids[parent] if parent is not None else None,
                is_status_change=sample.get("is_status_change", False),
                old_status=sample.get("old_status"),
                new_status=sample.get("new_status"),
            )
        comment_ids.append(comment.id)

    logger.info(
        "Sample data seeded",
        extra={"tasks": len(task_ids), "comments": len(comment_ids), "backend": storage.backend},
    )
    return True
