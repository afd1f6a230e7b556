"""In-memory storage backend."""

import asyncio
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from ..core.logging import get_logger
from ..models import Comment, Task, TaskStatus
from ..models.base import utc_now
from .base import (
    TASK_MUTABLE_FIELDS,
    Clock,
    CommentRepository,
    Storage,
    TaskRepository,
    comment_sort_key,
    normalize_description,
    task_sort_key,
)

logger = get_logger(__name__)


class MemoryTaskRepository(TaskRepository):
    """
    Задачи в словаре {id: Task}.

    Все операции выполняются под общим asyncio.Lock хранилища, поэтому
    каскадное удаление атомарно для остальных корутин.
    """

    def __init__(self, storage: "MemoryStorage"):
        self._storage = storage

    async def get_all(self) -> list[Task]:
        async with self._storage.lock:
            tasks = list(self._storage.task_map.values())
        return sorted(tasks, key=task_sort_key, reverse=True)

    async def get_by_id(self, task_id: int) -> Task | None:
        async with self._storage.lock:
            return self._storage.task_map.get(task_id)

    async def create(
        self,
        title: str,
        added_by: str,
        updated_by: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        storage = self._storage
        async with storage.lock:
            now = storage.clock()
            task = Task(
                id=storage.allocate_task_id(),
                title=title,
                description=normalize_description(description),
                status=TaskStatus(status),
                added_by=added_by,
                updated_by=updated_by,
                created_at=now,
                updated_at=now,
            )
            tasks = dict(storage.task_map)
            tasks[task.id] = task
            await storage.commit(tasks=tasks)

        logger.debug("Task stored", extra={"task_id": task.id, "backend": storage.backend})
        return task

    async def update(self, task_id: int, **fields: Any) -> Task | None:
        storage = self._storage
        async with storage.lock:
            existing = storage.task_map.get(task_id)
            if existing is None:
                return None

            changes = {key: value for key, value in fields.items() if key in TASK_MUTABLE_FIELDS}
            if "description" in changes:
                changes["description"] = normalize_description(changes["description"])
            if "status" in changes:
                changes["status"] = TaskStatus(changes["status"])
            # updated_at никогда не становится меньше created_at
            changes["updated_at"] = max(storage.clock(), existing.created_at)

            updated = replace(existing, **changes)
            tasks = dict(storage.task_map)
            tasks[task_id] = updated
            await storage.commit(tasks=tasks)
            return updated

    async def delete(self, task_id: int) -> bool:
        storage = self._storage
        async with storage.lock:
            if task_id not in storage.task_map:
                return False

            comments, removed = storage.comment_repo.without_task(task_id)
            tasks = dict(storage.task_map)
            del tasks[task_id]
            # Сначала комментарии, затем задача
            await storage.commit(tasks=tasks, comments=comments)

        logger.debug(
            "Task deleted with comments",
            extra={"task_id": task_id, "comments_deleted": removed, "backend": storage.backend},
        )
        return True


class MemoryCommentRepository(CommentRepository):
    """Комментарии в словаре {id: Comment}."""

    def __init__(self, storage: "MemoryStorage"):
        self._storage = storage

    def without_task(self, task_id: int) -> tuple[dict[int, Comment], int]:
        """
        Копия коллекции без комментариев задачи и число исключённых.

        Вызывается только под lock хранилища.
        """
        current = self._storage.comment_map
        remaining = {cid: c for cid, c in current.items() if c.task_id != task_id}
        return remaining, len(current) - len(remaining)

    async def get_by_task(self, task_id: int) -> list[Comment]:
        async with self._storage.lock:
            comments = [c for c in self._storage.comment_map.values() if c.task_id == task_id]
        return sorted(comments, key=comment_sort_key)

    async def get_by_id(self, comment_id: int) -> Comment | None:
        async with self._storage.lock:
            return self._storage.comment_map.get(comment_id)

    async def create(
        self,
        task_id: int,
        content: str,
        author: str,
        parent_id: int | None = None,
        is_status_change: bool = False,
        old_status: TaskStatus | None = None,
        new_status: TaskStatus | None = None,
    ) -> Comment:
        storage = self._storage
        async with storage.lock:
            is_status_change = bool(is_status_change)
            comment = Comment(
                id=storage.allocate_comment_id(),
                task_id=task_id,
                parent_id=parent_id or None,
                content=content,
                author=author,
                created_at=storage.clock(),
                is_status_change=is_status_change,
                old_status=TaskStatus(old_status) if is_status_change and old_status else None,
                new_status=TaskStatus(new_status) if is_status_change and new_status else None,
            )
            comments = dict(storage.comment_map)
            comments[comment.id] = comment
            await storage.commit(comments=comments)
        return comment

    async def delete(self, comment_id: int) -> bool:
        storage = self._storage
        async with storage.lock:
            if comment_id not in storage.comment_map:
                return False
            comments = dict(storage.comment_map)
            del comments[comment_id]
            await storage.commit(comments=comments)
            return True

    async def delete_by_task(self, task_id: int) -> int:
        storage = self._storage
        async with storage.lock:
            comments, removed = self.without_task(task_id)
            if removed:
                await storage.commit(comments=comments)
            return removed

    async def delete_orphans(self, task_ids: Iterable[int]) -> int:
        storage = self._storage
        keep = set(task_ids)
        async with storage.lock:
            current = storage.comment_map
            comments = {cid: c for cid, c in current.items() if c.task_id in keep}
            removed = len(current) - len(comments)
            if removed:
                await storage.commit(comments=comments)
            return removed


class MemoryStorage(Storage):
    """
    Хранилище в памяти процесса.

    Данные теряются при перезапуске. Базовый класс для JsonFileStorage,
    который переопределяет только запись на диск (write) и загрузку.
    """

    backend = "memory"

    def __init__(self, clock: Clock = utc_now):
        super().__init__(clock)
        self.lock = asyncio.Lock()
        self.task_map: dict[int, Task] = {}
        self.comment_map: dict[int, Comment] = {}
        self.next_task_id = 1
        self.next_comment_id = 1
        self.task_repo = MemoryTaskRepository(self)
        self.comment_repo = MemoryCommentRepository(self)

    @property
    def tasks(self) -> MemoryTaskRepository:
        return self.task_repo

    @property
    def comments(self) -> MemoryCommentRepository:
        return self.comment_repo

    def allocate_task_id(self) -> int:
        task_id = self.next_task_id
        self.next_task_id += 1
        return task_id

    def allocate_comment_id(self) -> int:
        comment_id = self.next_comment_id
        self.next_comment_id += 1
        return comment_id

    def load(self, tasks: Iterable[Task], comments: Iterable[Comment]) -> None:
        """
        Заменить содержимое загруженными записями.

        Следующий ID = max(текущий счётчик, максимальный ID + 1), поэтому
        ID не повторяются даже если сохранённый счётчик отстал.
        """
        self.task_map = {task.id: task for task in tasks}
        self.comment_map = {comment.id: comment for comment in comments}
        self.next_task_id = max([self.next_task_id, *(i + 1 for i in self.task_map)])
        self.next_comment_id = max([self.next_comment_id, *(i + 1 for i in self.comment_map)])

    async def commit(
        self,
        tasks: dict[int, Task] | None = None,
        comments: dict[int, Comment] | None = None,
    ) -> None:
        """
        Зафиксировать новые коллекции.

        Сначала write() (для файлового backend'а - запись на диск), и только
        после успешной записи коллекции заменяются в памяти. При ошибке
        записи состояние в памяти не меняется.
        """
        await self.write(tasks, comments)
        if comments is not None:
            self.comment_map = comments
        if tasks is not None:
            self.task_map = tasks

    async def write(
        self,
        tasks: dict[int, Task] | None,
        comments: dict[int, Comment] | None,
    ) -> None:
        """Сохранить коллекции на носитель. В памяти сохранять нечего."""
