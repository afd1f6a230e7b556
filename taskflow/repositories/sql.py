"""Relational storage backend (SQLAlchemy async)."""

import contextlib
from collections.abc import AsyncIterator, Iterable
from typing import Any

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..core.database import create_engine, create_session_factory, init_db
from ..core.exceptions import StorageError
from ..core.logging import get_logger
from ..models import Comment, CommentRow, Task, TaskRow, TaskStatus
from ..models.base import utc_now
from .base import (
    TASK_MUTABLE_FIELDS,
    Clock,
    CommentRepository,
    Storage,
    TaskRepository,
    normalize_description,
)

logger = get_logger(__name__)


class SqlTaskRepository(TaskRepository):
    """
    Репозиторий задач поверх SQLAlchemy.

    Каждая операция выполняется в собственной транзакции, поэтому
    get_all() никогда не видит частично записанную строку.
    """

    def __init__(self, storage: "SqlStorage"):
        self._storage = storage

    async def get_all(self) -> list[Task]:
        """
        SQL эквивалент:
            SELECT * FROM tasks ORDER BY updated_at DESC, id DESC;
        """
        async with self._storage.transaction("list tasks") as session:
            result = await session.execute(
                select(TaskRow).order_by(TaskRow.updated_at.desc(), TaskRow.id.desc())
            )
            return [row.to_record() for row in result.scalars().all()]

    async def get_by_id(self, task_id: int) -> Task | None:
        async with self._storage.transaction("get task") as session:
            row = await session.get(TaskRow, task_id)
            return row.to_record() if row else None

    async def create(
        self,
        title: str,
        added_by: str,
        updated_by: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        now = self._storage.clock()
        row = TaskRow(
            title=title,
            description=normalize_description(description),
            status=TaskStatus(status),
            added_by=added_by,
            updated_by=updated_by,
            created_at=now,
            updated_at=now,
        )
        async with self._storage.transaction("create task") as session:
            session.add(row)
            await session.flush()  # flush() выдаёт ID из БД
            return row.to_record()

    async def update(self, task_id: int, **fields: Any) -> Task | None:
        """
        SQL эквивалент:
            UPDATE tasks SET field1=value1, ..., updated_at=now() WHERE id={task_id};
        """
        async with self._storage.transaction("update task") as session:
            row = await session.get(TaskRow, task_id)
            if row is None:
                return None

            for key, value in fields.items():
                if key not in TASK_MUTABLE_FIELDS:
                    continue
                if key == "description":
                    value = normalize_description(value)
                elif key == "status":
                    value = TaskStatus(value)
                setattr(row, key, value)
            row.updated_at = max(self._storage.clock(), row.created_at)

            await session.flush()
            return row.to_record()

    async def delete(self, task_id: int) -> bool:
        """
        Удалить задачу и её комментарии в одной транзакции.

        SQL эквивалент:
            DELETE FROM comments WHERE task_id = {task_id};
            DELETE FROM tasks WHERE id = {task_id};
        """
        async with self._storage.transaction("delete task") as session:
            row = await session.get(TaskRow, task_id)
            if row is None:
                return False
            removed = await _delete_comments_of_task(session, task_id)
            await session.delete(row)

        logger.debug(
            "Task deleted with comments",
            extra={"task_id": task_id, "comments_deleted": removed, "backend": "sql"},
        )
        return True

    async def count_by_status(self) -> dict[TaskStatus, int]:
        """
        SQL эквивалент:
            SELECT status, COUNT(*) FROM tasks GROUP BY status;
        """
        counts = {status: 0 for status in TaskStatus}
        async with self._storage.transaction("count tasks") as session:
            result = await session.execute(
                select(TaskRow.status, func.count()).group_by(TaskRow.status)
            )
            for status, count in result.all():
                counts[TaskStatus(status)] = count
        return counts


class SqlCommentRepository(CommentRepository):
    """Репозиторий комментариев поверх SQLAlchemy."""

    def __init__(self, storage: "SqlStorage"):
        self._storage = storage

    async def get_by_task(self, task_id: int) -> list[Comment]:
        """
        SQL эквивалент:
            SELECT * FROM comments WHERE task_id = {task_id}
            ORDER BY created_at ASC, id ASC;
        """
        async with self._storage.transaction("list comments") as session:
            result = await session.execute(
                select(CommentRow)
                .where(CommentRow.task_id == task_id)
                .order_by(CommentRow.created_at.asc(), CommentRow.id.asc())
            )
            return [row.to_record() for row in result.scalars().all()]

    async def get_by_id(self, comment_id: int) -> Comment | None:
        async with self._storage.transaction("get comment") as session:
            row = await session.get(CommentRow, comment_id)
            return row.to_record() if row else None

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
        is_status_change = bool(is_status_change)
        row = CommentRow(
            task_id=task_id,
            parent_id=parent_id or None,
            content=content,
            author=author,
            created_at=self._storage.clock(),
            is_status_change=is_status_change,
            old_status=TaskStatus(old_status) if is_status_change and old_status else None,
            new_status=TaskStatus(new_status) if is_status_change and new_status else None,
        )
        async with self._storage.transaction("create comment") as session:
            session.add(row)
            await session.flush()
            return row.to_record()

    async def delete(self, comment_id: int) -> bool:
        async with self._storage.transaction("delete comment") as session:
            result = await session.execute(delete(CommentRow).where(CommentRow.id == comment_id))
            return result.rowcount > 0

    async def delete_by_task(self, task_id: int) -> int:
        async with self._storage.transaction("delete comments") as session:
            return await _delete_comments_of_task(session, task_id)

    async def delete_orphans(self, task_ids: Iterable[int]) -> int:
        async with self._storage.transaction("delete orphan comments") as session:
            result = await session.execute(
                delete(CommentRow).where(CommentRow.task_id.notin_(list(task_ids)))
            )
            return result.rowcount


async def _delete_comments_of_task(session: AsyncSession, task_id: int) -> int:
    result = await session.execute(delete(CommentRow).where(CommentRow.task_id == task_id))
    return result.rowcount


class SqlStorage(Storage):
    """
    Хранилище в реляционной БД (SQLite через aiosqlite, PostgreSQL через asyncpg).

    Владеет engine: создаёт таблицы в initialize() и закрывает пул в close().
    ID выдаёт БД (autoincrement), для SQLite включён sqlite_autoincrement,
    чтобы ID удалённых строк не выдавались повторно.
    """

    backend = "sql"

    def __init__(
        self,
        database_url: str | None = None,
        echo: bool = False,
        clock: Clock = utc_now,
        engine: AsyncEngine | None = None,
    ):
        super().__init__(clock)
        if engine is None:
            if database_url is None:
                raise ValueError("SqlStorage needs either database_url or engine")
            engine = create_engine(database_url, echo=echo)
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)
        self._tasks = SqlTaskRepository(self)
        self._comments = SqlCommentRepository(self)

    @property
    def tasks(self) -> SqlTaskRepository:
        return self._tasks

    @property
    def comments(self) -> SqlCommentRepository:
        return self._comments

    @contextlib.asynccontextmanager
    async def transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Сессия с открытой транзакцией; ошибки SQLAlchemy -> StorageError."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error("Database operation failed", extra={"operation": operation}, exc_info=True)
            raise StorageError(operation, e) from e

    async def initialize(self) -> None:
        try:
            await init_db(self.engine)
        except SQLAlchemyError as e:
            raise StorageError("initialize", e) from e
        logger.info("SQL storage ready", extra={"url": self.engine.url.render_as_string()})

    async def close(self) -> None:
        await self.engine.dispose()

    async def reconcile(self) -> int:
        """
        SQL эквивалент:
            DELETE FROM comments WHERE task_id NOT IN (SELECT id FROM tasks);
        """
        async with self.transaction("reconcile") as session:
            result = await session.execute(
                delete(CommentRow).where(CommentRow.task_id.notin_(select(TaskRow.id)))
            )
            return result.rowcount

    async def ping(self) -> bool:
        async with self.transaction("ping") as session:
            await session.execute(text("SELECT 1"))
        return True
