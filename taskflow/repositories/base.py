"""Abstract storage contract shared by every backend."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from ..models import Comment, Task, TaskStatus
from ..models.base import utc_now

# Источник текущего времени. В тестах подменяется управляемыми часами.
Clock = Callable[[], datetime]

# Поля задачи, которые можно менять через update()
TASK_MUTABLE_FIELDS = frozenset({"title", "description", "status", "added_by", "updated_by"})


def normalize_description(description: str | None) -> str | None:
    """Пустое или пробельное описание хранится как None ("нет описания")."""
    if description is None:
        return None
    description = description.strip()
    return description or None


def task_sort_key(task: Task) -> tuple[datetime, int]:
    """Ключ для get_all(): по updated_at (с reverse=True - новые первыми)."""
    return (task.updated_at, task.id)


def comment_sort_key(comment: Comment) -> tuple[datetime, int]:
    """Ключ для get_by_task(): по created_at по возрастанию, при равенстве - по id."""
    return (comment.created_at, comment.id)


class TaskRepository(ABC):
    """
    Репозиторий задач (Task Store).

    Отвечает за:
    - Выдачу ID (монотонно растущий счётчик, ID никогда не переиспользуются)
    - Частичное обновление с обновлением updated_at
    - Каскадное удаление комментариев при удалении задачи

    "Не найдено" возвращается как None/False, а не исключением.
    Ошибки носителя (диск, БД) поднимаются как StorageError.
    """

    @abstractmethod
    async def get_all(self) -> list[Task]:
        """Все задачи, отсортированные по updated_at (сначала последние изменённые)."""

    @abstractmethod
    async def get_by_id(self, task_id: int) -> Task | None:
        """Задача по ID или None."""

    @abstractmethod
    async def create(
        self,
        title: str,
        added_by: str,
        updated_by: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        """Создать задачу: новый ID, created_at = updated_at = сейчас."""

    @abstractmethod
    async def update(self, task_id: int, **fields: Any) -> Task | None:
        """
        Частично обновить задачу.

        Применяются только переданные поля из TASK_MUTABLE_FIELDS, остальные
        сохраняются. updated_at обновляется всегда, даже для пустого набора полей.

        Returns:
            Обновлённая задача или None, если задачи нет
        """

    @abstractmethod
    async def delete(self, task_id: int) -> bool:
        """
        Удалить задачу вместе со всеми её комментариями.

        Returns:
            True если задача была удалена, False если её не было
        """

    async def count_by_status(self) -> dict[TaskStatus, int]:
        """Количество задач в каждом статусе (для вкладок статусов)."""
        counts = {status: 0 for status in TaskStatus}
        for task in await self.get_all():
            counts[task.status] += 1
        return counts


class CommentRepository(ABC):
    """
    Репозиторий комментариев (Comment Store).

    Комментарии не изменяются после создания. Существование task_id и
    parent_id не проверяется: целостность обеспечивает каскадное удаление
    в TaskRepository.
    """

    @abstractmethod
    async def get_by_task(self, task_id: int) -> list[Comment]:
        """Комментарии задачи по created_at по возрастанию."""

    @abstractmethod
    async def get_by_id(self, comment_id: int) -> Comment | None:
        """Комментарий по ID или None."""

    @abstractmethod
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
        """
        Создать комментарий.

        Если is_status_change ложно, old_status и new_status сохраняются как None.
        """

    @abstractmethod
    async def delete(self, comment_id: int) -> bool:
        """Удалить один комментарий. Ответы на него не удаляются."""

    @abstractmethod
    async def delete_by_task(self, task_id: int) -> int:
        """Удалить все комментарии задачи. Возвращает количество удалённых."""

    @abstractmethod
    async def delete_orphans(self, task_ids: Iterable[int]) -> int:
        """Удалить комментарии, чей task_id не входит в task_ids."""


class Storage(ABC):
    """
    Хранилище: пара репозиториев одного backend'а и их жизненный цикл.

    initialize() -> работа -> close()

    Создаётся один раз при старте приложения и передаётся обработчикам
    через зависимости FastAPI.
    """

    backend: str = "abstract"

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    @property
    @abstractmethod
    def tasks(self) -> TaskRepository:
        """Репозиторий задач."""

    @property
    @abstractmethod
    def comments(self) -> CommentRepository:
        """Репозиторий комментариев."""

    async def initialize(self) -> None:
        """Загрузить/подготовить данные. По умолчанию ничего не делает."""

    async def close(self) -> None:
        """Освободить ресурсы. По умолчанию ничего не делает."""

    async def reconcile(self) -> int:
        """
        Удалить "осиротевшие" комментарии (задача которых уже удалена).

        Такие комментарии могут остаться, если процесс упал посреди
        каскадного удаления.

        Returns:
            Количество удалённых комментариев
        """
        task_ids = {task.id for task in await self.tasks.get_all()}
        return await self.comments.delete_orphans(task_ids)

    async def ping(self) -> bool:
        """Проверка доступности носителя (для /health)."""
        await self.tasks.get_all()
        return True
