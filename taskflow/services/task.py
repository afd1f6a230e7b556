"""Task service with business logic."""

from dataclasses import dataclass
from typing import Any

from ..core.exceptions import StorageError
from ..core.logging import get_logger
from ..models import Comment, Task, TaskStatus
from ..repositories import Storage

logger = get_logger(__name__)

# Поля задачи, которые не могут быть пустыми (null в обновлении игнорируется)
REQUIRED_TASK_FIELDS = ("status", "added_by", "updated_by")


@dataclass
class StatusChangeResult:
    """
    Result of a status change.

    comment is None when the task was updated but the status-change comment
    could not be stored; comment_error then says why.
    """

    task: Task
    old_status: TaskStatus
    comment: Comment | None = None
    comment_error: str | None = None


class TaskService:
    """
    Сервис для работы с задачами.

    Валидирует входные данные до обращения к хранилищу и реализует
    составную операцию смены статуса (задача + комментарий о смене статуса).
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self.task_repo = storage.tasks
        self.comment_repo = storage.comments

    async def get_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        """
        Получить все задачи (сначала последние изменённые).

        Args:
            status: Опционально - только задачи с этим статусом
        """
        tasks = await self.task_repo.get_all()
        if status is not None:
            tasks = [task for task in tasks if task.status == status]
        return tasks

    async def get_task(self, task_id: int) -> Task | None:
        """Получить задачу по ID. None - задачи нет."""
        return await self.task_repo.get_by_id(task_id)

    async def get_status_counts(self) -> dict[str, int]:
        """
        Количество задач по статусам плюс общее.

        Пример:
            {"all": 3, "pending": 1, "work-in-process": 1, "on-hold": 0, "completed": 1}
        """
        counts = await self.task_repo.count_by_status()
        result = {"all": sum(counts.values())}
        result.update({status.value: counts[status] for status in TaskStatus})
        return result

    async def create_task(
        self,
        title: str,
        added_by: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.PENDING,
        updated_by: str | None = None,
    ) -> Task:
        """
        Создать новую задачу.

        Args:
            title: Название (обязательно)
            added_by: Кто создал
            description: Описание (пустое -> None)
            status: Начальный статус (по умолчанию pending)
            updated_by: Кто последний менял (по умолчанию = added_by)

        Raises:
            ValueError: Пустое название
        """
        if not title or not title.strip():
            raise ValueError("Task title cannot be empty")

        task = await self.task_repo.create(
            title=title.strip(),
            added_by=added_by,
            updated_by=updated_by or added_by,
            description=description,
            status=status or TaskStatus.PENDING,
        )
        logger.info("Task created", extra={"task_id": task.id, "added_by": added_by})
        return task

    async def update_task(self, task_id: int, **changes: Any) -> Task | None:
        """
        Частично обновить задачу.

        Передаются только изменяемые поля. Пустой набор полей допустим:
        обновится только updated_at. None для status, added_by и updated_by
        означает "не менять".

        Returns:
            Обновлённая задача или None, если задачи нет

        Raises:
            ValueError: Пустое название
        """
        if "title" in changes:
            title = changes["title"]
            if title is None or not title.strip():
                raise ValueError("Task title cannot be empty")
            changes["title"] = title.strip()

        # Обязательные поля: null означает "не менять"
        for key in REQUIRED_TASK_FIELDS:
            if key in changes and changes[key] is None:
                del changes[key]

        task = await self.task_repo.update(task_id, **changes)
        if task is not None:
            logger.info("Task updated", extra={"task_id": task_id, "fields": sorted(changes)})
        return task

    async def delete_task(self, task_id: int) -> bool:
        """Удалить задачу вместе с комментариями. False - задачи не было."""
        deleted = await self.task_repo.delete(task_id)
        if deleted:
            logger.info("Task deleted", extra={"task_id": task_id})
        return deleted

    async def change_status(
        self,
        task_id: int,
        new_status: TaskStatus,
        updated_by: str,
        content: str | None = None,
    ) -> StatusChangeResult | None:
        """
        Сменить статус задачи и оставить комментарий о смене статуса.

        Шаги выполняются строго последовательно:
        1. Прочитать задачу (нет задачи -> None, больше ничего не делается)
        2. Обновить status и updated_by
        3. Создать комментарий is_status_change=True со старым и новым статусом

        Если шаг 3 не удался, смена статуса НЕ откатывается: комментарий
        поясняющий, а не определяющий. Ошибка логируется и возвращается
        в StatusChangeResult.comment_error.

        Переход в тот же статус допустим и тоже создаёт комментарий.

        Args:
            task_id: ID задачи
            new_status: Новый статус
            updated_by: Кто меняет (он же автор комментария)
            content: Текст комментария; пустой - "Changed status from X to Y."
        """
        new_status = TaskStatus(new_status)

        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            return None
        old_status = task.status

        task = await self.task_repo.update(task_id, status=new_status, updated_by=updated_by)
        if task is None:
            # Задачу удалили между чтением и обновлением
            return None

        if not content or not content.strip():
            content = f"Changed status from {old_status.label} to {new_status.label}."

        result = StatusChangeResult(task=task, old_status=old_status)
        try:
            result.comment = await self.comment_repo.create(
                task_id=task_id,
                content=content.strip(),
                author=updated_by,
                is_status_change=True,
                old_status=old_status,
                new_status=new_status,
            )
        except StorageError as e:
            logger.error(
                "Status changed but status-change comment was not stored",
                extra={
                    "task_id": task_id,
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                },
                exc_info=True,
            )
            result.comment_error = str(e)
            return result

        logger.info(
            "Task status changed",
            extra={
                "task_id": task_id,
                "old_status": old_status.value,
                "new_status": new_status.value,
                "comment_id": result.comment.id,
            },
        )
        return result
