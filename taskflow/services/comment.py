"""Comment service with business logic."""

from dataclasses import dataclass, field

from ..core.logging import get_logger
from ..models import Comment, TaskStatus
from ..repositories import Storage

logger = get_logger(__name__)


@dataclass
class CommentThread:
    """A top-level comment with its replies, oldest first."""

    comment: Comment
    replies: list[Comment] = field(default_factory=list)


def build_threads(comments: list[Comment]) -> list[CommentThread]:
    """
    Сгруппировать комментарии в треды с одним уровнем вложенности.

    - Комментарий без parent_id открывает тред
    - Ответ прикрепляется к треду своего корневого предка (ответ на ответ
      показывается на том же уровне, что и ответ)
    - Ответ, чей родитель удалён, сам становится корнем треда

    Порядок сохраняется хронологическим и для тредов, и для ответов.
    """
    by_id = {comment.id: comment for comment in comments}

    def root_of(comment: Comment) -> Comment:
        seen = {comment.id}
        while comment.parent_id is not None and comment.parent_id in by_id:
            parent = by_id[comment.parent_id]
            if parent.id in seen:  # цикл в данных
                break
            seen.add(parent.id)
            comment = parent
        return comment

    threads: dict[int, CommentThread] = {}
    for comment in comments:
        root = root_of(comment)
        if root.id == comment.id:
            threads[comment.id] = CommentThread(comment=comment)

    for comment in comments:
        root = root_of(comment)
        if root.id != comment.id:
            threads[root.id].replies.append(comment)

    return list(threads.values())


class CommentService:
    """
    Сервис для работы с комментариями.

    Комментарии поддерживают один уровень вложенности (ответы через parent_id)
    и служебный подтип "смена статуса".
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self.task_repo = storage.tasks
        self.comment_repo = storage.comments

    async def get_comments(self, task_id: int) -> list[Comment]:
        """Комментарии задачи в хронологическом порядке."""
        return await self.comment_repo.get_by_task(task_id)

    async def get_comment(self, comment_id: int) -> Comment | None:
        """Комментарий по ID или None."""
        return await self.comment_repo.get_by_id(comment_id)

    async def get_thread(self, task_id: int) -> list[CommentThread]:
        """Комментарии задачи, сгруппированные в треды."""
        return build_threads(await self.comment_repo.get_by_task(task_id))

    async def add_comment(
        self,
        task_id: int,
        content: str,
        author: str,
        parent_id: int | None = None,
        is_status_change: bool = False,
        old_status: TaskStatus | None = None,
        new_status: TaskStatus | None = None,
    ) -> Comment | None:
        """
        Добавить комментарий к задаче.

        Returns:
            Созданный комментарий или None, если задачи нет

        Raises:
            ValueError: Пустой текст, родитель не найден или из другой задачи,
                        неполный комментарий о смене статуса

        Бизнес-правила:
        1. Текст обязателен
        2. Задача существует
        3. Родительский комментарий (если указан) существует и принадлежит той же задаче
        4. Комментарий о смене статуса содержит оба статуса
        """
        # 1. ВАЛИДАЦИЯ: Текст
        if not content or not content.strip():
            raise ValueError("Comment content cannot be empty")

        # 4. ВАЛИДАЦИЯ: Смена статуса
        if is_status_change and (old_status is None or new_status is None):
            raise ValueError("Status change comment needs both old_status and new_status")

        # 2. ПРОВЕРКА: Задача существует
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            return None

        # 3. ВАЛИДАЦИЯ: Родитель
        if parent_id is not None:
            parent = await self.comment_repo.get_by_id(parent_id)
            if parent is None:
                raise ValueError(f"Parent comment with id {parent_id} not found")
            if parent.task_id != task_id:
                raise ValueError(
                    f"Parent comment belongs to another task "
                    f"(parent: {parent.task_id}, current: {task_id})"
                )

        comment = await self.comment_repo.create(
            task_id=task_id,
            content=content.strip(),
            author=author,
            parent_id=parent_id,
            is_status_change=is_status_change,
            old_status=old_status,
            new_status=new_status,
        )
        logger.info(
            "Comment added",
            extra={"comment_id": comment.id, "task_id": task_id, "parent_id": parent_id},
        )
        return comment

    async def delete_comment(self, comment_id: int) -> bool:
        """Удалить комментарий. Ответы на него остаются. False - комментария не было."""
        deleted = await self.comment_repo.delete(comment_id)
        if deleted:
            logger.info("Comment deleted", extra={"comment_id": comment_id})
        return deleted
