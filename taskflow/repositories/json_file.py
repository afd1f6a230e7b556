"""JSON file storage backend."""

import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..core.exceptions import StorageError
from ..core.logging import get_logger
from ..models import Comment, Task
from ..models.base import utc_now
from .base import Clock
from .memory import MemoryStorage

logger = get_logger(__name__)

TASKS_FILE = "tasks.json"
COMMENTS_FILE = "comments.json"
COUNTERS_FILE = "counters.json"


class JsonFileStorage(MemoryStorage):
    """
    Хранилище в JSON файлах.

    Раскладка на диске (DATA_DIR):
        tasks.json     - список задач
        comments.json  - список комментариев
        counters.json  - {"next_task_id": N, "next_comment_id": M}

    Рабочая копия данных держится в памяти (как у MemoryStorage), каждая
    мутация сначала записывается на диск и только потом применяется в памяти.
    Каждый файл пишется атомарно: временный файл + os.replace().

    При загрузке следующий ID = max(сохранённый счётчик, максимальный ID + 1):
    падение между записью коллекции и записью счётчика не приводит к
    повторной выдаче ID.
    """

    backend = "json"

    def __init__(self, data_dir: str | Path, clock: Clock = utc_now):
        super().__init__(clock)
        self.data_dir = Path(data_dir)

    async def initialize(self) -> None:
        tasks, comments, (next_task_id, next_comment_id) = await asyncio.to_thread(self._read_all)
        self.next_task_id = next_task_id
        self.next_comment_id = next_comment_id
        self.load(tasks, comments)
        logger.info(
            "JSON storage loaded",
            extra={
                "data_dir": str(self.data_dir),
                "tasks": len(self.task_map),
                "comments": len(self.comment_map),
                "next_task_id": self.next_task_id,
                "next_comment_id": self.next_comment_id,
            },
        )

    async def write(
        self,
        tasks: dict[int, Task] | None,
        comments: dict[int, Comment] | None,
    ) -> None:
        await asyncio.to_thread(self._write_all, tasks, comments)

    # ---- file helpers (run in a worker thread) ----

    def _read_all(self) -> tuple[list[Task], list[Comment], tuple[int, int]]:
        try:
            tasks = [Task.from_dict(item) for item in self._read_json(TASKS_FILE, [])]
            comments = [Comment.from_dict(item) for item in self._read_json(COMMENTS_FILE, [])]
            counters = self._read_json(COUNTERS_FILE, {})
            if not isinstance(counters, dict):
                raise TypeError(
                    f"{COUNTERS_FILE} must hold an object, got {type(counters).__name__}"
                )
            next_ids = (
                int(counters.get("next_task_id", 1)),
                int(counters.get("next_comment_id", 1)),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError("load", e) from e
        return tasks, comments, next_ids

    def _read_json(self, name: str, default: Any) -> Any:
        path = self.data_dir / name
        if not path.exists():
            return default
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _write_all(
        self,
        tasks: dict[int, Task] | None,
        comments: dict[int, Comment] | None,
    ) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            # Комментарии пишутся раньше задач: при падении между записями
            # остаются лишь "осиротевшие" комментарии, их убирает reconcile()
            if comments is not None:
                ordered = sorted(comments.values(), key=lambda c: c.id)
                self._write_json(COMMENTS_FILE, [c.to_dict() for c in ordered])
            if tasks is not None:
                ordered_tasks = sorted(tasks.values(), key=lambda t: t.id)
                self._write_json(TASKS_FILE, [t.to_dict() for t in ordered_tasks])
            self._write_json(
                COUNTERS_FILE,
                {"next_task_id": self.next_task_id, "next_comment_id": self.next_comment_id},
            )
        except OSError as e:
            raise StorageError("write", e) from e

    def _write_json(self, name: str, data: Any) -> None:
        path = self.data_dir / name
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
