"""Тесты для форматтеров логов."""

import json
import logging

from taskflow.core.logging import JSONFormatter, SimpleFormatter, request_id_var


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="taskflow.services.task",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_extra_and_request_id():
    """Test: JSON лог содержит extra и request_id."""
    token = request_id_var.set("req-123")
    try:
        line = JSONFormatter().format(_record("Task created", task_id=7))
    finally:
        request_id_var.reset(token)

    data = json.loads(line)
    assert data["level"] == "INFO"
    assert data["logger"] == "taskflow.services.task"
    assert data["message"] == "Task created"
    assert data["request_id"] == "req-123"
    assert data["extra"] == {"task_id": 7}


def test_json_formatter_without_extra():
    """Test: без extra и вне запроса лишних ключей нет."""
    data = json.loads(JSONFormatter().format(_record("Plain")))

    assert "extra" not in data
    assert "request_id" not in data


def test_simple_formatter():
    """Test: текстовый лог - уровень, логгер, сообщение и extra."""
    line = SimpleFormatter().format(_record("Task deleted", task_id=3))

    assert "INFO" in line
    assert "taskflow.services.task: Task deleted" in line
    assert line.endswith("task_id=3")
