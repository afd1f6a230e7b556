"""
Тесты для API Layer (REST endpoints).

Проверяем:
- HTTP статус-коды
- Форматы запросов/ответов (JSON)
- Обработку ошибок (400, 404, 422, 503)
- Интеграцию всех слоёв (API → Service → Repository → Storage)
"""

import pytest
from httpx import AsyncClient

from taskflow.core.exceptions import StorageError

API = "/api/v1"


async def _create_task(client: AsyncClient, title: str = "Test Task", **fields) -> dict:
    response = await client.post(f"{API}/tasks", json={"title": title, **fields})
    assert response.status_code == 201
    return response.json()


# ============================================================================
# TASK API TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_create_task(test_client: AsyncClient):
    """Test: POST /tasks - создание задачи."""
    response = await test_client.post(
        f"{API}/tasks",
        json={"title": "Implement User Authentication", "description": "JWT"},
        headers={"X-User-Name": "Sarah Chen"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == 1
    assert data["title"] == "Implement User Authentication"
    assert data["description"] == "JWT"
    assert data["status"] == "pending"
    assert data["added_by"] == "Sarah Chen"
    assert data["updated_by"] == "Sarah Chen"
    assert data["created_at"] == data["updated_at"]


@pytest.mark.asyncio
async def test_create_task_default_user(test_client: AsyncClient):
    """Test: POST /tasks - без X-User-Name автор = DEFAULT_USER."""
    data = await _create_task(test_client)

    assert data["added_by"] == "Current User"


@pytest.mark.asyncio
async def test_create_task_validation_error(test_client: AsyncClient):
    """Test: POST /tasks - нет названия (422 в формате ErrorResponse)."""
    response = await test_client.post(f"{API}/tasks", json={"description": "No title"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "title"


@pytest.mark.asyncio
async def test_create_task_blank_title(test_client: AsyncClient):
    """Test: POST /tasks - название из пробелов (400), задача не создаётся."""
    response = await test_client.post(f"{API}/tasks", json={"title": "   "})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = await test_client.get(f"{API}/tasks")
    assert response.json() == []


@pytest.mark.asyncio
async def test_create_task_invalid_status(test_client: AsyncClient):
    """Test: POST /tasks - неизвестный статус (422)."""
    response = await test_client.post(f"{API}/tasks", json={"title": "Task", "status": "done"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_tasks_list(test_client: AsyncClient):
    """Test: GET /tasks - сначала последние изменённые."""
    first = await _create_task(test_client, "First")
    second = await _create_task(test_client, "Second")

    response = await test_client.get(f"{API}/tasks")

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_get_tasks_filter_by_status(test_client: AsyncClient):
    """Test: GET /tasks?status= - фильтр по статусу."""
    await _create_task(test_client, "Pending")
    done = await _create_task(test_client, "Done", status="completed")

    response = await test_client.get(f"{API}/tasks", params={"status": "completed"})

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [done["id"]]


@pytest.mark.asyncio
async def test_get_status_counts(test_client: AsyncClient):
    """Test: GET /tasks/counts - количество по статусам."""
    await _create_task(test_client, "A")
    await _create_task(test_client, "B", status="work-in-process")

    response = await test_client.get(f"{API}/tasks/counts")

    assert response.status_code == 200
    assert response.json() == {
        "all": 2,
        "pending": 1,
        "work-in-process": 1,
        "on-hold": 0,
        "completed": 0,
    }


@pytest.mark.asyncio
async def test_get_task_by_id(test_client: AsyncClient):
    """Test: GET /tasks/{id} - получение задачи."""
    task = await _create_task(test_client)

    response = await test_client.get(f"{API}/tasks/{task['id']}")

    assert response.status_code == 200
    assert response.json() == task


@pytest.mark.asyncio
async def test_get_task_not_found(test_client: AsyncClient):
    """Test: GET /tasks/{id} - задача не найдена (404)."""
    response = await test_client.get(f"{API}/tasks/999")

    assert response.status_code == 404
    assert response.json() == {
        "error": {"code": "NOT_FOUND", "message": "Task with id=999 not found", "details": None}
    }


@pytest.mark.asyncio
async def test_update_task(test_client: AsyncClient):
    """Test: PUT /tasks/{id} - частичное обновление."""
    task = await _create_task(test_client, "Original", description="Keep")

    response = await test_client.put(
        f"{API}/tasks/{task['id']}",
        json={"title": "Renamed"},
        headers={"X-User-Name": "Mike Johnson"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["description"] == "Keep"
    assert data["updated_by"] == "Mike Johnson"
    assert data["updated_at"] > task["updated_at"]


@pytest.mark.asyncio
async def test_patch_task_clears_description(test_client: AsyncClient):
    """Test: PATCH /tasks/{id} - пустое описание очищает поле."""
    task = await _create_task(test_client, "Task", description="Something")

    response = await test_client.patch(f"{API}/tasks/{task['id']}", json={"description": ""})

    assert response.status_code == 200
    assert response.json()["description"] is None


@pytest.mark.asyncio
async def test_update_task_not_found(test_client: AsyncClient):
    """Test: PUT /tasks/{id} - задача не найдена (404)."""
    response = await test_client.put(f"{API}/tasks/999", json={"title": "Nothing"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_task(test_client: AsyncClient):
    """Test: DELETE /tasks/{id} - задача удаляется вместе с комментариями."""
    task = await _create_task(test_client)
    comment = (
        await test_client.post(f"{API}/tasks/{task['id']}/comments", json={"content": "Hi"})
    ).json()

    response = await test_client.delete(f"{API}/tasks/{task['id']}")
    assert response.status_code == 204

    response = await test_client.get(f"{API}/tasks/{task['id']}")
    assert response.status_code == 404
    response = await test_client.get(f"{API}/comments/{comment['id']}")
    assert response.status_code == 404

    response = await test_client.delete(f"{API}/tasks/{task['id']}")
    assert response.status_code == 404


# ============================================================================
# STATUS CHANGE API TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_change_status(test_client: AsyncClient):
    """Test: POST /tasks/{id}/status - статус меняется, появляется комментарий."""
    task = await _create_task(test_client)

    response = await test_client.post(
        f"{API}/tasks/{task['id']}/status",
        json={"status": "work-in-process", "content": "starting work"},
        headers={"X-User-Name": "Mike Johnson"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["old_status"] == "pending"
    assert data["task"]["status"] == "work-in-process"
    assert data["task"]["updated_by"] == "Mike Johnson"
    assert data["comment_error"] is None
    assert data["comment"]["is_status_change"] is True
    assert data["comment"]["old_status"] == "pending"
    assert data["comment"]["new_status"] == "work-in-process"
    assert data["comment"]["content"] == "starting work"
    assert data["comment"]["author"] == "Mike Johnson"

    comments = (await test_client.get(f"{API}/tasks/{task['id']}/comments")).json()
    assert [c["id"] for c in comments] == [data["comment"]["id"]]


@pytest.mark.asyncio
async def test_change_status_task_not_found(test_client: AsyncClient):
    """Test: POST /tasks/{id}/status - задача не найдена (404)."""
    response = await test_client.post(f"{API}/tasks/999/status", json={"status": "completed"})

    assert response.status_code == 404


# ============================================================================
# COMMENT API TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_add_comment_and_reply(test_client: AsyncClient):
    """Test: POST /tasks/{id}/comments - комментарий и ответ на него."""
    task = await _create_task(test_client)
    url = f"{API}/tasks/{task['id']}/comments"

    response = await test_client.post(
        url, json={"content": "Rate limiting?"}, headers={"X-User-Name": "Sarah Chen"}
    )
    assert response.status_code == 201
    parent = response.json()
    assert parent["author"] == "Sarah Chen"
    assert parent["parent_id"] is None

    response = await test_client.post(
        url, json={"content": "Good point!", "parent_id": parent["id"], "author": "Alex Lee"}
    )
    assert response.status_code == 201
    reply = response.json()
    assert reply["parent_id"] == parent["id"]
    assert reply["author"] == "Alex Lee"

    response = await test_client.get(url)
    assert [c["id"] for c in response.json()] == [parent["id"], reply["id"]]


@pytest.mark.asyncio
async def test_add_comment_task_not_found(test_client: AsyncClient):
    """Test: POST /tasks/{id}/comments - задача не найдена (404)."""
    response = await test_client.post(f"{API}/tasks/999/comments", json={"content": "Hi"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_add_comment_blank_content(test_client: AsyncClient):
    """Test: POST /tasks/{id}/comments - комментарий из пробелов (400)."""
    task = await _create_task(test_client)

    response = await test_client.post(
        f"{API}/tasks/{task['id']}/comments", json={"content": "   "}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_add_comment_parent_not_found(test_client: AsyncClient):
    """Test: POST /tasks/{id}/comments - несуществующий parent_id (400)."""
    task = await _create_task(test_client)

    response = await test_client.post(
        f"{API}/tasks/{task['id']}/comments", json={"content": "Reply", "parent_id": 42}
    )

    assert response.status_code == 400
    assert "not found" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_get_comment_thread(test_client: AsyncClient):
    """Test: GET /tasks/{id}/comments/thread - ответы внутри треда."""
    task = await _create_task(test_client)
    url = f"{API}/tasks/{task['id']}/comments"
    root = (await test_client.post(url, json={"content": "Root"})).json()
    reply = (await test_client.post(url, json={"content": "Reply", "parent_id": root["id"]})).json()
    other = (await test_client.post(url, json={"content": "Other"})).json()

    response = await test_client.get(f"{url}/thread")

    assert response.status_code == 200
    threads = response.json()
    assert [t["comment"]["id"] for t in threads] == [root["id"], other["id"]]
    assert [r["id"] for r in threads[0]["replies"]] == [reply["id"]]
    assert threads[1]["replies"] == []


@pytest.mark.asyncio
async def test_get_and_delete_comment(test_client: AsyncClient):
    """Test: GET/DELETE /comments/{id} - ответы остаются после удаления родителя."""
    task = await _create_task(test_client)
    url = f"{API}/tasks/{task['id']}/comments"
    parent = (await test_client.post(url, json={"content": "Parent"})).json()
    reply = (await test_client.post(url, json={"content": "Reply", "parent_id": parent["id"]})).json()

    response = await test_client.get(f"{API}/comments/{parent['id']}")
    assert response.status_code == 200
    assert response.json() == parent

    response = await test_client.delete(f"{API}/comments/{parent['id']}")
    assert response.status_code == 204

    response = await test_client.get(f"{API}/comments/{parent['id']}")
    assert response.status_code == 404

    remaining = (await test_client.get(url)).json()
    assert [c["id"] for c in remaining] == [reply["id"]]


@pytest.mark.asyncio
async def test_delete_comment_not_found(test_client: AsyncClient):
    """Test: DELETE /comments/{id} - комментарий не найден (404)."""
    response = await test_client.delete(f"{API}/comments/999")

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Comment with id=999 not found"


# ============================================================================
# STORAGE ERRORS / HEALTH
# ============================================================================


@pytest.mark.asyncio
async def test_storage_error_returns_503(test_client: AsyncClient, memory_storage, monkeypatch):
    """Test: ошибка хранилища - 503 STORAGE_ERROR без деталей носителя."""

    async def failing_get_all():
        raise StorageError("list tasks", OSError("disk on fire"))

    monkeypatch.setattr(memory_storage.task_repo, "get_all", failing_get_all)

    response = await test_client.get(f"{API}/tasks")

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "STORAGE_ERROR"
    assert "disk on fire" not in error["message"]


@pytest.mark.asyncio
async def test_health_check(test_client: AsyncClient):
    """Test: GET /health - хранилище доступно."""
    response = await test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["checks"]["storage"] == "connected"
    assert data["checks"]["backend"] == "memory"


@pytest.mark.asyncio
async def test_health_check_storage_down(test_client: AsyncClient, memory_storage, monkeypatch):
    """Test: GET /health - хранилище недоступно (503)."""

    async def failing_ping():
        raise StorageError("ping")

    monkeypatch.setattr(memory_storage, "ping", failing_ping)

    response = await test_client.get("/health")

    assert response.status_code == 503
    assert response.json()["checks"]["storage"] == "disconnected"


@pytest.mark.asyncio
async def test_request_id_header(test_client: AsyncClient):
    """Test: X-Request-ID возвращается клиенту (свой или сгенерированный)."""
    response = await test_client.get(f"{API}/tasks", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    response = await test_client.get(f"{API}/tasks")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_root(test_client: AsyncClient):
    """Test: GET / - информация о API."""
    response = await test_client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["tasks"] == "/api/v1/tasks"


@pytest.mark.asyncio
async def test_update_task_null_required_fields_ignored(test_client: AsyncClient):
    """Test: PUT /tasks/{id} - null в обязательных полях не портит задачу."""
    task = (
        await test_client.post(
            f"{API}/tasks", json={"title": "Task"}, headers={"X-User-Name": "Sarah Chen"}
        )
    ).json()

    response = await test_client.put(
        f"{API}/tasks/{task['id']}",
        json={"added_by": None, "updated_by": None, "status": None},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["added_by"] == "Sarah Chen"
    assert data["status"] == "pending"

    response = await test_client.get(f"{API}/tasks")
    assert response.status_code == 200
    assert response.json()[0]["added_by"] == "Sarah Chen"


@pytest.mark.asyncio
async def test_user_name_header_too_long(test_client: AsyncClient):
    """Test: X-User-Name длиннее 200 символов - ошибка валидации (422)."""
    response = await test_client.post(
        f"{API}/tasks", json={"title": "Task"}, headers={"X-User-Name": "x" * 201}
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = await test_client.get(f"{API}/tasks")
    assert response.json() == []
