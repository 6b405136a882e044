"""
Тесты для API Layer (REST endpoints).

Проверяем:
- HTTP статус-коды
- Форматы запросов/ответов (camelCase JSON)
- Единый формат ошибок (400, 404)
- Интеграцию всех слоёв (API → Service → Repository → DB)
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from todo_api.api.dependencies import get_db
from todo_api.core.config import settings
from todo_api.main import app


async def create_todo(client: AsyncClient, title: str, **fields) -> dict:
    response = await client.post("/api/todos", json={"title": title, **fields})
    assert response.status_code == 201, response.json()
    return response.json()


def assert_error(response, status_code: int, code: str) -> dict:
    """Проверить единый формат ошибки и вернуть body["error"]."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert set(body) == {"error"}
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    return body["error"]


# ============================================================================
# TAG API TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_create_tag_japanese(test_client: AsyncClient):
    """Test: POST /api/tags - японские имена, повтор возвращает 200 с тем же id."""
    kanji = await test_client.post("/api/tags", json={"name": "重要"})
    assert kanji.status_code == 201
    assert kanji.json()["name"] == "重要"

    first = await test_client.post("/api/tags", json={"name": "ユニークタグ"})
    assert first.status_code == 201

    again = await test_client.post("/api/tags", json={"name": "ユニークタグ"})
    assert again.status_code == 200
    assert again.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_create_tag_normalizes(test_client: AsyncClient):
    response = await test_client.post("/api/tags", json={"name": "  Important  "})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "important"
    assert set(data) == {"id", "name", "createdAt"}

    same = await test_client.post("/api/tags", json={"name": "IMPORTANT"})
    assert same.status_code == 200
    assert same.json()["id"] == data["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name, reason",
    [
        ("", "empty"),
        ("   ", "empty"),
        ("a" * 21, "too_long"),
        ("no spaces", "invalid_characters"),
        ("emoji🎉", "invalid_characters"),
    ],
)
async def test_create_tag_invalid_name(test_client: AsyncClient, name, reason):
    response = await test_client.post("/api/tags", json={"name": name})

    error = assert_error(response, 400, "INVALID_TAG_NAME")
    assert error["details"][0]["field"] == "name"
    assert error["details"][0]["reason"] == reason


@pytest.mark.asyncio
async def test_create_tag_boundaries(test_client: AsyncClient):
    assert (await test_client.post("/api/tags", json={"name": "a"})).status_code == 201
    assert (await test_client.post("/api/tags", json={"name": "b" * 20})).status_code == 201


@pytest.mark.asyncio
async def test_create_tag_name_not_a_string(test_client: AsyncClient):
    response = await test_client.post("/api/tags", json={"name": 123})

    error = assert_error(response, 400, "VALIDATION_ERROR")
    assert error["details"][0]["field"] == "name"


@pytest.mark.asyncio
async def test_list_tags_with_counts(test_client: AsyncClient):
    await create_todo(test_client, "A", tags=["work", "urgent"])
    await create_todo(test_client, "B", tags=["urgent"])
    await test_client.post("/api/tags", json={"name": "idle"})

    response = await test_client.get("/api/tags")

    assert response.status_code == 200
    assert [(t["name"], t["count"]) for t in response.json()] == [
        ("idle", 0),
        ("urgent", 2),
        ("work", 1),
    ]


@pytest.mark.asyncio
async def test_delete_tag(test_client: AsyncClient):
    todo = await create_todo(test_client, "A", tags=["work", "urgent"])
    work_id = todo["tags"][0]["id"]

    response = await test_client.delete(f"/api/tags/{work_id}")
    assert response.status_code == 204

    reloaded = (await test_client.get(f"/api/todos/{todo['id']}")).json()
    assert [t["name"] for t in reloaded["tags"]] == ["urgent"]

    missing = await test_client.delete(f"/api/tags/{work_id}")
    assert_error(missing, 404, "NOT_FOUND")


# ============================================================================
# TODO API TESTS - CRUD
# ============================================================================


@pytest.mark.asyncio
async def test_create_todo(test_client: AsyncClient):
    """Test: POST /api/todos - ответ в camelCase, теги нормализованы и в порядке."""
    data = await create_todo(
        test_client,
        "Подготовить отчёт",
        description="Q4",
        dueDate="2026-11-01T09:00:00Z",
        tags=["A", "b"],
    )

    assert set(data) == {
        "id",
        "title",
        "description",
        "dueDate",
        "completed",
        "createdAt",
        "updatedAt",
        "tags",
    }
    assert data["title"] == "Подготовить отчёт"
    assert data["description"] == "Q4"
    assert data["dueDate"].startswith("2026-11-01T09:00:00")
    assert data["completed"] is False
    assert [t["name"] for t in data["tags"]] == ["a", "b"]
    assert set(data["tags"][0]) == {"id", "name", "createdAt"}


@pytest.mark.asyncio
async def test_create_todo_minimal(test_client: AsyncClient):
    data = await create_todo(test_client, "Only title")

    assert data["description"] is None
    assert data["dueDate"] is None
    assert data["tags"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, field",
    [
        ({}, "title"),
        ({"title": ""}, "title"),
        ({"title": "x" * 101}, "title"),
        ({"title": "A", "tags": "urgent"}, "tags"),
        ({"title": "A", "tags": None}, "tags"),
        ({"title": "A", "completed": "maybe"}, "completed"),
    ],
)
async def test_create_todo_validation_error(test_client: AsyncClient, payload, field):
    response = await test_client.post("/api/todos", json=payload)

    error = assert_error(response, 400, "VALIDATION_ERROR")
    assert field in [d["field"] for d in error["details"]]


@pytest.mark.asyncio
async def test_create_todo_whitespace_title(test_client: AsyncClient):
    response = await test_client.post("/api/todos", json={"title": "   "})

    assert_error(response, 400, "VALIDATION_ERROR")


@pytest.mark.asyncio
async def test_create_todo_invalid_tag_rolls_back(test_client: AsyncClient):
    response = await test_client.post("/api/todos", json={"title": "A", "tags": ["ok", "bad tag"]})

    error = assert_error(response, 400, "INVALID_TAG_NAME")
    assert error["details"][0]["field"] == "tags"

    assert (await test_client.get("/api/todos")).json() == []
    assert (await test_client.get("/api/tags")).json() == []


@pytest.mark.asyncio
async def test_get_todo(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["work"])

    response = await test_client.get(f"/api/todos/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_todo_not_found(test_client: AsyncClient):
    response = await test_client.get("/api/todos/does-not-exist")

    error = assert_error(response, 404, "NOT_FOUND")
    assert error["details"] is None


@pytest.mark.asyncio
async def test_patch_todo_partial(test_client: AsyncClient):
    created = await create_todo(test_client, "Old", description="Keep", tags=["work"])

    response = await test_client.patch(f"/api/todos/{created['id']}", json={"completed": True})

    assert response.status_code == 200
    data = response.json()
    assert data["completed"] is True
    assert data["title"] == "Old"
    assert data["description"] == "Keep"
    assert [t["name"] for t in data["tags"]] == ["work"]
    assert data["updatedAt"] >= created["updatedAt"]


@pytest.mark.asyncio
async def test_patch_todo_replaces_and_clears_tags(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["one", "two"])
    url = f"/api/todos/{created['id']}"

    replaced = await test_client.patch(url, json={"tags": ["Three", "one", "three"]})
    assert [t["name"] for t in replaced.json()["tags"]] == ["three", "one"]

    cleared = await test_client.patch(url, json={"tags": []})
    assert cleared.json()["tags"] == []


@pytest.mark.asyncio
async def test_patch_todo_errors(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["work"])
    url = f"/api/todos/{created['id']}"

    not_array = await test_client.patch(url, json={"tags": "one"})
    assert_error(not_array, 400, "VALIDATION_ERROR")

    null_tags = await test_client.patch(url, json={"tags": None})
    error = assert_error(null_tags, 400, "VALIDATION_ERROR")
    assert error["details"][0]["field"] == "tags"
    # Теги не изменились
    current = await test_client.get(url)
    assert [t["name"] for t in current.json()["tags"]] == ["work"]

    missing = await test_client.patch("/api/todos/missing", json={"title": "x"})
    assert_error(missing, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_patch_todo_clears_due_date(test_client: AsyncClient):
    created = await create_todo(test_client, "A", dueDate="2026-11-01T09:00:00")

    response = await test_client.patch(f"/api/todos/{created['id']}", json={"dueDate": None})

    assert response.status_code == 200
    assert response.json()["dueDate"] is None


@pytest.mark.asyncio
async def test_delete_todo_keeps_tags(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["work"])

    response = await test_client.delete(f"/api/todos/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Todo deleted successfully"}
    assert_error(await test_client.get(f"/api/todos/{created['id']}"), 404, "NOT_FOUND")

    tags = (await test_client.get("/api/tags")).json()
    assert [(t["name"], t["count"]) for t in tags] == [("work", 0)]

    again = await test_client.delete(f"/api/todos/{created['id']}")
    assert_error(again, 404, "NOT_FOUND")


# ============================================================================
# TODO API TESTS - TAGS
# ============================================================================


@pytest.mark.asyncio
async def test_add_tags_to_todo(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["urgent"])
    url = f"/api/todos/{created['id']}/tags"

    response = await test_client.post(url, json={"tagNames": ["URGENT", "ユニークタグ"]})

    assert response.status_code == 200
    assert [t["name"] for t in response.json()["tags"]] == ["urgent", "ユニークタグ"]

    again = await test_client.post(url, json={"tagNames": ["ユニークタグ"]})
    assert [t["name"] for t in again.json()["tags"]] == ["urgent", "ユニークタグ"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, code",
    [
        ({}, "VALIDATION_ERROR"),
        ({"tagNames": []}, "VALIDATION_ERROR"),
        ({"tagNames": "urgent"}, "VALIDATION_ERROR"),
        ({"tagNames": ["a" * 21]}, "INVALID_TAG_NAME"),
    ],
)
async def test_add_tags_validation(test_client: AsyncClient, payload, code):
    created = await create_todo(test_client, "A")

    response = await test_client.post(f"/api/todos/{created['id']}/tags", json=payload)

    error = assert_error(response, 400, code)
    assert error["details"][0]["field"] == "tagNames"


@pytest.mark.asyncio
async def test_add_tags_todo_not_found(test_client: AsyncClient):
    response = await test_client.post("/api/todos/missing/tags", json={"tagNames": ["work"]})

    assert_error(response, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_remove_tag_from_todo(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["one", "two"])
    one_id = created["tags"][0]["id"]

    response = await test_client.delete(f"/api/todos/{created['id']}/tags/{one_id}")

    assert response.status_code == 204
    assert response.content == b""
    reloaded = (await test_client.get(f"/api/todos/{created['id']}")).json()
    assert [t["name"] for t in reloaded["tags"]] == ["two"]

    # Связи больше нет - 404
    again = await test_client.delete(f"/api/todos/{created['id']}/tags/{one_id}")
    assert_error(again, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_remove_tag_not_found(test_client: AsyncClient):
    created = await create_todo(test_client, "A", tags=["one"])
    one_id = created["tags"][0]["id"]

    missing_todo = await test_client.delete(f"/api/todos/missing/tags/{one_id}")
    missing_tag = await test_client.delete(f"/api/todos/{created['id']}/tags/missing")

    assert_error(missing_todo, 404, "NOT_FOUND")
    assert_error(missing_tag, 404, "NOT_FOUND")


@pytest.mark.asyncio
async def test_remove_tag_prunes_when_enabled(test_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "PRUNE_UNUSED_TAGS", True)
    created = await create_todo(test_client, "A", tags=["solo"])
    solo_id = created["tags"][0]["id"]

    response = await test_client.delete(f"/api/todos/{created['id']}/tags/{solo_id}")

    assert response.status_code == 204
    assert (await test_client.get("/api/tags")).json() == []


# ============================================================================
# TODO API TESTS - FILTERS
# ============================================================================


async def make_filter_data(client: AsyncClient) -> dict[str, str]:
    """Задачи создаются по очереди, поэтому в ответе порядок обратный."""
    ids = {}
    ids["both"] = (await create_todo(client, "both", tags=["urgent", "work"]))["id"]
    ids["urgent"] = (
        await create_todo(client, "urgent", tags=["urgent"], description="Call the bank")
    )["id"]
    ids["work"] = (await create_todo(client, "work", tags=["work"], completed=True))["id"]
    ids["untagged"] = (await create_todo(client, "untagged"))["id"]
    return ids


async def list_titles(client: AsyncClient, query: str = "") -> list[str]:
    response = await client.get(f"/api/todos{query}")
    assert response.status_code == 200, response.text
    return [todo["title"] for todo in response.json()]


@pytest.mark.asyncio
async def test_list_todos_newest_first(test_client: AsyncClient):
    await make_filter_data(test_client)

    assert await list_titles(test_client) == ["untagged", "work", "urgent", "both"]


@pytest.mark.asyncio
async def test_list_todos_tag_modes(test_client: AsyncClient):
    await make_filter_data(test_client)

    assert await list_titles(test_client, "?tags=urgent,work") == ["work", "urgent", "both"]
    assert await list_titles(test_client, "?tags=urgent,work&tagsMode=or") == [
        "work",
        "urgent",
        "both",
    ]
    assert await list_titles(test_client, "?tags=Urgent,%20WORK&tagsMode=and") == ["both"]
    assert await list_titles(test_client, "?tags=urgent,nope&tagsMode=and") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("tags", ["", "%20%20", ",", "%20,%20,"])
async def test_list_todos_empty_tag_filter_means_no_filter(test_client: AsyncClient, tags):
    await make_filter_data(test_client)

    assert len(await list_titles(test_client, f"?tags={tags}&tagsMode=and")) == 4


@pytest.mark.asyncio
async def test_list_todos_completed_and_q(test_client: AsyncClient):
    await make_filter_data(test_client)

    assert await list_titles(test_client, "?completed=true") == ["work"]
    assert await list_titles(test_client, "?completed=false&tags=work") == ["both"]
    assert await list_titles(test_client, "?q=BANK") == ["urgent"]


@pytest.mark.asyncio
async def test_list_todos_pagination(test_client: AsyncClient):
    await make_filter_data(test_client)

    assert await list_titles(test_client, "?limit=2") == ["untagged", "work"]
    assert await list_titles(test_client, "?limit=2&offset=2") == ["urgent", "both"]
    assert await list_titles(test_client, "?offset=10") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, field",
    [
        ("?tagsMode=xor", "tagsMode"),
        ("?limit=-1", "limit"),
        ("?limit=abc", "limit"),
        ("?offset=-5", "offset"),
        ("?completed=maybe", "completed"),
        ("?completed=1", "completed"),
        ("?completed=yes", "completed"),
    ],
)
async def test_list_todos_bad_query(test_client: AsyncClient, query, field):
    response = await test_client.get(f"/api/todos{query}")

    error = assert_error(response, 400, "VALIDATION_ERROR")
    assert error["details"][0]["field"] == field


# ============================================================================
# SERVICE ENDPOINTS
# ============================================================================


@pytest.mark.asyncio
async def test_health(test_client: AsyncClient):
    response = await test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["checks"]["database"] == "connected"
    assert "timestamp" in data


class UnreachableSession:
    """Сессия, у которой любой запрос падает, как при недоступной БД."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def rollback(self):
        pass


@pytest.mark.asyncio
async def test_health_database_unreachable(test_client: AsyncClient):
    async def unreachable_db():
        yield UnreachableSession()

    app.dependency_overrides[get_db] = unreachable_db

    response = await test_client.get("/health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "error"
    assert data["checks"]["database"] == "disconnected"


@pytest.mark.asyncio
async def test_root(test_client: AsyncClient):
    response = await test_client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["todos"] == "/api/todos"


@pytest.mark.asyncio
async def test_request_id_header(test_client: AsyncClient):
    response = await test_client.get("/api/tags", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_api_key_required_when_configured(test_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")

    missing = await test_client.get("/api/todos")
    wrong = await test_client.get("/api/todos", headers={"X-API-Key": "nope"})
    ok = await test_client.get("/api/todos", headers={"X-API-Key": "secret"})

    assert_error(missing, 401, "UNAUTHORIZED")
    assert_error(wrong, 401, "UNAUTHORIZED")
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(test_client: AsyncClient):
    response = await test_client.get("/api/nothing-here")

    assert_error(response, 404, "NOT_FOUND")
