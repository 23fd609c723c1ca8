import anyio
import pytest

pytestmark = pytest.mark.anyio


async def test_create_todo_defaults_to_not_completed(client):
    res = await client.post("/todos", json={"title": "buy milk"})
    assert res.status_code == 200
    assert res.json() == {"id": 1, "title": "buy milk", "completed": False}

async def test_create_todo_with_completed(client):
    res = await client.post("/todos", json={"title": "already done", "completed": True})
    assert res.status_code == 200
    data = res.json()
    assert data["title"] == "already done"
    assert data["completed"] is True

async def test_list_todos_returns_created_in_insertion_order(client):
    titles = ["one", "two", "three"]
    created = []
    for title in titles:
        res = await client.post("/todos", json={"title": title})
        created.append(res.json())

    res = await client.get("/todos")
    assert res.status_code == 200
    assert res.json() == created
    assert len({t["id"] for t in created}) == len(titles)

async def test_list_todos_empty(client):
    res = await client.get("/todos")
    assert res.status_code == 200
    assert res.json() == []

async def test_get_todo_and_not_found(client):
    todo = (await client.post("/todos", json={"title": "read"})).json()

    res = await client.get(f"/todos/{todo['id']}")
    assert res.status_code == 200
    assert res.json() == todo

    res = await client.get("/todos/999")
    assert res.status_code == 404
    assert res.json() == {"error": "todo 999 not found"}

async def test_example_scenario(client):
    res = await client.post("/todos", json={"title": "buy milk"})
    assert res.json() == {"id": 1, "title": "buy milk", "completed": False}

    res = await client.post("/todos/1/toggle")
    assert res.status_code == 200
    assert 'data-completed="true"' in res.text

    res = await client.get("/todos")
    assert res.json() == [{"id": 1, "title": "buy milk", "completed": True}]

async def test_missing_title_is_rejected(client, monkeypatch):
    from todo_app.repositories.todo_repo import TodoRepository

    async def fail(*args, **kwargs):
        raise AssertionError("repository must not be reached")

    monkeypatch.setattr(TodoRepository, "create", fail)

    res = await client.post("/todos", json={"completed": True})
    assert res.status_code == 422
    body = res.json()
    assert body["error"] == "ValidationError"
    assert body["detail"][0]["loc"][-1] == "title"

async def test_null_title_is_rejected(client):
    res = await client.post("/todos", json={"title": None})
    assert res.status_code == 422

async def test_invalid_json_is_rejected(client):
    res = await client.post(
        "/todos", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert res.status_code == 422
    assert res.json()["error"] == "ValidationError"

async def test_concurrent_creates_get_distinct_ids(client):
    results = []

    async def create(n):
        res = await client.post("/todos", json={"title": f"task {n}"})
        results.append(res)

    async with anyio.create_task_group() as tg:
        for n in range(50):
            tg.start_soon(create, n)

    assert all(r.status_code == 200 for r in results)
    ids = {r.json()["id"] for r in results}
    assert len(ids) == 50

    listed = (await client.get("/todos")).json()
    assert len(listed) == 50
    assert {t["id"] for t in listed} == ids

async def test_repository_failure_is_json_500(client, monkeypatch):
    from todo_app.errors import RepositoryError
    from todo_app.repositories.todo_repo import TodoRepository

    async def broken(self):
        raise RepositoryError("connection lost")

    monkeypatch.setattr(TodoRepository, "list", broken)

    res = await client.get("/todos")
    assert res.status_code == 500
    assert res.json() == {"error": "connection lost"}
