import pytest

pytestmark = pytest.mark.anyio


async def test_index_lists_todos(client):
    await client.post("/todos", json={"title": "water plants"})
    await client.post("/todos", json={"title": "<script>alert(1)</script>"})

    res = await client.get("/")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/html")
    assert "water plants" in res.text
    # titles are escaped
    assert "<script>alert(1)</script>" not in res.text
    assert "&lt;script&gt;" in res.text

async def test_index_empty(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert '<ul id="todos">' in res.text

async def test_form_create_returns_list_fragment(client):
    await client.post("/todos", json={"title": "first"})

    res = await client.post("/todos", data={"title": "second"})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/html")
    assert res.text.lstrip().startswith('<ul id="todos">')
    assert "first" in res.text
    assert "second" in res.text

async def test_legacy_form_route(client):
    res = await client.post("/todo", data={"title": "from the form"})
    assert res.status_code == 200
    assert "from the form" in res.text

    todos = (await client.get("/todos")).json()
    assert todos == [{"id": 1, "title": "from the form", "completed": False}]

async def test_form_checkbox_sets_completed(client):
    await client.post("/todo", data={"title": "done", "completed": "on"})
    todos = (await client.get("/todos")).json()
    assert todos[0]["completed"] is True

async def test_form_without_title_is_rejected(client):
    res = await client.post("/todo", data={"completed": "on"})
    assert res.status_code == 422
    assert (await client.get("/todos")).json() == []

async def test_toggle_returns_updated_fragment(client):
    todo = (await client.post("/todos", json={"title": "walk dog"})).json()

    res = await client.post(f"/todos/{todo['id']}/toggle")
    assert res.status_code == 200
    assert res.text.lstrip().startswith(f'<li id="todo-{todo["id"]}"')
    assert 'data-completed="true"' in res.text
    assert "walk dog" in res.text

async def test_toggle_twice_restores_original(client):
    todo = (await client.post("/todos", json={"title": "flip", "completed": True})).json()

    await client.post(f"/todos/{todo['id']}/toggle")
    res = await client.post(f"/todos/{todo['id']}/toggle")
    assert 'data-completed="true"' in res.text

    res = await client.get(f"/todos/{todo['id']}")
    assert res.json() == todo

async def test_toggle_missing_todo_is_404(client):
    res = await client.post("/todos/42/toggle")
    assert res.status_code == 404
    assert "does not exist" in res.text
    assert (await client.get("/todos")).json() == []

async def test_index_database_failure_is_error_page(client, monkeypatch):
    from todo_app.errors import RepositoryError
    from todo_app.repositories.todo_repo import TodoRepository

    async def broken(self):
        raise RepositoryError("connection lost")

    monkeypatch.setattr(TodoRepository, "list", broken)

    res = await client.get("/")
    assert res.status_code == 500
    assert "Something really bad happened" in res.text
    assert "connection lost" not in res.text
