import pytest
from httpx import ASGITransport, AsyncClient

from todo_app.config import Settings
from todo_app.database import acquire_pool
from todo_app.main import create_app
from todo_app.migrations import run_migrations
from todo_app.repositories.todo_repo import TodoRepository


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"

@pytest.fixture
def database_url(tmp_path):
    # file-backed so that the pool really holds several connections
    return f"sqlite+aiosqlite:///{tmp_path / 'todos.db'}"

@pytest.fixture
async def pool(database_url):
    pool = await acquire_pool(database_url, max_connections=5, acquire_timeout=30)
    await run_migrations(pool)
    yield pool
    await pool.dispose()

@pytest.fixture
def repo(pool):
    return TodoRepository(pool)

@pytest.fixture
def settings(database_url):
    return Settings(database_url=database_url, compression_min_size=500)

@pytest.fixture
def initialized_app(pool, settings):
    return create_app(pool=pool, settings=settings)

@pytest.fixture
async def client(initialized_app):
    transport = ASGITransport(app=initialized_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
