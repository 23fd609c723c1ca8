from fastapi import Depends, Request

from todo_app.database import LazyPool
from todo_app.rendering import Renderer
from todo_app.repositories.todo_repo import TodoRepository
from todo_app.services.todo_service import TodoService


def get_pool(request: Request) -> LazyPool:
    """The process-wide pool kept on the application state, built on first use."""
    return request.app.state.lazy_pool


def get_renderer(request: Request) -> Renderer:
    return request.app.state.renderer


def get_service(pool: LazyPool = Depends(get_pool)) -> TodoService:
    return TodoService(TodoRepository(pool))
