import logging
from typing import List

from todo_app.errors import RepositoryError
from todo_app.repositories.todo_repo import TodoRepository
from todo_app.results import Failure, Result, Success
from todo_app.schemas.todo import TodoCreate, TodoOut

logger = logging.getLogger(__name__)


class TodoService:
    """Runs repository calls and turns their outcome into a Result."""

    def __init__(self, repo: TodoRepository):
        self.repo = repo

    async def create_todo(self, todo_in: TodoCreate) -> Result[TodoOut]:
        try:
            todo = await self.repo.create(todo_in.title, todo_in.completed)
        except RepositoryError as exc:
            return _failed("create_todo", exc)
        return Success(TodoOut.model_validate(todo))

    async def create_and_list(self, todo_in: TodoCreate) -> Result[List[TodoOut]]:
        created = await self.create_todo(todo_in)
        if isinstance(created, Failure):
            return created
        return await self.list_todos()

    async def list_todos(self) -> Result[List[TodoOut]]:
        try:
            todos = await self.repo.list()
        except RepositoryError as exc:
            return _failed("list_todos", exc)
        return Success([TodoOut.model_validate(t) for t in todos])

    async def get_todo(self, todo_id: int) -> Result[TodoOut]:
        try:
            todo = await self.repo.get(todo_id)
        except RepositoryError as exc:
            return _failed("get_todo", exc)
        return Success(TodoOut.model_validate(todo))

    async def toggle_todo(self, todo_id: int) -> Result[TodoOut]:
        try:
            todo = await self.repo.toggle_completed(todo_id)
        except RepositoryError as exc:
            return _failed("toggle_todo", exc)
        return Success(TodoOut.model_validate(todo))


def _failed(operation: str, exc: RepositoryError) -> Failure:
    logger.warning("%s failed: %s", operation, exc)
    return Failure(exc)
