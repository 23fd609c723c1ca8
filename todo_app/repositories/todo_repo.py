import asyncio
from typing import Awaitable, Callable, List, TypeVar, Union

from sqlalchemy import not_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_app.database import LazyPool, Pool
from todo_app.errors import DatabaseConnectionError, MigrationError, RepositoryError, TodoNotFound
from todo_app.models.todo import Todo

T = TypeVar("T")


class TodoRepository:
    """
    The only place that issues SQL against `todos`.

    Every call checks a connection out of the pool for one statement and
    returns it afterwards. Rows handed back are read from the database after
    the write, never built client-side.
    """

    def __init__(self, pool: Union[Pool, LazyPool]) -> None:
        self.pool = pool

    async def _resolve_pool(self) -> Pool:
        if isinstance(self.pool, LazyPool):
            try:
                return await self.pool.get()
            except (DatabaseConnectionError, MigrationError) as exc:
                raise RepositoryError(str(exc)) from exc
        return self.pool

    async def _run(self, op: Callable[[AsyncSession], Awaitable[T]]) -> T:
        pool = await self._resolve_pool()

        async def in_session() -> T:
            async with pool.session() as db:
                return await op(db)

        try:
            return await asyncio.wait_for(in_session(), timeout=pool.acquire_timeout)
        except asyncio.TimeoutError as exc:
            raise RepositoryError(f"query timed out after {pool.acquire_timeout}s") from exc
        except SQLAlchemyError as exc:
            raise RepositoryError(str(exc)) from exc
        except OSError as exc:
            # drivers such as asyncpg raise socket errors unwrapped on connect
            raise RepositoryError(f"cannot reach database: {exc}") from exc

    async def create(self, title: str, completed: bool = False) -> Todo:
        async def op(db: AsyncSession) -> Todo:
            todo = Todo(title=title, completed=completed)
            db.add(todo)
            await db.commit()
            await db.refresh(todo)
            return todo

        return await self._run(op)

    async def list(self) -> List[Todo]:
        async def op(db: AsyncSession) -> List[Todo]:
            result = await db.execute(select(Todo).order_by(Todo.id))
            return list(result.scalars().all())

        return await self._run(op)

    async def get(self, todo_id: int) -> Todo:
        async def op(db: AsyncSession) -> Todo:
            todo = await db.get(Todo, todo_id)
            if todo is None:
                raise TodoNotFound(todo_id)
            return todo

        return await self._run(op)

    async def toggle_completed(self, todo_id: int) -> Todo:
        """Flip `completed` in a single UPDATE ... RETURNING and return the new row."""

        async def op(db: AsyncSession) -> Todo:
            stmt = (
                update(Todo)
                .where(Todo.id == todo_id)
                .values(completed=not_(Todo.completed))
                .returning(Todo)
            )
            result = await db.execute(stmt)
            todo = result.scalars().one_or_none()
            if todo is None:
                await db.rollback()
                raise TodoNotFound(todo_id)
            await db.commit()
            return todo

        return await self._run(op)
